"""Membership of users in a conversation."""

from __future__ import annotations

from typing import Iterable, Set
from uuid import UUID

from sqlalchemy.orm import Session as DBSession

from livechat.exceptions import ValidationError
from livechat.models.conversation import Conversation, ConversationParticipant


class ParticipantRegistry:
    """Set semantics over ``conversation_participants``. Changes are flushed, not committed."""

    def __init__(self, db: DBSession) -> None:
        self.db = db

    def participants(self, conversation: Conversation) -> Set[UUID]:
        return conversation.participants

    def has(self, conversation: Conversation, user_id: UUID) -> bool:
        return user_id in conversation.participants

    def add(self, conversation: Conversation, user_id: UUID) -> bool:
        """Add a user. Returns False when they were already a participant."""
        if self.has(conversation, user_id):
            return False
        conversation.participant_rows.append(
            ConversationParticipant(user_id=user_id)
        )
        self.db.flush()
        return True

    def add_many(self, conversation: Conversation, user_ids: Iterable[UUID]) -> Set[UUID]:
        """Add several users; returns the ones that were actually new."""
        added: Set[UUID] = set()
        for user_id in user_ids:
            if self.add(conversation, user_id):
                added.add(user_id)
        return added

    def remove(self, conversation: Conversation, user_id: UUID) -> bool:
        if conversation.creator_id is not None and user_id == conversation.creator_id:
            raise ValidationError("The conversation creator cannot be removed")
        for row in list(conversation.participant_rows):
            if row.user_id == user_id:
                conversation.participant_rows.remove(row)
                self.db.flush()
                return True
        return False
