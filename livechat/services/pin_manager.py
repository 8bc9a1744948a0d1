"""Pinned messages: the per-conversation limit and caller-controlled display order."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.core.clock import Clock, utcnow
from livechat.exceptions import (
    CrossConversationPinError,
    ForbiddenError,
    NotFoundError,
    PinLimitExceededError,
    ValidationError,
)
from livechat.models.conversation import Conversation
from livechat.models.message import Message
from livechat.schemas.actor import Actor
from livechat.services.conversation_manager import ConversationManager


class PinManager:
    """
    Display order is carried by ``pinned_at`` alone: newest first. Reordering
    rewrites the timestamps one second apart instead of keeping a rank column.

    Callers must hold the conversation lock around ``pin`` and ``reorder`` so
    the count check and the write are not interleaved with another request.
    """

    def __init__(
        self,
        db: DBSession,
        conversations: ConversationManager,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.conversations = conversations
        self.clock = clock or utcnow
        self.settings = settings or get_settings()

    @property
    def limit(self) -> int:
        return self.settings.max_pinned_messages

    def pinned_count(self, conversation_id: UUID) -> int:
        return (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.is_pinned.is_(True),
            )
            .count()
        )

    def pinned(
        self, conversation: Conversation, actor: Optional[Actor] = None
    ) -> list[Message]:
        query = self.db.query(Message).filter(
            Message.conversation_id == conversation.id,
            Message.is_pinned.is_(True),
        )
        if actor is not None and not actor.is_staff:
            query = query.filter(Message.is_internal_note.is_(False))
        return query.order_by(Message.pinned_at.desc(), Message.id).limit(self.limit).all()

    def pin(self, actor: Actor, message: Message) -> Message:
        conversation = message.conversation
        self.conversations.ensure_access(actor, conversation)
        self.conversations.ensure_active(conversation)
        if message.is_pinned:
            return message
        if self.pinned_count(conversation.id) >= self.limit:
            raise PinLimitExceededError(
                f"A conversation can have at most {self.limit} pinned messages"
            )
        message.is_pinned = True
        message.pinned_at = self.clock()
        message.pinned_by = actor.id
        self.db.flush()
        return message

    def unpin(self, actor: Actor, message: Message) -> Message:
        conversation = message.conversation
        self.conversations.ensure_access(actor, conversation)
        self.conversations.ensure_active(conversation)
        if not message.is_pinned:
            return message
        if (
            self.settings.unpin_restricted_to_pinner
            and message.pinned_by != actor.id
            and not actor.is_admin
        ):
            raise ForbiddenError("Only the user who pinned this message can unpin it")
        message.is_pinned = False
        message.pinned_at = None
        message.pinned_by = None
        self.db.flush()
        return message

    def reorder(
        self,
        actor: Actor,
        conversation: Conversation,
        ordered_message_ids: Sequence[UUID],
    ) -> list[Message]:
        """
        Give ``ordered_message_ids[i]`` the timestamp ``now - i seconds`` so a
        descending read returns them in the requested order.
        """
        ids = list(ordered_message_ids)
        if not 1 <= len(ids) <= self.limit:
            raise ValidationError(f"Provide between 1 and {self.limit} message ids")
        if len(set(ids)) != len(ids):
            raise ValidationError("Message ids must be unique")

        found = {
            message.id: message
            for message in self.db.query(Message).filter(Message.id.in_(ids)).all()
        }
        missing = [message_id for message_id in ids if message_id not in found]
        if missing:
            raise NotFoundError(f"Message {missing[0]} not found")

        self.conversations.ensure_access(actor, conversation)
        self.conversations.ensure_active(conversation)

        messages = [found[message_id] for message_id in ids]
        if any(message.conversation_id != conversation.id for message in messages):
            raise CrossConversationPinError(
                "All pinned messages must belong to the same conversation"
            )
        if not all(message.is_pinned for message in messages):
            raise ValidationError("Only pinned messages can be reordered")

        base = self.clock()
        for position, message in enumerate(messages):
            message.pinned_at = base - timedelta(seconds=position)
        self.db.flush()
        return messages
