"""Emoji reactions on messages."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.core.clock import Clock, utcnow
from livechat.exceptions import ValidationError
from livechat.models.message import Message, MessageReaction
from livechat.schemas.actor import Actor
from livechat.services.conversation_manager import ConversationManager


class ReactionManager:
    """Add and remove are both idempotent on the (message, emoji, user) triple."""

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

    def validate_emoji(self, emoji: str) -> str:
        if not emoji or not emoji.strip():
            raise ValidationError("Emoji is required")
        if any(ch.isspace() for ch in emoji):
            raise ValidationError("Emoji cannot contain whitespace")
        if len(emoji) > self.settings.emoji_max_length:
            raise ValidationError(
                f"Emoji cannot exceed {self.settings.emoji_max_length} characters"
            )
        return emoji

    def reactions_for(self, message: Message) -> dict[str, set[UUID]]:
        return message.reactions

    def _find(self, message: Message, emoji: str, user_id: UUID) -> Optional[MessageReaction]:
        for row in message.reaction_rows:
            if row.emoji == emoji and row.user_id == user_id:
                return row
        return None

    def add_reaction(self, actor: Actor, message: Message, emoji: str) -> bool:
        """Returns False when the reaction was already there."""
        emoji = self.validate_emoji(emoji)
        self.conversations.ensure_access(actor, message.conversation)
        self.conversations.ensure_active(message.conversation)
        if self._find(message, emoji, actor.id) is not None:
            return False
        if self.settings.single_reaction_per_user:
            for row in list(message.reaction_rows):
                if row.user_id == actor.id:
                    message.reaction_rows.remove(row)
        message.reaction_rows.append(
            MessageReaction(emoji=emoji, user_id=actor.id, created_at=self.clock())
        )
        self.db.flush()
        return True

    def remove_reaction(self, actor: Actor, message: Message, emoji: str) -> bool:
        emoji = self.validate_emoji(emoji)
        self.conversations.ensure_access(actor, message.conversation)
        self.conversations.ensure_active(message.conversation)
        row = self._find(message, emoji, actor.id)
        if row is None:
            return False
        message.reaction_rows.remove(row)
        self.db.flush()
        return True
