"""Comments attached to individual messages."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.core.clock import Clock, utcnow
from livechat.exceptions import ForbiddenError, NotFoundError, ValidationError
from livechat.models.comment import MessageComment
from livechat.models.message import Message
from livechat.schemas.actor import Actor
from livechat.services.conversation_manager import ConversationManager


class CommentManager:
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

    def get(self, comment_id: UUID) -> Optional[MessageComment]:
        return (
            self.db.query(MessageComment)
            .filter(MessageComment.id == comment_id)
            .first()
        )

    def require(self, comment_id: UUID) -> MessageComment:
        comment = self.get(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment

    def list_for(self, message: Message) -> list[MessageComment]:
        return list(message.comments)

    def add(self, actor: Actor, message: Message, body: str) -> MessageComment:
        """Any actor with access to the conversation may comment."""
        self.conversations.ensure_access(actor, message.conversation)
        self.conversations.ensure_active(message.conversation)
        if not body or not body.strip():
            raise ValidationError("Comment body is required")
        if len(body) > self.settings.comment_max_length:
            raise ValidationError(
                f"Comment cannot exceed {self.settings.comment_max_length} characters"
            )
        comment = MessageComment(author_id=actor.id, body=body, created_at=self.clock())
        message.comments.append(comment)
        self.db.flush()
        return comment

    def delete(self, actor: Actor, comment: MessageComment) -> None:
        """Only the author or an administrator may delete a comment."""
        message = comment.message
        self.conversations.ensure_access(actor, message.conversation)
        if comment.author_id != actor.id and not actor.is_admin:
            raise ForbiddenError(
                "Only the author or an administrator can delete this comment"
            )
        self.conversations.ensure_active(message.conversation)
        message.comments.remove(comment)
        self.db.flush()
