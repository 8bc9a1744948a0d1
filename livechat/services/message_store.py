"""Message creation, editing, delivery state and threading."""

from __future__ import annotations

from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Query
from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.constants.chat import MessageStatus, MessageType
from livechat.core.clock import Clock, utcnow
from livechat.exceptions import ForbiddenError, NotFoundError, ValidationError
from livechat.infra.logging_config import get_logger
from livechat.models.conversation import Conversation
from livechat.models.guest_session import GuestSession
from livechat.models.message import Message
from livechat.schemas.actor import Actor
from livechat.schemas.guest import AIReply, GuestMessageCreate
from livechat.schemas.message import Attachment, MessageCreate
from livechat.services.conversation_manager import ConversationManager
from livechat.services.edit_history_manager import EditHistoryManager

logger = get_logger("messages")


class MessageStore:
    """Owns ``Message`` rows. Flushes only; the caller commits."""

    def __init__(
        self,
        db: DBSession,
        conversations: ConversationManager,
        edit_history: Optional[EditHistoryManager] = None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.conversations = conversations
        self.clock = clock or utcnow
        self.settings = settings or get_settings()
        self.edit_history = edit_history or EditHistoryManager(
            db, clock=self.clock, settings=self.settings
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, message_id: UUID) -> Optional[Message]:
        return self.db.query(Message).filter(Message.id == message_id).first()

    def require(self, message_id: UUID) -> Message:
        message = self.get(message_id)
        if message is None:
            raise NotFoundError("Message not found")
        return message

    def is_visible(self, actor: Actor, message: Message) -> bool:
        return actor.is_staff or not message.is_internal_note

    def list_query(self, conversation: Conversation, actor: Actor) -> Query:
        """Messages of a conversation in chronological order, internal notes hidden from customers."""
        query = self.db.query(Message).filter(
            Message.conversation_id == conversation.id
        )
        if not actor.is_staff:
            query = query.filter(Message.is_internal_note.is_(False))
        return query.order_by(Message.created_at, Message.id)

    def list_for(
        self,
        conversation: Conversation,
        actor: Actor,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Message]:
        return self.list_query(conversation, actor).offset(offset).limit(limit).all()

    def latest_for(
        self,
        conversation: Conversation,
        limit: int,
        include_internal: bool = False,
    ) -> list[Message]:
        """The newest ``limit`` messages, returned oldest first."""
        query = self.db.query(Message).filter(
            Message.conversation_id == conversation.id
        )
        if not include_internal:
            query = query.filter(Message.is_internal_note.is_(False))
        rows = (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(rows))

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_content(self, body: str, attachments: Sequence[Attachment]) -> None:
        if len(body) > self.settings.message_max_length:
            raise ValidationError(
                f"Message cannot exceed {self.settings.message_max_length} characters"
            )
        if len(attachments) > self.settings.max_attachments_per_message:
            raise ValidationError(
                f"At most {self.settings.max_attachments_per_message} attachments are allowed"
            )
        for attachment in attachments:
            if attachment.size_bytes > self.settings.attachment_max_bytes:
                raise ValidationError(f"Attachment {attachment.filename} is too large")
        if not body.strip():
            if not attachments:
                raise ValidationError("Message body is required")
            if not self.settings.allow_attachment_only_messages:
                raise ValidationError("Message body is required")

    def _resolve_reply_to(
        self, actor: Actor, conversation: Conversation, reply_to_id: Optional[UUID]
    ) -> Optional[UUID]:
        if reply_to_id is None:
            return None
        target = self.get(reply_to_id)
        if target is None or not self.is_visible(actor, target):
            raise NotFoundError("Replied-to message not found")
        if target.conversation_id != conversation.id:
            raise ValidationError("Replies must stay within the same conversation")
        return target.id

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _create(
        self,
        conversation: Conversation,
        sender_id: Optional[UUID],
        body: str,
        message_type: MessageType,
        attachments: Sequence[Attachment] = (),
        reply_to_id: Optional[UUID] = None,
        is_internal_note: bool = False,
        extra: Optional[dict[str, Any]] = None,
    ) -> Message:
        now = self.clock()
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            body=body,
            message_type=MessageType(message_type).value,
            attachments=[a.model_dump(mode="json") for a in attachments],
            status=MessageStatus.SENT.value,
            reply_to_id=reply_to_id,
            is_internal_note=is_internal_note,
            is_pinned=False,
            is_edited=False,
            extra=extra,
            created_at=now,
        )
        self.db.add(message)
        self.db.flush()
        self.conversations.touch(conversation, now)
        return message

    def send(self, actor: Actor, conversation: Conversation, data: MessageCreate) -> Message:
        """Create a message from an authenticated actor and bump the conversation counters."""
        self.conversations.ensure_access(actor, conversation)
        self.conversations.ensure_active(conversation)
        if data.message_type == MessageType.SYSTEM:
            raise ValidationError("System messages cannot be sent directly")
        if data.is_internal_note and not actor.is_staff:
            raise ForbiddenError("Only staff can write internal notes")
        self._validate_content(data.body, data.attachments)
        reply_to_id = self._resolve_reply_to(actor, conversation, data.reply_to_id)

        message = self._create(
            conversation,
            sender_id=actor.id,
            body=data.body,
            message_type=data.message_type,
            attachments=data.attachments,
            reply_to_id=reply_to_id,
            is_internal_note=data.is_internal_note,
        )
        self.conversations.increment_unread(conversation)
        logger.debug("Message %s sent to %s", message.id, conversation.id)
        return message

    def send_as_guest(
        self,
        conversation: Conversation,
        guest: GuestSession,
        data: GuestMessageCreate,
        ip_address: Optional[str] = None,
    ) -> Message:
        self.conversations.ensure_active(conversation)
        if not data.body.strip():
            raise ValidationError("Message body is required")
        self._validate_content(data.body, data.attachments)
        message = self._create(
            conversation,
            sender_id=None,
            body=data.body,
            message_type=MessageType(data.message_type),
            attachments=data.attachments,
            extra={
                "guest_session_id": str(guest.id),
                "guest_name": guest.guest_name,
                "guest_email": guest.guest_email,
                "ip_address": ip_address,
            },
        )
        self.conversations.increment_unread(conversation)
        return message

    def record_ai_reply(
        self,
        conversation: Conversation,
        guest: GuestSession,
        reply: AIReply,
        reply_to: Message,
    ) -> Message:
        """Store an auto-responder answer. AI replies do not count as unread."""
        return self._create(
            conversation,
            sender_id=None,
            body=reply.message,
            message_type=MessageType.TEXT,
            extra={
                "is_ai_response": True,
                "ai_service": reply.service,
                "ai_model": reply.model,
                "guest_session_id": str(guest.id),
                "guest_name": guest.guest_name,
                "guest_email": guest.guest_email,
                "reply_to_message_id": str(reply_to.id),
                "generated_at": self.clock().isoformat(),
            },
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def edit(self, actor: Actor, message: Message, new_body: str) -> Message:
        conversation = message.conversation
        self.conversations.ensure_access(actor, conversation)
        self.conversations.ensure_active(conversation)
        self.edit_history.check_editable(actor, message, new_body)
        if not new_body.strip() and not message.attachments:
            raise ValidationError("Message body is required")
        if len(new_body) > self.settings.message_max_length:
            raise ValidationError(
                f"Message cannot exceed {self.settings.message_max_length} characters"
            )
        return self.edit_history.record(actor, message, new_body)

    def mark_delivered(self, actor: Actor, message: Message) -> bool:
        """``sent -> delivered`` for a recipient. Status never moves backwards."""
        if message.sender_id is not None and message.sender_id == actor.id:
            return False
        if message.status != MessageStatus.SENT.value:
            return False
        message.status = MessageStatus.DELIVERED.value
        message.delivered_at = self.clock()
        self.db.flush()
        return True
