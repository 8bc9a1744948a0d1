"""Message model plus its reaction and edit-lineage rows."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from livechat.constants.chat import MessageStatus, MessageType
from livechat.db import Base


class Message(Base):
    """One authored entry in a conversation. Owned by its conversation."""

    __tablename__ = "messages"

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_conversation_pinned", "conversation_id", "is_pinned"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )  # NULL for guest visitors and AI replies
    body = Column(Text, nullable=False, default="")
    message_type = Column(String(16), nullable=False, default=MessageType.TEXT.value)
    attachments = Column(JSON, nullable=False, default=list)
    status = Column(String(16), nullable=False, default=MessageStatus.SENT.value)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    reply_to_id = Column(
        Uuid, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True
    )
    is_internal_note = Column(Boolean, nullable=False, default=False)

    is_pinned = Column(Boolean, nullable=False, default=False)
    pinned_at = Column(DateTime(timezone=True), nullable=True)
    pinned_by = Column(Uuid, nullable=True)

    is_edited = Column(Boolean, nullable=False, default=False)
    original_message = Column(Text, nullable=True)
    edited_at = Column(DateTime(timezone=True), nullable=True)

    extra = Column("metadata", JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    conversation = relationship(
        "Conversation", back_populates="messages", foreign_keys=[conversation_id]
    )
    reply_to = relationship("Message", remote_side=[id], foreign_keys=[reply_to_id])
    reaction_rows = relationship(
        "MessageReaction",
        back_populates="message",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MessageReaction.created_at",
    )
    edits = relationship(
        "MessageEdit",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageEdit.edited_at",
    )
    comments = relationship(
        "MessageComment",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageComment.created_at",
    )

    @property
    def message_metadata(self) -> dict:
        """Expose DB column 'metadata' for serialization (avoid shadowing Base.metadata)."""
        return self.extra or {}

    @property
    def reactions(self) -> dict[str, set[uuid.UUID]]:
        result: dict[str, set[uuid.UUID]] = {}
        for row in self.reaction_rows:
            result.setdefault(row.emoji, set()).add(row.user_id)
        return result

    @property
    def edit_history(self) -> list["MessageEdit"]:
        return list(self.edits)

    @property
    def is_ai_response(self) -> bool:
        return bool(self.message_metadata.get("is_ai_response"))


class MessageReaction(Base):
    """(message, emoji, user) triple; uniqueness makes adding idempotent."""

    __tablename__ = "message_reactions"

    __table_args__ = (
        UniqueConstraint(
            "message_id", "emoji", "user_id", name="uq_message_reaction"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id = Column(
        Uuid,
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    emoji = Column(String(32), nullable=False)
    user_id = Column(Uuid, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    message = relationship("Message", back_populates="reaction_rows")


class MessageEdit(Base):
    """One row per accepted edit. History is append-only."""

    __tablename__ = "message_edits"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id = Column(
        Uuid,
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    previous_text = Column(Text, nullable=False)
    edited_by = Column(Uuid, nullable=False)
    edited_at = Column(DateTime(timezone=True), nullable=False)

    message = relationship("Message", back_populates="edits")
