"""Conversation and participant models."""

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
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from livechat.constants.chat import ConversationStatus, Priority
from livechat.db import Base
from livechat.models.mixins import TimestampMixin


class Conversation(Base, TimestampMixin):
    """
    Thread container. ``subject_type``/``subject_id`` point at the CRM record
    the conversation is about (client, lead or guest session), or are both NULL.
    """

    __tablename__ = "conversations"

    __table_args__ = (
        Index(
            "ix_conversations_subject_status",
            "subject_type",
            "subject_id",
            "status",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_type = Column(String(32), nullable=True)
    subject_id = Column(Uuid, nullable=True)
    title = Column(String(255), nullable=True)
    creator_id = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_to = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    priority = Column(String(16), nullable=False, default=Priority.NORMAL.value)
    status = Column(
        String(16), nullable=False, default=ConversationStatus.ACTIVE.value, index=True
    )
    is_internal = Column(Boolean, nullable=False, default=False)
    last_message_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    unread_count = Column(Integer, nullable=False, default=0)
    extra = Column("metadata", JSON, nullable=True)  # avoid shadowing Base.metadata

    participant_rows = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
        foreign_keys="Message.conversation_id",
    )

    @property
    def participants(self) -> set[uuid.UUID]:
        return {row.user_id for row in self.participant_rows}

    @property
    def is_archived(self) -> bool:
        return self.status == ConversationStatus.ARCHIVED.value


class ConversationParticipant(Base):
    """Membership row; the unique constraint keeps ``participants`` a set."""

    __tablename__ = "conversation_participants"

    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "user_id", name="uq_conversation_participant"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        Uuid,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Uuid, nullable=False, index=True)
    joined_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    conversation = relationship("Conversation", back_populates="participant_rows")
