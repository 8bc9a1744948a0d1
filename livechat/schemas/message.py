"""Pydantic schemas for messages, attachments, reactions, pins and edit history."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, Field

from livechat.constants.chat import MessageStatus, MessageType

# -----------------------------------------------------------------------------
# Attachments
# -----------------------------------------------------------------------------


class Attachment(BaseModel):
    """Metadata for a stored file; the chat never looks at file contents."""

    id: UUID = Field(default_factory=uuid4)
    filename: str = Field(..., min_length=1, max_length=255)
    extension: str = ""
    size_bytes: int = Field(..., ge=0)
    url: str
    mime_type: str = "application/octet-stream"
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# -----------------------------------------------------------------------------
# Message commands
# -----------------------------------------------------------------------------


class MessageCreate(BaseModel):
    """Schema for sending a message. Length rules are enforced by the service."""

    body: str = ""
    message_type: MessageType = MessageType.TEXT
    attachments: list[Attachment] = Field(default_factory=list)
    reply_to_id: Optional[UUID] = None
    is_internal_note: bool = False


class MessageEditRequest(BaseModel):
    body: str


class ReactionRequest(BaseModel):
    emoji: str


class PinReorderRequest(BaseModel):
    message_ids: list[UUID] = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Message read models
# -----------------------------------------------------------------------------


class MessageRead(BaseModel):
    """Message for API responses and broadcast payloads."""

    id: UUID
    conversation_id: UUID
    sender_id: Optional[UUID] = None
    body: str
    message_type: MessageType
    attachments: list[Attachment] = Field(default_factory=list)
    status: MessageStatus
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    reply_to_id: Optional[UUID] = None
    is_internal_note: bool
    is_pinned: bool
    pinned_at: Optional[datetime] = None
    pinned_by: Optional[UUID] = None
    reactions: dict[str, set[UUID]] = Field(default_factory=dict)
    is_edited: bool
    original_message: Optional[str] = None
    edited_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("message_metadata", "metadata"),
    )
    created_at: datetime

    model_config = {"from_attributes": True}


class ReactionsRead(BaseModel):
    message_id: UUID
    reactions: dict[str, set[UUID]]


class EditorInfo(BaseModel):
    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None


class EditHistoryEntry(BaseModel):
    previous_text: str
    edited_by: UUID
    edited_at: datetime
    edited_by_user: Optional[EditorInfo] = None


class EditHistoryRead(BaseModel):
    """Edit lineage of one message, enriched for display."""

    message_id: UUID
    original: Optional[str] = None
    current: str
    edit_count: int
    history: list[EditHistoryEntry] = Field(default_factory=list)
    is_edited: bool
    edited_at: Optional[datetime] = None
