"""Schemas for the guest (anonymous visitor) chat and the AI auto-responder contract."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from livechat.schemas.conversation import ConversationRead
from livechat.schemas.message import Attachment, MessageRead


class GuestInfoUpdate(BaseModel):
    guest_name: Optional[str] = Field(None, max_length=255)
    guest_email: Optional[str] = Field(None, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=20)
    inquiry_type: Optional[Literal["general", "support", "sales"]] = None


class GuestSessionRead(BaseModel):
    id: UUID
    session_key: str
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    inquiry_type: Optional[str] = None
    display_name: str
    last_activity_at: datetime

    model_config = {"from_attributes": True}


class GuestMessageCreate(BaseModel):
    body: str = ""
    message_type: Literal["text", "image", "file"] = "text"
    attachments: list[Attachment] = Field(default_factory=list)


class GuestChatRead(BaseModel):
    session: GuestSessionRead
    conversation: ConversationRead
    messages: list[MessageRead] = Field(default_factory=list)


class GuestSendRead(BaseModel):
    message: MessageRead
    ai_response: Optional[MessageRead] = None


# -----------------------------------------------------------------------------
# AI auto-responder contract
# -----------------------------------------------------------------------------


class AIHistoryItem(BaseModel):
    role: Literal["user", "ai", "agent"]
    text: str
    timestamp: datetime


class AIReply(BaseModel):
    message: str
    service: str
    model: str
