"""
Contracts for the two fire-and-forget side effects: the real-time broadcast
payload and the notification reference handed to the dispatcher.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from livechat.constants.chat import ChatEventType


class ChatEvent(BaseModel):
    """Payload published to a conversation's channel."""

    event: ChatEventType
    conversation_id: UUID
    actor_id: Optional[UUID] = None
    data: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationReference(BaseModel):
    """What a notification points at."""

    kind: Literal["conversation", "message", "comment"]
    id: UUID
    conversation_id: UUID
    preview: str = ""
