"""In-app notification written by the notification task."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, Uuid

from livechat.db import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    type = Column(String(32), nullable=False)
    message = Column(Text, nullable=False)
    reference_type = Column(String(32), nullable=False)
    reference_id = Column(Uuid, nullable=False)
    conversation_id = Column(Uuid, nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
