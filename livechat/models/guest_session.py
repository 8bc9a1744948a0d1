"""GuestSession model: anonymous website visitor chatting without an account."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from livechat.db import Base
from livechat.models.mixins import TimestampMixin


class GuestSession(Base, TimestampMixin):
    """One row per browser session key. Owns at most one conversation."""

    __tablename__ = "guest_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_key = Column(String(255), unique=True, nullable=False, index=True)
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(32), nullable=True)
    inquiry_type = Column(String(32), nullable=True)
    ip_address = Column(String(64), nullable=True)
    last_activity_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def display_name(self) -> str:
        if self.guest_name:
            return self.guest_name
        if self.guest_email:
            return self.guest_email
        return f"Guest {str(self.id)[:8]}"
