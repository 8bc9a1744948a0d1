"""Read-only projection of the CRM records a conversation can be about."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, Uuid

from livechat.db import Base
from livechat.models.mixins import TimestampMixin


class CrmSubject(Base, TimestampMixin):
    """Client or lead as seen by the chat: id, kind and display name only."""

    __tablename__ = "crm_subjects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_type = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False)
