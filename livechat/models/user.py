"""User model: CRM staff and portal customers known to the chat."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, Uuid

from livechat.constants.chat import Role
from livechat.db import Base
from livechat.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """Directory entry used to display who sent, pinned or edited something."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    role = Column(String(32), nullable=False, default=Role.CUSTOMER.value)
