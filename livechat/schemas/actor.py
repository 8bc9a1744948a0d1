"""The authenticated identity every command runs as."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel

from livechat.constants.chat import STAFF_ROLES, Role


class Actor(BaseModel):
    """Supplied by the identity provider; never read from ambient state."""

    id: UUID
    role: Role = Role.CUSTOMER

    model_config = {"frozen": True}

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
