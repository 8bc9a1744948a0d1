"""
Actor resolution for the HTTP layer.

Authentication happens upstream; the gateway forwards the verified identity
in ``X-User-Id`` and ``X-User-Role``. This module only turns those headers
into an ``Actor``.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException

from livechat.constants.chat import Role
from livechat.schemas.actor import Actor

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"


def get_current_actor(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
    x_user_role: Optional[str] = Header(None, alias=USER_ROLE_HEADER),
) -> Actor:
    """FastAPI dependency returning the authenticated actor."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id")
    try:
        role = Role((x_user_role or Role.CUSTOMER.value).lower())
    except ValueError:
        raise HTTPException(status_code=403, detail="Unknown role")
    return Actor(id=user_id, role=role)
