"""Pydantic schemas for message comments."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CommentCreate(BaseModel):
    body: str


class CommentRead(BaseModel):
    id: UUID
    message_id: UUID
    author_id: Optional[UUID] = None
    body: str
    created_at: datetime

    model_config = {"from_attributes": True}
