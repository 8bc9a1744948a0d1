"""Pydantic schemas for conversations and their subject reference."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from livechat.constants.chat import ConversationStatus, Priority, SubjectType

# -----------------------------------------------------------------------------
# Subject reference (tagged union over the CRM entities a chat can be about)
# -----------------------------------------------------------------------------


class ClientSubject(BaseModel):
    type: Literal["client"] = "client"
    id: UUID

    model_config = {"frozen": True}


class LeadSubject(BaseModel):
    type: Literal["lead"] = "lead"
    id: UUID

    model_config = {"frozen": True}


class GuestSessionSubject(BaseModel):
    type: Literal["guest_session"] = "guest_session"
    id: UUID

    model_config = {"frozen": True}


SubjectRef = Annotated[
    Union[ClientSubject, LeadSubject, GuestSessionSubject],
    Field(discriminator="type"),
]

_SUBJECT_CLASSES = {
    SubjectType.CLIENT: ClientSubject,
    SubjectType.LEAD: LeadSubject,
    SubjectType.GUEST_SESSION: GuestSessionSubject,
}


def subject_from_columns(
    subject_type: Optional[str], subject_id: Optional[UUID]
) -> Optional[SubjectRef]:
    """Rebuild the tagged subject from the two DB columns (None when absent)."""
    if subject_type is None or subject_id is None:
        return None
    return _SUBJECT_CLASSES[SubjectType(subject_type)](id=subject_id)


# -----------------------------------------------------------------------------
# Conversation schemas
# -----------------------------------------------------------------------------


class ConversationCreate(BaseModel):
    """Request schema for creating a conversation."""

    title: Optional[str] = Field(None, max_length=255)
    subject: Optional[SubjectRef] = None
    assigned_to: Optional[UUID] = None
    priority: Priority = Priority.NORMAL
    is_internal: bool = False
    participants: list[UUID] = Field(default_factory=list)
    initial_message: Optional[str] = None


class ConversationUpdate(BaseModel):
    """Schema for updating a conversation. All fields optional."""

    title: Optional[str] = Field(None, max_length=255)
    priority: Optional[Priority] = None
    assigned_to: Optional[UUID] = None


class FindOrCreateRequest(BaseModel):
    subject_type: Literal["client", "lead"]
    subject_id: UUID

    def to_subject(self) -> SubjectRef:
        return subject_from_columns(self.subject_type, self.subject_id)


class ParticipantAdd(BaseModel):
    user_id: UUID


class ConversationRead(BaseModel):
    """Conversation for API responses."""

    id: UUID
    subject: Optional[SubjectRef] = None
    title: Optional[str] = None
    creator_id: Optional[UUID] = None
    assigned_to: Optional[UUID] = None
    participants: set[UUID] = Field(default_factory=set)
    priority: Priority
    status: ConversationStatus
    is_internal: bool
    last_message_at: datetime
    unread_count: int
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, conversation) -> "ConversationRead":
        return cls(
            id=conversation.id,
            subject=subject_from_columns(
                conversation.subject_type, conversation.subject_id
            ),
            title=conversation.title,
            creator_id=conversation.creator_id,
            assigned_to=conversation.assigned_to,
            participants=conversation.participants,
            priority=conversation.priority,
            status=conversation.status,
            is_internal=conversation.is_internal,
            last_message_at=conversation.last_message_at,
            unread_count=conversation.unread_count,
            metadata=conversation.extra,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class ConversationListFilters(BaseModel):
    status: Optional[ConversationStatus] = None
    priority: Optional[Priority] = None
    search: Optional[str] = None
    assigned_to_me: bool = False
    guest_only: bool = False


class UnreadCountRead(BaseModel):
    unread_count: int


class FindOrCreateRead(BaseModel):
    conversation: ConversationRead
    created: bool


class MarkReadResult(BaseModel):
    updated: int


class TypingRequest(BaseModel):
    is_typing: bool = True
