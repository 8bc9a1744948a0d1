"""Conversations API: lifecycle, membership, read state, messages and pins."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate

from livechat.auth.dependencies import get_current_actor
from livechat.constants.chat import ConversationStatus, Priority
from livechat.routers.utils.dependencies import get_conversation_service
from livechat.schemas.actor import Actor
from livechat.schemas.conversation import (
    ConversationCreate,
    ConversationListFilters,
    ConversationRead,
    ConversationUpdate,
    FindOrCreateRead,
    FindOrCreateRequest,
    MarkReadResult,
    ParticipantAdd,
    TypingRequest,
    UnreadCountRead,
)
from livechat.schemas.message import MessageCreate, MessageRead, PinReorderRequest
from livechat.services.conversation_service import ConversationService

conversations_router = APIRouter(prefix="/conversations", tags=["Conversation"])


@conversations_router.get("", response_model=Page[ConversationRead])
def list_conversations(
    params: Params = Depends(),
    status_filter: Optional[ConversationStatus] = Query(None, alias="status"),
    priority: Optional[Priority] = Query(None),
    search: Optional[str] = Query(None),
    assigned_to_me: bool = Query(False),
    guest_only: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> Page[ConversationRead]:
    """List conversations visible to the caller, most recent activity first."""
    filters = ConversationListFilters(
        status=status_filter,
        priority=priority,
        search=search,
        assigned_to_me=assigned_to_me,
        guest_only=guest_only,
    )
    return paginate(
        service.list_conversations_query(actor, filters),
        params=params,
        transformer=lambda items: [ConversationRead.from_model(c) for c in items],
    )


@conversations_router.post(
    "", response_model=ConversationRead, status_code=status.HTTP_201_CREATED
)
def create_conversation(
    data: ConversationCreate,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    conversation = service.create_conversation(actor, data)
    return ConversationRead.from_model(conversation)


@conversations_router.post("/find-or-create", response_model=FindOrCreateRead)
def find_or_create_conversation(
    data: FindOrCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> FindOrCreateRead:
    """Open the active conversation about a client or lead, creating it if needed."""
    result = service.find_or_create_conversation(actor, data.to_subject())
    return FindOrCreateRead(
        conversation=ConversationRead.from_model(result.conversation),
        created=result.created,
    )


@conversations_router.get("/unread-count", response_model=UnreadCountRead)
def get_unread_count(
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> UnreadCountRead:
    return UnreadCountRead(unread_count=service.unread_count(actor))


@conversations_router.get("/{conversation_id}", response_model=ConversationRead)
def get_conversation(
    conversation_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    return ConversationRead.from_model(service.get_conversation(actor, conversation_id))


@conversations_router.patch("/{conversation_id}", response_model=ConversationRead)
def update_conversation(
    conversation_id: UUID,
    data: ConversationUpdate,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    conversation = service.update_conversation(actor, conversation_id, data)
    return ConversationRead.from_model(conversation)


@conversations_router.post("/{conversation_id}/archive", response_model=ConversationRead)
def archive_conversation(
    conversation_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    return ConversationRead.from_model(service.archive_conversation(actor, conversation_id))


@conversations_router.post("/{conversation_id}/restore", response_model=ConversationRead)
def restore_conversation(
    conversation_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    return ConversationRead.from_model(service.restore_conversation(actor, conversation_id))


@conversations_router.post(
    "/{conversation_id}/participants", response_model=ConversationRead
)
def add_participant(
    conversation_id: UUID,
    data: ParticipantAdd,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    conversation = service.add_participant(actor, conversation_id, data.user_id)
    return ConversationRead.from_model(conversation)


@conversations_router.delete(
    "/{conversation_id}/participants/{user_id}", response_model=ConversationRead
)
def remove_participant(
    conversation_id: UUID,
    user_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationRead:
    conversation = service.remove_participant(actor, conversation_id, user_id)
    return ConversationRead.from_model(conversation)


@conversations_router.post("/{conversation_id}/read", response_model=MarkReadResult)
def mark_as_read(
    conversation_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> MarkReadResult:
    return MarkReadResult(updated=service.mark_as_read(actor, conversation_id))


@conversations_router.post(
    "/{conversation_id}/typing", status_code=status.HTTP_204_NO_CONTENT
)
def typing(
    conversation_id: UUID,
    data: TypingRequest,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> None:
    service.typing(actor, conversation_id, data.is_typing)


@conversations_router.get(
    "/{conversation_id}/messages", response_model=Page[MessageRead]
)
def list_messages(
    conversation_id: UUID,
    params: Params = Depends(),
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> Page[MessageRead]:
    """Messages in chronological order; customers never see internal notes."""
    query = service.list_messages_query(actor, conversation_id)
    return paginate(
        query,
        params=params,
        transformer=lambda items: [MessageRead.model_validate(m) for m in items],
    )


@conversations_router.post(
    "/{conversation_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    conversation_id: UUID,
    data: MessageCreate,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageRead:
    return MessageRead.model_validate(service.send_message(actor, conversation_id, data))


@conversations_router.get(
    "/{conversation_id}/pinned", response_model=List[MessageRead]
)
def get_pinned_messages(
    conversation_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> List[MessageRead]:
    """Pinned messages in display order (``pinned_at`` descending)."""
    return [
        MessageRead.model_validate(m)
        for m in service.get_pinned_messages(actor, conversation_id)
    ]


@conversations_router.put(
    "/{conversation_id}/pinned/order", response_model=List[MessageRead]
)
def reorder_pinned_messages(
    conversation_id: UUID,
    data: PinReorderRequest,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> List[MessageRead]:
    pinned = service.reorder_pinned_messages(actor, conversation_id, data.message_ids)
    return [MessageRead.model_validate(m) for m in pinned]
