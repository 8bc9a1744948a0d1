"""Messages API: edit, delivery, edit history, reactions, pins and comments."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from livechat.auth.dependencies import get_current_actor
from livechat.routers.utils.dependencies import get_conversation_service
from livechat.schemas.actor import Actor
from livechat.schemas.comment import CommentCreate, CommentRead
from livechat.schemas.message import (
    EditHistoryRead,
    MessageEditRequest,
    MessageRead,
    ReactionRequest,
    ReactionsRead,
)
from livechat.services.conversation_service import ConversationService

messages_router = APIRouter(prefix="/messages", tags=["Message"])
comments_router = APIRouter(prefix="/comments", tags=["Comment"])


def _reactions(message) -> ReactionsRead:
    return ReactionsRead(message_id=message.id, reactions=message.reactions)


@messages_router.get("/{message_id}", response_model=MessageRead)
def get_message(
    message_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageRead:
    return MessageRead.model_validate(service.get_message(actor, message_id))


@messages_router.patch("/{message_id}", response_model=MessageRead)
def edit_message(
    message_id: UUID,
    data: MessageEditRequest,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageRead:
    """Edit your own message within the edit window."""
    return MessageRead.model_validate(service.edit_message(actor, message_id, data.body))


@messages_router.post("/{message_id}/delivered", response_model=MessageRead)
def mark_delivered(
    message_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageRead:
    return MessageRead.model_validate(service.mark_delivered(actor, message_id))


@messages_router.get("/{message_id}/history", response_model=EditHistoryRead)
def get_edit_history(
    message_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> EditHistoryRead:
    return service.get_edit_history(actor, message_id)


@messages_router.post("/{message_id}/reactions", response_model=ReactionsRead)
def add_reaction(
    message_id: UUID,
    data: ReactionRequest,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ReactionsRead:
    return _reactions(service.add_reaction(actor, message_id, data.emoji))


@messages_router.delete("/{message_id}/reactions/{emoji}", response_model=ReactionsRead)
def remove_reaction(
    message_id: UUID,
    emoji: str,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> ReactionsRead:
    return _reactions(service.remove_reaction(actor, message_id, emoji))


@messages_router.post("/{message_id}/pin", response_model=MessageRead)
def pin_message(
    message_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageRead:
    return MessageRead.model_validate(service.pin_message(actor, message_id))


@messages_router.delete("/{message_id}/pin", response_model=MessageRead)
def unpin_message(
    message_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageRead:
    return MessageRead.model_validate(service.unpin_message(actor, message_id))


@messages_router.get("/{message_id}/comments", response_model=List[CommentRead])
def list_comments(
    message_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> List[CommentRead]:
    return [CommentRead.model_validate(c) for c in service.list_comments(actor, message_id)]


@messages_router.post(
    "/{message_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    message_id: UUID,
    data: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> CommentRead:
    return CommentRead.model_validate(service.add_comment(actor, message_id, data.body))


@comments_router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: ConversationService = Depends(get_conversation_service),
) -> None:
    """Only the author or an administrator can delete a comment."""
    service.delete_comment(actor, comment_id)
