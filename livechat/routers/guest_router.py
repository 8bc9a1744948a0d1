"""Public guest chat API. Visitors are identified by their session key only."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from livechat.routers.utils.dependencies import (
    get_guest_chat_service,
    get_guest_session_key,
)
from livechat.schemas.conversation import ConversationRead
from livechat.schemas.guest import (
    GuestChatRead,
    GuestInfoUpdate,
    GuestMessageCreate,
    GuestSendRead,
    GuestSessionRead,
)
from livechat.schemas.message import MessageRead
from livechat.services.guest_chat_service import GuestChat, GuestChatService

guest_router = APIRouter(prefix="/guest", tags=["Guest chat"])


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _chat_read(chat: GuestChat) -> GuestChatRead:
    return GuestChatRead(
        session=GuestSessionRead.model_validate(chat.session),
        conversation=ConversationRead.from_model(chat.conversation),
        messages=[MessageRead.model_validate(m) for m in chat.messages],
    )


@guest_router.post("/session", response_model=GuestChatRead)
def initialize_session(
    request: Request,
    session_key: str = Depends(get_guest_session_key),
    service: GuestChatService = Depends(get_guest_chat_service),
) -> GuestChatRead:
    """Start or resume the visitor's chat; returns the latest 50 messages."""
    return _chat_read(service.initialize_session(session_key, _client_ip(request)))


@guest_router.patch("/session", response_model=GuestSessionRead)
def update_guest_info(
    data: GuestInfoUpdate,
    session_key: str = Depends(get_guest_session_key),
    service: GuestChatService = Depends(get_guest_chat_service),
) -> GuestSessionRead:
    return GuestSessionRead.model_validate(service.update_guest_info(session_key, data))


@guest_router.post("/messages", response_model=GuestSendRead)
def send_guest_message(
    request: Request,
    data: GuestMessageCreate,
    session_key: str = Depends(get_guest_session_key),
    service: GuestChatService = Depends(get_guest_chat_service),
) -> GuestSendRead:
    result = service.send_guest_message(session_key, data, _client_ip(request))
    return GuestSendRead(
        message=MessageRead.model_validate(result.message),
        ai_response=(
            MessageRead.model_validate(result.ai_response)
            if result.ai_response is not None
            else None
        ),
    )


@guest_router.get("/messages", response_model=Optional[GuestChatRead])
def get_guest_messages(
    session_key: str = Depends(get_guest_session_key),
    service: GuestChatService = Depends(get_guest_chat_service),
) -> Optional[GuestChatRead]:
    """Poll for new messages. ``null`` until the visitor has a conversation."""
    chat = service.get_messages(session_key)
    if chat is None:
        return None
    return _chat_read(chat)
