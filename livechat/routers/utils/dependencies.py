import secrets
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from livechat.adapters.broadcast import RedisBroadcaster
from livechat.adapters.file_storage import FileStorage, LocalFileStorage
from livechat.adapters.notifier import CeleryNotifier
from livechat.config import get_settings
from livechat.db import get_db
from livechat.services.conversation_service import ConversationService
from livechat.services.effects import Broadcaster, Notifier, NullBroadcaster
from livechat.services.guest_chat_service import AutoResponder, GuestChatService
from livechat.workers.llm import build_auto_responder_from_env

GUEST_SESSION_HEADER = "X-Guest-Session"
GUEST_SESSION_COOKIE = "livechat_guest_session"


@lru_cache
def get_broadcaster() -> Broadcaster:
    """Process-wide broadcaster; Redis unless broadcasting is disabled."""
    settings = get_settings()
    if not settings.broadcast_enabled:
        return NullBroadcaster()
    return RedisBroadcaster(settings=settings)


@lru_cache
def get_notifier() -> Notifier:
    return CeleryNotifier()


@lru_cache
def get_auto_responder() -> Optional[AutoResponder]:
    return build_auto_responder_from_env()


@lru_cache
def get_file_storage() -> FileStorage:
    return LocalFileStorage()


def get_conversation_service(
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier),
) -> ConversationService:
    """FastAPI dependency building the chat facade for this request."""
    return ConversationService(db, broadcaster=broadcaster, notifier=notifier)


def get_guest_chat_service(
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    notifier: Notifier = Depends(get_notifier),
    auto_responder: Optional[AutoResponder] = Depends(get_auto_responder),
) -> GuestChatService:
    return GuestChatService(
        db,
        broadcaster=broadcaster,
        notifier=notifier,
        auto_responder=auto_responder,
    )


def get_guest_session_key(request: Request, response: Response) -> str:
    """Session key from header or cookie; a new one is issued as a cookie when absent."""
    key = request.headers.get(GUEST_SESSION_HEADER) or request.cookies.get(
        GUEST_SESSION_COOKIE
    )
    if not key:
        key = secrets.token_urlsafe(32)
    response.set_cookie(GUEST_SESSION_COOKIE, key, httponly=True, samesite="lax")
    return key
