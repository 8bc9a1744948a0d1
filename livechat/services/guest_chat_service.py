"""Anonymous website visitors chatting with staff, with optional AI auto-response."""

from __future__ import annotations

import contextlib
from datetime import timedelta
from typing import Iterator, NamedTuple, Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.constants.chat import STAFF_ROLES, ChatEventType, MessageType
from livechat.core.clock import Clock, ensure_aware, utcnow
from livechat.core.locks import ConversationLocks, conversation_locks
from livechat.infra.logging_config import get_logger
from livechat.models.conversation import Conversation
from livechat.models.guest_session import GuestSession
from livechat.models.message import Message
from livechat.models.user import User
from livechat.schemas.conversation import GuestSessionSubject
from livechat.schemas.events import ChatEvent, NotificationReference
from livechat.schemas.guest import (
    AIHistoryItem,
    AIReply,
    GuestInfoUpdate,
    GuestMessageCreate,
)
from livechat.schemas.message import MessageRead
from livechat.services.conversation_manager import ConversationManager
from livechat.services.effects import Broadcaster, EffectDispatcher, Notifier
from livechat.services.message_store import MessageStore

logger = get_logger("guest_chat")

INITIAL_MESSAGE_LIMIT = 50


class AutoResponder(Protocol):
    """Black-box text generator. ``None`` means "do not answer"."""

    def respond(
        self, latest_guest_message: str, history: Sequence[AIHistoryItem]
    ) -> Optional[AIReply]: ...


class GuestChat(NamedTuple):
    session: GuestSession
    conversation: Conversation
    messages: list[Message]


class GuestSendResult(NamedTuple):
    message: Message
    ai_response: Optional[Message]


class GuestChatService:
    """
    Guests are identified by a session key only. Their messages have no
    sender, and they never see internal notes.
    """

    def __init__(
        self,
        db: DBSession,
        broadcaster: Optional[Broadcaster] = None,
        notifier: Optional[Notifier] = None,
        auto_responder: Optional[AutoResponder] = None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
        locks: Optional[ConversationLocks] = None,
    ) -> None:
        self.db = db
        self.clock = clock or utcnow
        self.settings = settings or get_settings()
        self.locks = locks or conversation_locks
        self.effects = EffectDispatcher(broadcaster, notifier)
        self.auto_responder = auto_responder
        self.conversations = ConversationManager(db, clock=self.clock, settings=self.settings)
        self.messages = MessageStore(
            db, self.conversations, clock=self.clock, settings=self.settings
        )

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Session and conversation lookup
    # ------------------------------------------------------------------

    def get_session(self, session_key: str) -> Optional[GuestSession]:
        return (
            self.db.query(GuestSession)
            .filter(GuestSession.session_key == session_key)
            .first()
        )

    def _get_or_create_session(
        self, session_key: str, ip_address: Optional[str] = None
    ) -> GuestSession:
        guest = self.get_session(session_key)
        now = self.clock()
        if guest is None:
            guest = GuestSession(
                session_key=session_key,
                ip_address=ip_address,
                last_activity_at=now,
                created_at=now,
                updated_at=now,
            )
            self.db.add(guest)
            self.db.flush()
            logger.info("Created guest session %s", guest.id)
        else:
            guest.last_activity_at = now
            if ip_address:
                guest.ip_address = ip_address
        return guest

    def _conversation_for(self, guest: GuestSession) -> Optional[Conversation]:
        return self.conversations.find_active_for_subject(GuestSessionSubject(id=guest.id))

    def _get_or_create_conversation(self, guest: GuestSession) -> Conversation:
        conversation = self._conversation_for(guest)
        if conversation is None:
            conversation = self.conversations.create_for_guest(guest)
        return conversation

    # ------------------------------------------------------------------
    # Guest commands
    # ------------------------------------------------------------------

    def initialize_session(
        self, session_key: str, ip_address: Optional[str] = None
    ) -> GuestChat:
        """Return the guest's session, conversation and most recent messages."""
        with self._transaction():
            guest = self._get_or_create_session(session_key, ip_address)
            conversation = self._get_or_create_conversation(guest)
        messages = self.messages.latest_for(conversation, INITIAL_MESSAGE_LIMIT)
        return GuestChat(guest, conversation, messages)

    def update_guest_info(self, session_key: str, data: GuestInfoUpdate) -> GuestSession:
        with self._transaction():
            guest = self._get_or_create_session(session_key)
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(guest, field, value)
            guest.updated_at = self.clock()
        self.db.refresh(guest)
        return guest

    def get_messages(self, session_key: str) -> Optional[GuestChat]:
        guest = self.get_session(session_key)
        if guest is None:
            return None
        conversation = self._conversation_for(guest)
        if conversation is None:
            return None
        with self._transaction():
            guest.last_activity_at = self.clock()
        messages = self.messages.latest_for(conversation, INITIAL_MESSAGE_LIMIT)
        return GuestChat(guest, conversation, messages)

    def send_guest_message(
        self,
        session_key: str,
        data: GuestMessageCreate,
        ip_address: Optional[str] = None,
    ) -> GuestSendResult:
        with self._transaction():
            guest = self._get_or_create_session(session_key, ip_address)
            conversation = self._get_or_create_conversation(guest)
        conversation_id = conversation.id

        with self.locks.hold(conversation_id):
            with self._transaction():
                conversation = self.conversations.lock(conversation_id)
                message = self.messages.send_as_guest(
                    conversation, guest, data, ip_address=ip_address
                )

        self._broadcast_message(message)
        self.effects.notify(
            self._staff_user_ids(),
            NotificationReference(
                kind="message",
                id=message.id,
                conversation_id=conversation_id,
                preview=f"New guest message from {guest.display_name}: {message.body[:100]}",
            ),
        )

        ai_message = self._auto_respond(conversation, guest, message)
        return GuestSendResult(message, ai_message)

    # ------------------------------------------------------------------
    # AI auto-response
    # ------------------------------------------------------------------

    def should_trigger_ai(self, conversation: Conversation) -> bool:
        """
        Answer automatically only while no human is handling the chat and
        the bot has not just spoken.
        """
        if not self.settings.ai_auto_response_enabled or self.auto_responder is None:
            return False
        if conversation.assigned_to is not None:
            return False

        now = self.clock()
        human_since = now - timedelta(minutes=self.settings.ai_human_activity_window_minutes)
        ai_since = now - timedelta(minutes=self.settings.ai_recent_response_cooldown_minutes)
        recent = self.db.query(Message).filter(Message.conversation_id == conversation.id)

        recent_human = recent.filter(
            Message.sender_id.isnot(None),
            Message.message_type != MessageType.SYSTEM.value,
            Message.created_at > human_since,
        )
        if self.db.query(recent_human.exists()).scalar():
            return False

        recent_ai = recent.filter(
            Message.extra["is_ai_response"].as_boolean().is_(True),
            Message.created_at > ai_since,
        )
        return not self.db.query(recent_ai.exists()).scalar()

    def history_for_ai(self, conversation: Conversation) -> list[AIHistoryItem]:
        history = []
        for message in self.messages.latest_for(conversation, self.settings.ai_history_limit):
            if message.is_ai_response:
                role = "ai"
            elif message.sender_id is None:
                role = "user"
            else:
                role = "agent"
            history.append(
                AIHistoryItem(
                    role=role,
                    text=message.body,
                    timestamp=ensure_aware(message.created_at),
                )
            )
        return history

    def _auto_respond(
        self, conversation: Conversation, guest: GuestSession, guest_message: Message
    ) -> Optional[Message]:
        if not self.should_trigger_ai(conversation):
            return None
        history = self.history_for_ai(conversation)
        try:
            reply = self.auto_responder.respond(guest_message.body, history)
        except Exception:
            logger.warning(
                "Auto-responder failed for conversation %s", conversation.id, exc_info=True
            )
            return None
        if reply is None:
            return None

        with self.locks.hold(conversation.id):
            with self._transaction():
                conversation = self.conversations.lock(conversation.id)
                ai_message = self.messages.record_ai_reply(
                    conversation, guest, reply, guest_message
                )
        self._broadcast_message(ai_message)
        return ai_message

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _broadcast_message(self, message: Message) -> None:
        self.effects.broadcast(
            ChatEvent(
                event=ChatEventType.MESSAGE_SENT,
                conversation_id=message.conversation_id,
                actor_id=None,
                data={"message": MessageRead.model_validate(message).model_dump(mode="json")},
                occurred_at=self.clock(),
            )
        )

    def _staff_user_ids(self) -> list[UUID]:
        rows = (
            self.db.query(User.id)
            .filter(User.role.in_([role.value for role in STAFF_ROLES]))
            .all()
        )
        return [row.id for row in rows]

