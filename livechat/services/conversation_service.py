"""
Command facade over the chat components.

Each public method is one unit of work: it loads and checks what it needs,
mutates under the conversation lock, commits, and only then fires the
broadcast and notification side effects with the committed state.
"""

from __future__ import annotations

import contextlib
from typing import Iterable, Iterator, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Query
from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.constants.chat import STAFF_ROLES, ChatEventType
from livechat.core.clock import Clock, utcnow
from livechat.core.locks import ConversationLocks, conversation_locks
from livechat.exceptions import ForbiddenError, NotFoundError
from livechat.infra.logging_config import get_logger
from livechat.models.comment import MessageComment
from livechat.models.conversation import Conversation
from livechat.models.message import Message
from livechat.models.user import User
from livechat.schemas.actor import Actor
from livechat.schemas.comment import CommentRead
from livechat.schemas.conversation import (
    ConversationCreate,
    ConversationListFilters,
    ConversationRead,
    ConversationUpdate,
    SubjectRef,
)
from livechat.schemas.events import ChatEvent, NotificationReference
from livechat.schemas.message import EditHistoryRead, MessageCreate, MessageRead
from livechat.services.comment_manager import CommentManager
from livechat.services.conversation_manager import (
    ConversationManager,
    FindOrCreateResult,
    SubjectResolver,
)
from livechat.services.edit_history_manager import EditHistoryManager
from livechat.services.effects import Broadcaster, EffectDispatcher, Notifier
from livechat.services.message_store import MessageStore
from livechat.services.pin_manager import PinManager
from livechat.services.reaction_manager import ReactionManager

logger = get_logger("conversation_service")

PREVIEW_LENGTH = 100


def _preview(text: Optional[str]) -> str:
    text = text or ""
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[:PREVIEW_LENGTH] + "..."


class ConversationService:
    def __init__(
        self,
        db: DBSession,
        broadcaster: Optional[Broadcaster] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
        subject_resolver: Optional[SubjectResolver] = None,
        locks: Optional[ConversationLocks] = None,
    ) -> None:
        self.db = db
        self.clock = clock or utcnow
        self.settings = settings or get_settings()
        self.locks = locks or conversation_locks
        self.effects = EffectDispatcher(broadcaster, notifier)

        self.conversations = ConversationManager(
            db,
            clock=self.clock,
            settings=self.settings,
            subject_resolver=subject_resolver,
        )
        self.edit_history = EditHistoryManager(db, clock=self.clock, settings=self.settings)
        self.messages = MessageStore(
            db,
            self.conversations,
            edit_history=self.edit_history,
            clock=self.clock,
            settings=self.settings,
        )
        self.pins = PinManager(db, self.conversations, clock=self.clock, settings=self.settings)
        self.reactions = ReactionManager(
            db, self.conversations, clock=self.clock, settings=self.settings
        )
        self.comments = CommentManager(
            db, self.conversations, clock=self.clock, settings=self.settings
        )

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    @contextlib.contextmanager
    def _locked(self, conversation_id: UUID) -> Iterator[Conversation]:
        """Hold the conversation lock and row lock for the whole command."""
        with self.locks.hold(conversation_id):
            with self._transaction():
                yield self.conversations.lock(conversation_id)

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def _accessible_conversation(self, actor: Actor, conversation_id: UUID) -> Conversation:
        conversation = self.conversations.require(conversation_id)
        self.conversations.ensure_access(actor, conversation)
        return conversation

    def _visible_message(self, actor: Actor, message_id: UUID) -> Message:
        message = self.messages.require(message_id)
        self.conversations.ensure_access(actor, message.conversation)
        if not self.messages.is_visible(actor, message):
            raise NotFoundError("Message not found")
        return message

    def _visible_comment(self, actor: Actor, comment_id: UUID) -> MessageComment:
        comment = self.comments.require(comment_id)
        self._visible_message(actor, comment.message_id)
        return comment

    def _staff_ids(self, user_ids: Iterable[UUID]) -> set[UUID]:
        ids = set(user_ids)
        if not ids:
            return set()
        rows = (
            self.db.query(User.id)
            .filter(User.id.in_(ids), User.role.in_([r.value for r in STAFF_ROLES]))
            .all()
        )
        return {row.id for row in rows}

    def _recipients_for(self, conversation: Conversation, message: Message) -> set[UUID]:
        recipients = set(conversation.participants)
        if message.is_internal_note:
            recipients = self._staff_ids(recipients)
        return recipients

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _broadcast(
        self,
        event: ChatEventType,
        conversation_id: UUID,
        actor: Optional[Actor],
        data: Optional[dict] = None,
    ) -> None:
        self.effects.broadcast(
            ChatEvent(
                event=event,
                conversation_id=conversation_id,
                actor_id=actor.id if actor else None,
                data=data or {},
                occurred_at=self.clock(),
            )
        )

    def _message_payload(self, message: Message) -> dict:
        return {"message": MessageRead.model_validate(message).model_dump(mode="json")}

    def _conversation_payload(self, conversation: Conversation) -> dict:
        return {
            "conversation": ConversationRead.from_model(conversation).model_dump(mode="json")
        }

    def _notify_message(self, actor: Actor, conversation: Conversation, message: Message) -> None:
        self.effects.notify(
            self._recipients_for(conversation, message),
            NotificationReference(
                kind="message",
                id=message.id,
                conversation_id=conversation.id,
                preview=_preview(message.body),
            ),
            exclude=actor.id,
        )

    def _notify_conversation(
        self,
        actor: Actor,
        conversation: Conversation,
        recipients: Optional[Iterable[UUID]] = None,
    ) -> None:
        self.effects.notify(
            conversation.participants if recipients is None else recipients,
            NotificationReference(
                kind="conversation",
                id=conversation.id,
                conversation_id=conversation.id,
                preview=_preview(conversation.title),
            ),
            exclude=actor.id,
        )

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def create_conversation(self, actor: Actor, data: ConversationCreate) -> Conversation:
        if data.is_internal and not actor.is_staff:
            raise ForbiddenError("Only staff can create internal conversations")
        with self._transaction():
            conversation = self.conversations.create(
                actor,
                subject=data.subject,
                initial_participants=data.participants,
                priority=data.priority,
                is_internal=data.is_internal,
                title=data.title,
                assigned_to=data.assigned_to,
            )
            if data.initial_message:
                self.messages.send(
                    actor, conversation, MessageCreate(body=data.initial_message)
                )
        self.db.refresh(conversation)
        self._broadcast(
            ChatEventType.CONVERSATION_CREATED,
            conversation.id,
            actor,
            self._conversation_payload(conversation),
        )
        self._notify_conversation(actor, conversation)
        return conversation

    def find_or_create_conversation(
        self, actor: Actor, subject: SubjectRef
    ) -> FindOrCreateResult:
        self.conversations.ensure_staff(actor, "open conversations for CRM records")
        with self._transaction():
            result = self.conversations.find_or_create_for_subject(actor, subject)
        conversation = result.conversation
        self.db.refresh(conversation)
        if result.created:
            self._broadcast(
                ChatEventType.CONVERSATION_CREATED,
                conversation.id,
                actor,
                self._conversation_payload(conversation),
            )
        elif result.joined:
            self._broadcast(
                ChatEventType.PARTICIPANT_ADDED,
                conversation.id,
                actor,
                {"user_id": str(actor.id)},
            )
            self._notify_conversation(actor, conversation)
        return result

    def get_conversation(self, actor: Actor, conversation_id: UUID) -> Conversation:
        return self._accessible_conversation(actor, conversation_id)

    def list_conversations_query(
        self, actor: Actor, filters: Optional[ConversationListFilters] = None
    ) -> Query:
        return self.conversations.list_query(actor, filters)

    def update_conversation(
        self, actor: Actor, conversation_id: UUID, data: ConversationUpdate
    ) -> Conversation:
        self.conversations.ensure_staff(actor, "update conversations")
        with self._locked(conversation_id) as conversation:
            self.conversations.ensure_active(conversation)
            self.conversations.update(conversation, data)
        self._broadcast(
            ChatEventType.CONVERSATION_UPDATED,
            conversation.id,
            actor,
            self._conversation_payload(conversation),
        )
        return conversation

    def archive_conversation(self, actor: Actor, conversation_id: UUID) -> Conversation:
        self.conversations.ensure_staff(actor, "archive conversations")
        with self._locked(conversation_id) as conversation:
            changed = self.conversations.archive(conversation)
        if changed:
            self._broadcast(ChatEventType.CONVERSATION_ARCHIVED, conversation.id, actor)
        return conversation

    def restore_conversation(self, actor: Actor, conversation_id: UUID) -> Conversation:
        self.conversations.ensure_staff(actor, "restore conversations")
        with self._locked(conversation_id) as conversation:
            changed = self.conversations.restore(conversation)
        if changed:
            self._broadcast(ChatEventType.CONVERSATION_RESTORED, conversation.id, actor)
        return conversation

    def add_participant(
        self, actor: Actor, conversation_id: UUID, user_id: UUID
    ) -> Conversation:
        self.conversations.ensure_staff(actor, "add participants")
        with self._locked(conversation_id) as conversation:
            self.conversations.ensure_active(conversation)
            added = self.conversations.participants.add(conversation, user_id)
        if added:
            self._broadcast(
                ChatEventType.PARTICIPANT_ADDED,
                conversation.id,
                actor,
                {"user_id": str(user_id)},
            )
            self._notify_conversation(actor, conversation)
        return conversation

    def remove_participant(
        self, actor: Actor, conversation_id: UUID, user_id: UUID
    ) -> Conversation:
        """Staff can remove anyone but the creator; everyone else can only leave."""
        if not actor.is_staff and actor.id != user_id:
            raise ForbiddenError("You can only remove yourself from a conversation")
        self._accessible_conversation(actor, conversation_id)
        with self._locked(conversation_id) as conversation:
            self.conversations.ensure_active(conversation)
            removed = self.conversations.participants.remove(conversation, user_id)
        if removed:
            self._broadcast(
                ChatEventType.PARTICIPANT_REMOVED,
                conversation.id,
                actor,
                {"user_id": str(user_id)},
            )
            self._notify_conversation(actor, conversation)
        return conversation

    def mark_as_read(self, actor: Actor, conversation_id: UUID) -> int:
        self._accessible_conversation(actor, conversation_id)
        with self._locked(conversation_id) as conversation:
            updated = self.conversations.mark_read_for(conversation, actor)
        if updated:
            self._broadcast(
                ChatEventType.MESSAGES_READ,
                conversation.id,
                actor,
                {"reader_id": str(actor.id), "count": updated},
            )
        return updated

    def unread_count(self, actor: Actor) -> int:
        return self.conversations.unread_count_for(actor)

    def typing(self, actor: Actor, conversation_id: UUID, is_typing: bool = True) -> None:
        """Presence only: nothing is stored."""
        conversation = self._accessible_conversation(actor, conversation_id)
        self._broadcast(
            ChatEventType.USER_TYPING,
            conversation.id,
            actor,
            {"user_id": str(actor.id), "is_typing": is_typing},
        )

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def list_messages_query(self, actor: Actor, conversation_id: UUID) -> Query:
        conversation = self._accessible_conversation(actor, conversation_id)
        return self.messages.list_query(conversation, actor)

    def get_message(self, actor: Actor, message_id: UUID) -> Message:
        return self._visible_message(actor, message_id)

    def send_message(
        self, actor: Actor, conversation_id: UUID, data: MessageCreate
    ) -> Message:
        self._accessible_conversation(actor, conversation_id)
        with self._locked(conversation_id) as conversation:
            message = self.messages.send(actor, conversation, data)
        self.db.refresh(conversation)
        self._broadcast(
            ChatEventType.MESSAGE_SENT, conversation.id, actor, self._message_payload(message)
        )
        self._notify_message(actor, conversation, message)
        return message

    def edit_message(self, actor: Actor, message_id: UUID, body: str) -> Message:
        message = self._visible_message(actor, message_id)
        with self._locked(message.conversation_id) as conversation:
            self.db.refresh(message)
            message = self.messages.edit(actor, message, body)
        self._broadcast(
            ChatEventType.MESSAGE_EDITED, conversation.id, actor, self._message_payload(message)
        )
        self._notify_message(actor, conversation, message)
        return message

    def mark_delivered(self, actor: Actor, message_id: UUID) -> Message:
        message = self._visible_message(actor, message_id)
        with self._locked(message.conversation_id):
            self.db.refresh(message)
            changed = self.messages.mark_delivered(actor, message)
        if changed:
            self._broadcast(
                ChatEventType.MESSAGE_DELIVERED,
                message.conversation_id,
                actor,
                {"message_id": str(message.id)},
            )
        return message

    def get_edit_history(self, actor: Actor, message_id: UUID) -> EditHistoryRead:
        message = self._visible_message(actor, message_id)
        return self.edit_history.get_edit_history(message)

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------

    def _reactions_payload(self, message: Message) -> dict:
        return {
            "message_id": str(message.id),
            "reactions": {
                emoji: sorted(str(user_id) for user_id in users)
                for emoji, users in message.reactions.items()
            },
        }

    def add_reaction(self, actor: Actor, message_id: UUID, emoji: str) -> Message:
        message = self._visible_message(actor, message_id)
        with self._locked(message.conversation_id):
            self.db.refresh(message)
            changed = self.reactions.add_reaction(actor, message, emoji)
        if changed:
            self._broadcast(
                ChatEventType.REACTIONS_UPDATED,
                message.conversation_id,
                actor,
                self._reactions_payload(message),
            )
        return message

    def remove_reaction(self, actor: Actor, message_id: UUID, emoji: str) -> Message:
        message = self._visible_message(actor, message_id)
        with self._locked(message.conversation_id):
            self.db.refresh(message)
            changed = self.reactions.remove_reaction(actor, message, emoji)
        if changed:
            self._broadcast(
                ChatEventType.REACTIONS_UPDATED,
                message.conversation_id,
                actor,
                self._reactions_payload(message),
            )
        return message

    # ------------------------------------------------------------------
    # Pins
    # ------------------------------------------------------------------

    def get_pinned_messages(self, actor: Actor, conversation_id: UUID) -> list[Message]:
        conversation = self._accessible_conversation(actor, conversation_id)
        return self.pins.pinned(conversation, actor)

    def pin_message(self, actor: Actor, message_id: UUID) -> Message:
        message = self._visible_message(actor, message_id)
        with self._locked(message.conversation_id):
            self.db.refresh(message)
            changed = not message.is_pinned
            message = self.pins.pin(actor, message)
        if changed:
            self._broadcast(
                ChatEventType.MESSAGE_PINNED,
                message.conversation_id,
                actor,
                self._message_payload(message),
            )
        return message

    def unpin_message(self, actor: Actor, message_id: UUID) -> Message:
        message = self._visible_message(actor, message_id)
        with self._locked(message.conversation_id):
            self.db.refresh(message)
            changed = message.is_pinned
            message = self.pins.unpin(actor, message)
        if changed:
            self._broadcast(
                ChatEventType.MESSAGE_UNPINNED,
                message.conversation_id,
                actor,
                self._message_payload(message),
            )
        return message

    def reorder_pinned_messages(
        self, actor: Actor, conversation_id: UUID, message_ids: Sequence[UUID]
    ) -> list[Message]:
        self.conversations.require(conversation_id)
        with self._locked(conversation_id) as conversation:
            self.pins.reorder(actor, conversation, message_ids)
        pinned = self.pins.pinned(conversation, actor)
        self._broadcast(
            ChatEventType.PINS_REORDERED,
            conversation.id,
            actor,
            {"message_ids": [str(message.id) for message in pinned]},
        )
        return pinned

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def list_comments(self, actor: Actor, message_id: UUID) -> list[MessageComment]:
        message = self._visible_message(actor, message_id)
        return self.comments.list_for(message)

    def add_comment(self, actor: Actor, message_id: UUID, body: str) -> MessageComment:
        message = self._visible_message(actor, message_id)
        with self._locked(message.conversation_id) as conversation:
            comment = self.comments.add(actor, message, body)
        self._broadcast(
            ChatEventType.COMMENT_ADDED,
            conversation.id,
            actor,
            {"comment": CommentRead.model_validate(comment).model_dump(mode="json")},
        )
        self.effects.notify(
            self._recipients_for(conversation, message),
            NotificationReference(
                kind="comment",
                id=comment.id,
                conversation_id=conversation.id,
                preview=_preview(comment.body),
            ),
            exclude=actor.id,
        )
        return comment

    def delete_comment(self, actor: Actor, comment_id: UUID) -> None:
        comment = self._visible_comment(actor, comment_id)
        message_id = comment.message_id
        conversation_id = comment.message.conversation_id
        with self._locked(conversation_id):
            self.comments.delete(actor, comment)
        self._broadcast(
            ChatEventType.COMMENT_DELETED,
            conversation_id,
            actor,
            {"comment_id": str(comment_id), "message_id": str(message_id)},
        )
