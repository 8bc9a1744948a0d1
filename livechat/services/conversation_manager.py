"""Conversation lifecycle, access control and unread bookkeeping."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, NamedTuple, Optional, Protocol
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Query
from sqlalchemy.orm import Session as DBSession

from livechat.config import Settings, get_settings
from livechat.constants.chat import (
    ConversationStatus,
    MessageStatus,
    MessageType,
    Priority,
    SubjectType,
)
from livechat.core.clock import Clock, ensure_aware, utcnow
from livechat.core.locks import ConversationLocks, subject_locks
from livechat.exceptions import (
    ConversationArchivedError,
    ForbiddenError,
    NotFoundError,
)
from livechat.infra.logging_config import get_logger
from livechat.models.conversation import Conversation, ConversationParticipant
from livechat.models.crm_subject import CrmSubject
from livechat.models.guest_session import GuestSession
from livechat.models.message import Message
from livechat.schemas.actor import Actor
from livechat.schemas.conversation import (
    ConversationListFilters,
    ConversationUpdate,
    GuestSessionSubject,
    SubjectRef,
)
from livechat.services.participant_registry import ParticipantRegistry

logger = get_logger("conversations")


class SubjectResolver(Protocol):
    """Looks up the display name of the CRM record a conversation is about."""

    def display_name(self, subject: SubjectRef) -> Optional[str]: ...


class DatabaseSubjectResolver:
    """Resolves guests from ``guest_sessions`` and clients/leads from ``crm_subjects``."""

    def __init__(self, db: DBSession) -> None:
        self.db = db

    def display_name(self, subject: SubjectRef) -> Optional[str]:
        if isinstance(subject, GuestSessionSubject):
            guest = self.db.get(GuestSession, subject.id)
            return guest.display_name if guest else None
        record = (
            self.db.query(CrmSubject)
            .filter(
                CrmSubject.id == subject.id,
                CrmSubject.subject_type == subject.type,
            )
            .first()
        )
        return record.name if record else None


class FindOrCreateResult(NamedTuple):
    conversation: Conversation
    created: bool
    joined: bool


class ConversationManager:
    """
    Owns ``Conversation`` rows.

    Methods flush but never commit: the caller decides the transaction
    boundary so that one command is applied atomically.
    """

    def __init__(
        self,
        db: DBSession,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
        subject_resolver: Optional[SubjectResolver] = None,
        locks: Optional[ConversationLocks] = None,
    ) -> None:
        self.db = db
        self.clock = clock or utcnow
        self.settings = settings or get_settings()
        self.subject_resolver = subject_resolver or DatabaseSubjectResolver(db)
        self.subject_locks = locks or subject_locks
        self.participants = ParticipantRegistry(db)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, conversation_id: UUID) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id)
            .first()
        )

    def require(self, conversation_id: UUID) -> Conversation:
        conversation = self.get(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def lock(self, conversation_id: UUID) -> Conversation:
        """Load the conversation row with ``FOR UPDATE`` and fresh attribute values."""
        conversation = (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def find_active_for_subject(self, subject: SubjectRef) -> Optional[Conversation]:
        return (
            self.db.query(Conversation)
            .filter(
                Conversation.subject_type == subject.type,
                Conversation.subject_id == subject.id,
                Conversation.status != ConversationStatus.ARCHIVED.value,
            )
            .order_by(Conversation.created_at)
            .first()
        )

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    def can_access(self, actor: Actor, conversation: Conversation) -> bool:
        if actor.is_staff:
            return True
        if conversation.is_internal:
            return False
        return (
            conversation.creator_id == actor.id
            or actor.id in conversation.participants
        )

    def ensure_access(self, actor: Actor, conversation: Conversation) -> None:
        if self.can_access(actor, conversation):
            return
        if conversation.is_internal:
            # staff-only threads do not exist from a customer's point of view
            raise NotFoundError("Conversation not found")
        raise ForbiddenError("You do not have access to this conversation")

    def ensure_staff(self, actor: Actor, action: str) -> None:
        if not actor.is_staff:
            raise ForbiddenError(f"Only staff can {action}")

    def ensure_active(self, conversation: Conversation) -> None:
        if conversation.is_archived:
            raise ConversationArchivedError("Conversation is archived")

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(
        self,
        actor: Actor,
        subject: Optional[SubjectRef] = None,
        initial_participants: Iterable[UUID] = (),
        priority: Priority = Priority.NORMAL,
        is_internal: bool = False,
        title: Optional[str] = None,
        assigned_to: Optional[UUID] = None,
    ) -> Conversation:
        """Create an active conversation whose participants are the actor plus ``initial_participants``."""
        now = self.clock()
        conversation = Conversation(
            subject_type=subject.type if subject else None,
            subject_id=subject.id if subject else None,
            title=title,
            creator_id=actor.id,
            assigned_to=assigned_to,
            priority=Priority(priority).value,
            status=ConversationStatus.ACTIVE.value,
            is_internal=is_internal,
            last_message_at=now,
            unread_count=0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(conversation)
        self.db.flush()
        self.participants.add_many(conversation, [actor.id, *initial_participants])
        logger.info("Created conversation %s by %s", conversation.id, actor.id)
        return conversation

    def create_for_guest(self, guest: GuestSession) -> Conversation:
        """Guest conversations have no creator and no participants until staff joins."""
        now = self.clock()
        conversation = Conversation(
            subject_type=SubjectType.GUEST_SESSION.value,
            subject_id=guest.id,
            title=f"Guest Chat - {guest.display_name}",
            creator_id=None,
            priority=Priority.NORMAL.value,
            status=ConversationStatus.ACTIVE.value,
            is_internal=False,
            last_message_at=now,
            unread_count=0,
            extra={
                "guest_session_id": str(guest.id),
                "inquiry_type": guest.inquiry_type,
                "guest_info": {
                    "name": guest.guest_name,
                    "email": guest.guest_email,
                    "phone": guest.guest_phone,
                },
            },
            created_at=now,
            updated_at=now,
        )
        self.db.add(conversation)
        self.db.flush()
        logger.info("Created guest conversation %s for %s", conversation.id, guest.id)
        return conversation

    def find_or_create_for_subject(
        self, actor: Actor, subject: SubjectRef
    ) -> FindOrCreateResult:
        """
        Return the active conversation about ``subject``, creating it with a
        system message when none exists. Joins the actor when found.

        Concurrent callers in this process are serialized per subject; there is
        no database uniqueness, so two processes can still race to create.
        """
        with self.subject_locks.hold(subject.id):
            existing = self.find_active_for_subject(subject)
            if existing is not None:
                self.ensure_access(actor, existing)
                joined = self.participants.add(existing, actor.id)
                return FindOrCreateResult(existing, False, joined)

            name = self.subject_resolver.display_name(subject)
            if name is None:
                raise NotFoundError(f"{subject.type} {subject.id} not found")

            conversation = self.create(actor, subject, title=f"Chat with {name}")
            self.db.add(
                Message(
                    conversation_id=conversation.id,
                    sender_id=actor.id,
                    body=f"Conversation started with {name}",
                    message_type=MessageType.SYSTEM.value,
                    status=MessageStatus.SENT.value,
                    is_internal_note=True,
                    attachments=[],
                    created_at=conversation.created_at,
                )
            )
            self.db.flush()
            return FindOrCreateResult(conversation, True, False)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def archive(self, conversation: Conversation) -> bool:
        """``active -> archived``. Returns False when already archived."""
        if conversation.is_archived:
            return False
        conversation.status = ConversationStatus.ARCHIVED.value
        conversation.updated_at = self.clock()
        self.db.flush()
        return True

    def restore(self, conversation: Conversation) -> bool:
        """``archived -> active``. Returns False when already active."""
        if not conversation.is_archived:
            return False
        conversation.status = ConversationStatus.ACTIVE.value
        conversation.updated_at = self.clock()
        self.db.flush()
        return True

    def update(self, conversation: Conversation, data: ConversationUpdate) -> Conversation:
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "priority" and value is not None:
                value = Priority(value).value
            setattr(conversation, field, value)
        conversation.updated_at = self.clock()
        self.db.flush()
        return conversation

    def touch(self, conversation: Conversation, at: datetime) -> None:
        """Advance ``last_message_at``; it never moves backwards."""
        current = ensure_aware(conversation.last_message_at)
        if current is None or at > current:
            conversation.last_message_at = at
        self.db.flush()

    def increment_unread(self, conversation: Conversation) -> None:
        """Atomic ``unread_count + 1`` in SQL so concurrent sends cannot lose updates."""
        self.db.flush()
        self.db.query(Conversation).filter(Conversation.id == conversation.id).update(
            {Conversation.unread_count: Conversation.unread_count + 1},
            synchronize_session=False,
        )
        self.db.expire(conversation, ["unread_count"])

    def recompute_unread(self, conversation: Conversation) -> int:
        """Set ``unread_count`` from message state: messages not yet read."""
        count = (
            self.db.query(func.count(Message.id))
            .filter(
                Message.conversation_id == conversation.id,
                Message.status != MessageStatus.READ.value,
                Message.message_type != MessageType.SYSTEM.value,
            )
            .scalar()
        )
        conversation.unread_count = int(count or 0)
        self.db.flush()
        return conversation.unread_count

    def mark_read_for(self, conversation: Conversation, actor: Actor) -> int:
        """Mark every message not authored by ``actor`` as read. Idempotent."""
        now = self.clock()
        query = self.db.query(Message).filter(
            Message.conversation_id == conversation.id,
            Message.status != MessageStatus.READ.value,
            or_(Message.sender_id.is_(None), Message.sender_id != actor.id),
        )
        if not actor.is_staff:
            query = query.filter(Message.is_internal_note.is_(False))
        updated = query.update(
            {Message.status: MessageStatus.READ.value, Message.read_at: now},
            synchronize_session="fetch",
        )
        self.recompute_unread(conversation)
        return updated

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_query(
        self, actor: Actor, filters: Optional[ConversationListFilters] = None
    ) -> Query:
        """Conversations visible to the actor, most recent activity first."""
        filters = filters or ConversationListFilters()
        query = self.db.query(Conversation)

        if not actor.is_staff:
            member_of = self.db.query(ConversationParticipant.conversation_id).filter(
                ConversationParticipant.user_id == actor.id
            )
            query = query.filter(
                Conversation.is_internal.is_(False),
                or_(
                    Conversation.creator_id == actor.id,
                    Conversation.id.in_(member_of),
                ),
            )

        if filters.status:
            query = query.filter(Conversation.status == filters.status.value)
        if filters.priority:
            query = query.filter(Conversation.priority == filters.priority.value)
        if filters.search:
            query = query.filter(Conversation.title.ilike(f"%{filters.search}%"))
        if filters.assigned_to_me:
            query = query.filter(Conversation.assigned_to == actor.id)
        if filters.guest_only:
            query = query.filter(
                Conversation.subject_type == SubjectType.GUEST_SESSION.value
            )

        return query.order_by(Conversation.last_message_at.desc())

    def unread_count_for(self, actor: Actor) -> int:
        """Messages from others, not yet read, across the actor's active conversations."""
        visible = (
            self.list_query(
                actor, ConversationListFilters(status=ConversationStatus.ACTIVE)
            )
            .order_by(None)
            .with_entities(Conversation.id)
        )
        query = self.db.query(func.count(Message.id)).filter(
            Message.conversation_id.in_(visible),
            Message.status != MessageStatus.READ.value,
            Message.message_type != MessageType.SYSTEM.value,
            or_(Message.sender_id.is_(None), Message.sender_id != actor.id),
        )
        if not actor.is_staff:
            query = query.filter(Message.is_internal_note.is_(False))
        return int(query.scalar() or 0)
