"""Enumerations shared by chat models, schemas and services."""

from enum import StrEnum


class Role(StrEnum):
    """Roles supplied by the identity provider."""

    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


STAFF_ROLES = frozenset({Role.ADMIN, Role.STAFF})


class SubjectType(StrEnum):
    """CRM entity a conversation is about."""

    CLIENT = "client"
    LEAD = "lead"
    GUEST_SESSION = "guest_session"


class ConversationStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class Priority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class MessageType(StrEnum):
    TEXT = "text"
    FILE = "file"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    SYSTEM = "system"


class MessageStatus(StrEnum):
    """Delivery state; only moves forward (sent -> delivered -> read)."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


class ChatEventType(StrEnum):
    """Event names published on the real-time channel."""

    CONVERSATION_CREATED = "conversation.created"
    CONVERSATION_UPDATED = "conversation.updated"
    CONVERSATION_ARCHIVED = "conversation.archived"
    CONVERSATION_RESTORED = "conversation.restored"
    PARTICIPANT_ADDED = "participant.added"
    PARTICIPANT_REMOVED = "participant.removed"
    MESSAGE_SENT = "message.sent"
    MESSAGE_EDITED = "message.edited"
    MESSAGES_READ = "messages.read"
    MESSAGE_DELIVERED = "message.delivered"
    REACTIONS_UPDATED = "reactions.updated"
    MESSAGE_PINNED = "message.pinned"
    MESSAGE_UNPINNED = "message.unpinned"
    PINS_REORDERED = "pins.reordered"
    COMMENT_ADDED = "comment.added"
    COMMENT_DELETED = "comment.deleted"
    USER_TYPING = "user.typing"


NOTIFICATION_TYPE_CHAT = "chat"
