"""
Typed failures raised by the chat core.

Every error carries the HTTP status and a stable machine-readable code so the
web layer can translate it without inspecting messages.
"""

from __future__ import annotations


class LiveChatError(Exception):
    """Base class for errors reported synchronously to the caller."""

    status_code = 400
    code = "livechat_error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__


class ValidationError(LiveChatError):
    """Malformed or out-of-range input. No state change."""

    status_code = 422
    code = "validation_error"


class ConversationArchivedError(ValidationError):
    """Mutation attempted on an archived conversation."""

    status_code = 409
    code = "conversation_archived"


class ForbiddenError(LiveChatError):
    status_code = 403
    code = "forbidden"


class NotFoundError(LiveChatError):
    status_code = 404
    code = "not_found"


class EditWindowExpiredError(LiveChatError):
    status_code = 403
    code = "edit_window_expired"


class NoChangeError(LiveChatError):
    status_code = 400
    code = "no_change"


class PinLimitExceededError(LiveChatError):
    status_code = 400
    code = "pin_limit_exceeded"


class CrossConversationPinError(LiveChatError):
    status_code = 400
    code = "cross_conversation_pin"


class ExternalEffectError(LiveChatError):
    """Broadcast or notification failure. Logged, never surfaced."""

    status_code = 502
    code = "external_effect_failure"
