"""
Outbound side effects of accepted mutations: real-time broadcast and
per-user notification. Both are best-effort; a failure is logged and dropped.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol
from uuid import UUID

from livechat.exceptions import ExternalEffectError
from livechat.infra.logging_config import get_logger
from livechat.schemas.events import ChatEvent, NotificationReference

logger = get_logger("effects")


class Broadcaster(Protocol):
    def publish(
        self,
        conversation_id: UUID,
        payload: dict[str, Any],
        exclude_actor_id: Optional[UUID] = None,
    ) -> None: ...


class Notifier(Protocol):
    def notify(self, user_id: UUID, reference: NotificationReference) -> None: ...


class NullBroadcaster:
    """Used when broadcasting is disabled."""

    def publish(
        self,
        conversation_id: UUID,
        payload: dict[str, Any],
        exclude_actor_id: Optional[UUID] = None,
    ) -> None:
        logger.debug("Broadcast disabled; dropping %s", payload.get("event"))


class NullNotifier:
    def notify(self, user_id: UUID, reference: NotificationReference) -> None:
        logger.debug("Notifications disabled; dropping %s %s", reference.kind, reference.id)


class EffectDispatcher:
    """Runs side effects after commit and swallows every failure they raise."""

    def __init__(
        self,
        broadcaster: Optional[Broadcaster] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.broadcaster = broadcaster or NullBroadcaster()
        self.notifier = notifier or NullNotifier()

    def broadcast(self, event: ChatEvent) -> bool:
        try:
            self.broadcaster.publish(
                event.conversation_id,
                event.model_dump(mode="json"),
                exclude_actor_id=event.actor_id,
            )
        except Exception as exc:
            error = ExternalEffectError(f"broadcast {event.event} failed: {exc}")
            logger.warning(
                "Conversation %s: %s", event.conversation_id, error.detail, exc_info=True
            )
            return False
        return True

    def notify(
        self,
        recipients: Iterable[UUID],
        reference: NotificationReference,
        exclude: Optional[UUID] = None,
    ) -> int:
        """Notify each recipient once, skipping ``exclude``. Returns how many succeeded."""
        delivered = 0
        for user_id in sorted(set(recipients), key=str):
            if exclude is not None and user_id == exclude:
                continue
            try:
                self.notifier.notify(user_id, reference)
            except Exception as exc:
                error = ExternalEffectError(f"notify {user_id} failed: {exc}")
                logger.warning(
                    "Conversation %s: %s",
                    reference.conversation_id,
                    error.detail,
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered
