"""Notification dispatch through the Celery queue."""

from __future__ import annotations

from uuid import UUID

from livechat.schemas.events import NotificationReference
from livechat.tasks.notification_task import dispatch_chat_notification_task


class CeleryNotifier:
    """Enqueues one task per recipient; delivery and retries belong to the worker."""

    def notify(self, user_id: UUID, reference: NotificationReference) -> None:
        dispatch_chat_notification_task.delay(
            str(user_id), reference.model_dump(mode="json")
        )
