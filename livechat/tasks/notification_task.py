"""Celery task that records an in-app chat notification for one user."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from livechat.constants.chat import NOTIFICATION_TYPE_CHAT
from livechat.db import db_manager
from livechat.infra.celery_app import celery_app
from livechat.infra.logging_config import get_logger
from livechat.models.notification import Notification
from livechat.schemas.events import NotificationReference

logger = get_logger("notifications")

_MESSAGES = {
    "conversation": "You were added to a conversation: {preview}",
    "message": "New message: {preview}",
    "comment": "New comment: {preview}",
}


@celery_app.task(name="livechat.tasks.notification_task.dispatch_chat_notification_task")
def dispatch_chat_notification_task(
    user_id_str: str, reference: dict[str, Any]
) -> Optional[str]:
    """Store a notification row pointing at the conversation entity that changed."""
    try:
        user_id = UUID(user_id_str)
        ref = NotificationReference.model_validate(reference)
    except ValueError:
        logger.warning("Invalid chat notification payload for %s", user_id_str)
        return None

    with db_manager.db_session() as db:
        notification = Notification(
            user_id=user_id,
            type=NOTIFICATION_TYPE_CHAT,
            message=_MESSAGES[ref.kind].format(preview=ref.preview),
            reference_type=ref.kind,
            reference_id=ref.id,
            conversation_id=ref.conversation_id,
        )
        db.add(notification)
        db.commit()
        notification_id = str(notification.id)

    logger.info("Chat notification %s stored for %s", notification_id, user_id)
    return notification_id
