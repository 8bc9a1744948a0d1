"""Tests for CeleryNotifier."""

import uuid
from unittest.mock import patch

from livechat.adapters.notifier import CeleryNotifier
from livechat.schemas.events import NotificationReference


def test_notify_enqueues_task():
    user_id, message_id, conversation_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    reference = NotificationReference(
        kind="message", id=message_id, conversation_id=conversation_id, preview="hi"
    )

    with patch("livechat.adapters.notifier.dispatch_chat_notification_task") as task:
        CeleryNotifier().notify(user_id, reference)

    task.delay.assert_called_once_with(
        str(user_id),
        {
            "kind": "message",
            "id": str(message_id),
            "conversation_id": str(conversation_id),
            "preview": "hi",
        },
    )
