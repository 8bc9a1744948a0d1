"""Tests for the best-effort side effect dispatcher."""

import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

from livechat.constants.chat import ChatEventType
from livechat.schemas.events import ChatEvent, NotificationReference
from livechat.services.effects import EffectDispatcher, NullBroadcaster, NullNotifier


def _event(actor_id=None):
    return ChatEvent(
        event=ChatEventType.MESSAGE_SENT,
        conversation_id=uuid.uuid4(),
        actor_id=actor_id,
        data={"message": {"body": "hi"}},
        occurred_at=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
    )


def _reference():
    conversation_id = uuid.uuid4()
    return NotificationReference(
        kind="conversation", id=conversation_id, conversation_id=conversation_id
    )


def test_broadcast_serializes_event_and_excludes_actor():
    broadcaster = MagicMock()
    actor_id = uuid.uuid4()
    event = _event(actor_id)

    assert EffectDispatcher(broadcaster=broadcaster).broadcast(event) is True

    broadcaster.publish.assert_called_once()
    args, kwargs = broadcaster.publish.call_args
    assert args[0] == event.conversation_id
    assert args[1]["event"] == "message.sent"
    assert args[1]["actor_id"] == str(actor_id)
    assert kwargs["exclude_actor_id"] == actor_id


def test_broadcast_failure_is_swallowed():
    broadcaster = MagicMock()
    broadcaster.publish.side_effect = ConnectionError("redis down")

    assert EffectDispatcher(broadcaster=broadcaster).broadcast(_event()) is False


def test_notify_deduplicates_and_skips_excluded():
    notifier = MagicMock()
    a, b, actor = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    delivered = EffectDispatcher(notifier=notifier).notify(
        [a, b, a, actor], _reference(), exclude=actor
    )

    assert delivered == 2
    notified = {call.args[0] for call in notifier.notify.call_args_list}
    assert notified == {a, b}


def test_notify_continues_after_failure():
    notifier = MagicMock()
    a, b = sorted([uuid.uuid4(), uuid.uuid4()], key=str)
    notifier.notify.side_effect = [RuntimeError("broker down"), None]

    delivered = EffectDispatcher(notifier=notifier).notify([a, b], _reference())

    assert delivered == 1
    assert notifier.notify.call_count == 2


def test_null_effects_accept_everything():
    dispatcher = EffectDispatcher()
    assert isinstance(dispatcher.broadcaster, NullBroadcaster)
    assert isinstance(dispatcher.notifier, NullNotifier)
    assert dispatcher.broadcast(_event()) is True
    assert dispatcher.notify([uuid.uuid4()], _reference()) == 1
