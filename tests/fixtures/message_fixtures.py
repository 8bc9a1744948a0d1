"""Fixtures for messages in the default conversation."""

import pytest

from livechat.schemas.message import MessageCreate


def send(service, actor, conversation, body="Hello", **kwargs):
    """Send a message and reset the recorded side effects."""
    message = service.send_message(
        actor, conversation.id, MessageCreate(body=body, **kwargs)
    )
    service.effects.broadcaster.published.clear()
    service.effects.notifier.sent.clear()
    return message


@pytest.fixture(scope="function")
def customer_message(service, customer, conversation):
    return send(service, customer, conversation, "Hello")


@pytest.fixture(scope="function")
def pinnable_messages(service, staff, conversation, clock):
    """Four messages from staff, one second apart."""
    messages = []
    for i in range(4):
        messages.append(send(service, staff, conversation, f"Message {i + 1}"))
        clock.advance(seconds=1)
    return messages
