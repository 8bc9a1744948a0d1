"""Tests for the per-conversation lock table."""

import threading
import uuid

import pytest

from livechat.core.locks import ConversationLocks


def test_one_lock_per_key_while_held():
    locks = ConversationLocks()
    a, b = uuid.uuid4(), uuid.uuid4()

    with locks.hold(a):
        with locks.hold(b):
            assert len(locks) == 2
        assert len(locks) == 1

    assert len(locks) == 0


def test_released_locks_are_dropped():
    locks = ConversationLocks()
    for _ in range(50):
        with locks.hold(uuid.uuid4()):
            pass
    assert len(locks) == 0


def test_lock_is_released_when_body_raises():
    locks = ConversationLocks()
    key = uuid.uuid4()

    with pytest.raises(RuntimeError):
        with locks.hold(key):
            raise RuntimeError("boom")

    assert len(locks) == 0
    with locks.hold(key):
        pass


def test_none_key_does_not_lock():
    locks = ConversationLocks()
    with locks.hold(None):
        with locks.hold(None):
            pass
    assert len(locks) == 0


def test_hold_serializes_critical_sections():
    locks = ConversationLocks()
    key = uuid.uuid4()
    counter = {"value": 0}

    def bump():
        for _ in range(200):
            with locks.hold(key):
                current = counter["value"]
                counter["value"] = current + 1

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter["value"] == 800
    assert len(locks) == 0
