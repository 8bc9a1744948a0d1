"""Concurrent pin commands against one conversation, each on its own session."""

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from livechat.constants.chat import Role
from livechat.core.locks import ConversationLocks
from livechat.db import Base
from livechat.exceptions import PinLimitExceededError
from livechat.models.user import User
from livechat.schemas.actor import Actor
from livechat.schemas.conversation import ConversationCreate
from livechat.schemas.message import MessageCreate
from livechat.services.conversation_service import ConversationService

WORKERS = 5


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'chat.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(file_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=file_engine)


@pytest.fixture
def seeded(session_factory, clock, settings, faker):
    """A conversation with two pinned messages and one unpinned message per worker."""
    session = session_factory()
    try:
        user = User(name=faker.name(), email=faker.unique.email(), role=Role.STAFF.value)
        session.add(user)
        session.commit()
        actor = Actor(id=user.id, role=Role.STAFF)

        service = ConversationService(
            session, clock=clock, settings=settings, locks=ConversationLocks()
        )
        conversation = service.create_conversation(actor, ConversationCreate(title="Busy"))
        messages = [
            service.send_message(actor, conversation.id, MessageCreate(body=f"Message {i}"))
            for i in range(2 + WORKERS)
        ]
        for message in messages[:2]:
            service.pin_message(actor, message.id)
        return actor, conversation.id, [message.id for message in messages[2:]]
    finally:
        session.close()


def test_concurrent_pins_respect_the_limit(session_factory, clock, settings, seeded):
    actor, conversation_id, candidate_ids = seeded
    locks = ConversationLocks()
    barrier = threading.Barrier(WORKERS)
    results = []
    results_guard = threading.Lock()

    def pin(message_id):
        session = session_factory()
        service = ConversationService(session, clock=clock, settings=settings, locks=locks)
        try:
            barrier.wait()
            service.pin_message(actor, message_id)
            outcome = "pinned"
        except PinLimitExceededError:
            outcome = "limit"
        except Exception as exc:
            outcome = repr(exc)
        finally:
            session.close()
        with results_guard:
            results.append(outcome)

    threads = [threading.Thread(target=pin, args=(mid,)) for mid in candidate_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(results) == ["limit"] * (WORKERS - 1) + ["pinned"]

    session = session_factory()
    try:
        service = ConversationService(session, clock=clock, settings=settings)
        pinned = service.get_pinned_messages(actor, conversation_id)
        assert len(pinned) == 3
        assert service.pins.pinned_count(conversation_id) == 3
    finally:
        session.close()
    assert len(locks) == 0
