import os

os.environ["ENV"] = "test"
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("BROADCAST_ENABLED", "false")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import livechat.models  # noqa: E402,F401
from livechat.config import Settings  # noqa: E402
from livechat.core.locks import ConversationLocks  # noqa: E402
from livechat.db import Base  # noqa: E402
from livechat.services.conversation_service import ConversationService  # noqa: E402

pytest_plugins = [
    "tests.fixtures.user_fixtures",
    "tests.fixtures.conversation_fixtures",
    "tests.fixtures.message_fixtures",
    "tests.fixtures.client_fixtures",
]


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingBroadcaster:
    def __init__(self) -> None:
        self.published = []

    def publish(self, conversation_id, payload, exclude_actor_id=None):
        self.published.append((conversation_id, payload, exclude_actor_id))

    def events(self):
        return [payload["event"] for _, payload, _ in self.published]


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent = []

    def notify(self, user_id, reference):
        self.sent.append((user_id, reference))

    def recipients(self):
        return [user_id for user_id, _ in self.sent]


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(db, broadcaster, notifier, clock, settings):
    """ConversationService wired to recording side effects and a frozen clock."""
    return ConversationService(
        db,
        broadcaster=broadcaster,
        notifier=notifier,
        clock=clock,
        settings=settings,
        locks=ConversationLocks(),
    )
