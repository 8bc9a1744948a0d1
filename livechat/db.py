"""Database engine, declarative Base and session helpers."""

from __future__ import annotations

import contextlib
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from livechat.config import get_settings

Base = declarative_base()


class DatabaseManager:
    """Lazily builds the engine from settings and hands out sessions."""

    def __init__(self, database_url: Optional[str] = None) -> None:
        self._database_url = database_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            settings = get_settings()
            url = self._database_url or settings.database_url
            if url.startswith("sqlite"):
                self._engine = create_engine(
                    url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                self._engine = create_engine(
                    url,
                    pool_size=settings.database_pool_size,
                    max_overflow=settings.database_max_overflow,
                    pool_pre_ping=True,
                    connect_args={"application_name": settings.app_name},
                )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                autocommit=False, autoflush=False, bind=self.engine
            )
        return self._session_factory

    @contextlib.contextmanager
    def db_session(self) -> Iterator[Session]:
        """Session scope for code running outside a request (Celery tasks)."""
        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


db_manager = DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    with db_manager.db_session() as session:
        yield session
