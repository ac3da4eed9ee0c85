"""Engine and session helpers for the relational store.

The application builds one :class:`Database` at startup and hands it to the
components that need it; nothing in this module holds process-wide state.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Settings
from ..errors import ServiceUnavailableError
from .monitoring import instrument_engine

logger = logging.getLogger(__name__)


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def build_engine(settings: Settings) -> Engine:
    database_url = settings.database_url
    if not database_url:
        raise ServiceUnavailableError("database not configured")

    kwargs: dict[str, object] = {
        "echo": settings.database_echo,
        "future": True,
        "pool_pre_ping": True,
    }

    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            # One shared connection, otherwise every checkout sees an empty database.
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = settings.database_pool_size
        kwargs["max_overflow"] = settings.database_max_overflow

    engine = create_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Lazily connected engine plus session factory for one application."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker[Session]] = None

    @property
    def configured(self) -> bool:
        return self._settings.database_configured

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = build_engine(self._settings)
            instrument_engine(self._engine)
            self._session_factory = sessionmaker(
                bind=self._engine,
                autoflush=False,
                autocommit=False,
                expire_on_commit=False,
                future=True,
            )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self.engine  # noqa: B018
        assert self._session_factory is not None
        return self._session_factory

    @contextmanager
    def session_scope(self, *, commit: bool = True) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            yield session
            if commit:
                session.commit()
        except Exception:  # noqa: BLE001
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        from .base import Base
        from . import models  # noqa: F401

        logger.info("Creating database schema on %s", self.engine.dialect.name)
        Base.metadata.create_all(self.engine)

    def ping(self) -> None:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_session_dependency(request: Request) -> Generator[Session, None, None]:
    database = get_database(request)
    if not database.configured:
        raise ServiceUnavailableError("database not configured")
    with database.session_scope() as session:
        yield session


__all__ = [
    "Database",
    "build_engine",
    "get_database",
    "get_session_dependency",
]
