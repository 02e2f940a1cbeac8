"""Async SQLAlchemy engine and session factory for the progress store.

The discovery and installation queues save progress from concurrent
tasks, each in its own short session.
"""

from typing import Any

from sqlalchemy import pool
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from github_jira_sync.config import get_settings
from github_jira_sync.db.models import Base
from github_jira_sync.logging import get_logger

logger = get_logger(__name__)

# Seconds a SQLite writer waits for a concurrent save to release the lock
SQLITE_BUSY_TIMEOUT = 30

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(database_url: str) -> AsyncEngine:
    """Create an engine for ``database_url``.

    SQLite connections are not pooled and wait on a locked database
    instead of failing the save immediately.
    """
    url = make_url(database_url)
    kwargs: dict[str, Any] = {"echo": False}
    if url.get_backend_name() == "sqlite":
        kwargs["poolclass"] = pool.NullPool
        kwargs["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT}
    else:
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)


def get_engine() -> AsyncEngine:
    """Get or create the application-wide engine from settings."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
        logger.debug("Created database engine for {}", _engine.url.render_as_string())
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory used by the progress store."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_factory


async def create_tables() -> None:
    """Create the subscriptions table if it does not exist.

    Used by the CLI for local runs. Deployed databases are migrated with Alembic.
    """
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close all connections and forget the engine."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
