"""Pytest configuration and shared fixtures.

Usage Guide:
- For store/engine tests: use the `store` fixture (in-memory SQLite)
- For snapshots, jobs and summaries: import factories from tests.factories
- For GitHub/Jira: use the `github_client` / `jira_client` AsyncMock fixtures
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from github_jira_sync.config import get_settings
from github_jira_sync.db.models import Base
from github_jira_sync.github import GitHubClient
from github_jira_sync.jira import JiraClient
from github_jira_sync.sync import ProgressStore

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# A fixed "now" keeps rate-limit and duration arithmetic deterministic.
# -----------------------------------------------------------------------------
NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)
NOW_MS = int(NOW.timestamp() * 1000)

JAN_10 = datetime(2026, 1, 10, 9, 0, 0, tzinfo=UTC)
JAN_12 = datetime(2026, 1, 12, 16, 0, 0, tzinfo=UTC)
JAN_14 = datetime(2026, 1, 14, 10, 0, 0, tzinfo=UTC)

SYNC_STARTED = NOW - timedelta(minutes=10)

JIRA_HOST = "https://acme.atlassian.net"
INSTALLATION_ID = 1234


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings for every test so monkeypatched env vars apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    StaticPool shares the single in-memory database between sessions, so
    each ProgressStore call sees the others' writes.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create an async session with auto-rollback.

    Changes are rolled back after each test to ensure isolation.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session_factory) -> ProgressStore:
    return ProgressStore(session_factory)


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def github_client() -> AsyncMock:
    """AsyncMock GitHub client usable as an async context manager."""
    client = AsyncMock(spec=GitHubClient)
    client.__aenter__.return_value = client
    client.__aexit__.return_value = None
    return client


@pytest.fixture
def jira_client() -> AsyncMock:
    """AsyncMock Jira client; submissions report no truncation."""
    client = AsyncMock(spec=JiraClient)
    client.__aenter__.return_value = client
    client.__aexit__.return_value = None
    client.submit_repository_update.return_value = False
    return client
