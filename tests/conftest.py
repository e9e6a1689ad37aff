"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM model tests: use ``db_session`` with factories from tests.factories
- For code that opens its own sessions (orchestrator, stores, sweeper):
  pass ``session_factory`` and seed through ``get_session(session_factory)``
- For GitHub payloads: use the ``make_github_*`` dict factories
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from github_sync_engine.config import QueueConfig, RetryConfig, Settings
from github_sync_engine.db.engine import enable_sqlite_foreign_keys
from github_sync_engine.db.models import Base

# -----------------------------------------------------------------------------
# Test Timeline Constants
# -----------------------------------------------------------------------------
JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)

JAN_10_ISO = "2024-01-10T09:00:00Z"
JAN_12_ISO = "2024-01-12T16:00:00Z"
JAN_15_ISO = "2024-01-15T10:00:00Z"
JAN_16_ISO = "2024-01-16T14:00:00Z"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    StaticPool keeps the single connection (and so the database) alive for
    every session of the test. Sessions must therefore not overlap.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the in-memory test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory):
    """Create an async session with auto-rollback.

    Changes are rolled back after each test to ensure isolation.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over a file database, for code that runs sessions concurrently."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}", echo=False)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


# -----------------------------------------------------------------------------
# Settings & Utility Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def test_settings() -> Settings:
    """Settings with single-attempt GitHub calls and a fast job queue."""
    return Settings(
        _env_file=None,
        github_token="",
        retry=RetryConfig(max_attempts=1),
        queue=QueueConfig(attempts=2, backoff_base_seconds=0.0, timeout_seconds=5.0),
    )


@pytest.fixture
def clock() -> FrozenClock:
    """Controllable clock starting at the real current time."""
    return FrozenClock()


@pytest.fixture
def utc_now() -> datetime:
    """Current UTC datetime for tests."""
    return datetime.now(UTC)
