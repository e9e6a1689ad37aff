"""Sync progress: an in-process cache in front of the shared database store.

Every write lands in both layers so a poller in another process sees the
same snapshots as the process running the sync. Entries expire after a TTL
(one hour while running); a finished run's entry is shortened to a grace
period instead of being deleted.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from github_sync_engine.config import SyncConfig, get_settings
from github_sync_engine.db.engine import get_session
from github_sync_engine.db.models import utc_now
from github_sync_engine.db.repositories import SyncProgressRepository
from github_sync_engine.logging import get_logger
from github_sync_engine.schemas.sync import SyncProgress

logger = get_logger(__name__)

ProgressListener = Callable[[int], Awaitable[None] | None]


class ProgressStore:
    """Shared progress storage for all integrations.

    One instance is shared by the orchestrator and the job queue so direct
    and queued runs are indistinguishable to a status poller.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        config: SyncConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        config = config or get_settings().sync
        self._session_factory = session_factory
        self._ttl = timedelta(seconds=config.progress_ttl_seconds)
        self._grace = timedelta(seconds=config.progress_grace_seconds)
        self._clock = clock
        self._local: dict[int, tuple[SyncProgress, datetime]] = {}

    async def write(self, integration_id: int, progress: SyncProgress) -> None:
        now = self._clock()
        self._local[integration_id] = (progress, now + self._ttl)
        async with get_session(self._session_factory) as session:
            await SyncProgressRepository(session).put(
                integration_id,
                status=progress.status,
                message=progress.message,
                current=progress.current,
                total=progress.total,
                ttl=self._ttl,
                now=now,
            )

    async def read(self, integration_id: int) -> SyncProgress | None:
        """Latest live snapshot, preferring this process's cache."""
        now = self._clock()
        cached = self._local.get(integration_id)
        if cached is not None:
            progress, expires_at = cached
            if expires_at > now:
                return progress
            del self._local[integration_id]

        async with get_session(self._session_factory) as session:
            entry = await SyncProgressRepository(session).get_live(integration_id, now=now)
            if entry is None:
                return None
            return SyncProgress(
                status=entry.status,
                message=entry.message,
                current=entry.current,
                total=entry.total,
                timestamp=entry.updated_at,
            )

    async def clear(self, integration_id: int) -> None:
        self._local.pop(integration_id, None)
        async with get_session(self._session_factory) as session:
            await SyncProgressRepository(session).clear(integration_id)

    async def schedule_expiry(self, integration_id: int) -> None:
        """Keep the entry readable for the grace period, then let it lapse."""
        now = self._clock()
        cached = self._local.get(integration_id)
        if cached is not None:
            self._local[integration_id] = (cached[0], now + self._grace)
        async with get_session(self._session_factory) as session:
            await SyncProgressRepository(session).expire_after(integration_id, self._grace, now=now)


class ProgressReporter:
    """Progress of one run, on a 0-100 scale.

    ``current`` never moves backwards within a run and never exceeds
    ``total``. An optional listener receives each new percentage (the job
    queue uses it to mirror progress onto the job).
    """

    TOTAL = 100

    def __init__(
        self,
        store: ProgressStore,
        integration_id: int,
        *,
        listener: ProgressListener | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._integration_id = integration_id
        self._listener = listener
        self._clock = clock
        self._current = 0
        self.history: list[SyncProgress] = []

    @property
    def current(self) -> int:
        return self._current

    @property
    def store(self) -> ProgressStore:
        return self._store

    def set_listener(self, listener: ProgressListener | None) -> None:
        self._listener = listener

    async def start(self, message: str = "Starting full sync") -> SyncProgress:
        self._current = 0
        self.history = []
        return await self.update(message, 0)

    async def update(self, message: str, current: int, *, status: str = "running") -> SyncProgress:
        self._current = min(max(current, self._current), self.TOTAL)
        progress = SyncProgress(
            status=status,
            message=message,
            current=self._current,
            total=self.TOTAL,
            timestamp=self._clock(),
        )
        self.history.append(progress)
        try:
            await self._store.write(self._integration_id, progress)
        except Exception as e:
            # A progress write failure must not fail the sync itself
            logger.warning("Failed to store sync progress for {}: {}", self._integration_id, e)

        if self._listener is not None:
            outcome = self._listener(self._current)
            if outcome is not None:
                await outcome
        return progress

    async def finish(self, message: str, *, status: str = "completed") -> SyncProgress:
        target = self.TOTAL if status == "completed" else self._current
        progress = await self.update(message, target, status=status)
        try:
            await self._store.schedule_expiry(self._integration_id)
        except Exception as e:
            logger.warning("Failed to schedule progress removal for {}: {}", self._integration_id, e)
        return progress
