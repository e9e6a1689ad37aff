"""Per-integration rate limit tracking backed by the database.

GitHub reports the remaining core quota on every response. The tracker
keeps the latest figures, persists them with a TTL equal to the time until
reset (never less than a minute), and refuses to start sync work while a
live snapshot says the quota is spent. The check is advisory: the client's
own retries remain the backstop when the snapshot is stale.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from github_sync_engine.config import get_settings
from github_sync_engine.db.engine import get_session
from github_sync_engine.db.models import RateLimitRecord, utc_now
from github_sync_engine.db.repositories import IntegrationRepository, RateLimitRepository
from github_sync_engine.logging import get_logger

from ..exceptions import GitHubRateLimitError
from .schemas import PoolRateLimit, RateLimitSnapshot

logger = get_logger(__name__)

HeadersObserver = Callable[[Mapping[str, str]], None]


class RateLimitTracker:
    """Stores and checks the core quota snapshot of each integration.

    Usage:
        tracker = RateLimitTracker(session_factory)
        await tracker.check(integration.id)  # raises GitHubRateLimitError

        client = GitHubClient(token, on_rate_limit=tracker.observer(integration.id))
        ...
        await tracker.flush(integration.id)  # persist the latest headers
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        min_ttl_seconds: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._min_ttl = timedelta(
            seconds=min_ttl_seconds
            if min_ttl_seconds is not None
            else get_settings().rate_limit.min_ttl_seconds
        )
        self._clock = clock
        self._pending: dict[int, PoolRateLimit] = {}

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------
    def observer(self, integration_id: int) -> HeadersObserver:
        """Callback for GitHubClient that remembers the newest core quota."""

        def observe(headers: Mapping[str, str]) -> None:
            snapshot = RateLimitSnapshot.from_response_headers(headers)
            core = snapshot.get_core() if snapshot else None
            if core is not None:
                self._pending[integration_id] = core

        return observe

    def latest(self, integration_id: int) -> PoolRateLimit | None:
        """Newest figures seen in this process, persisted or not."""
        return self._pending.get(integration_id)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------
    def ttl_for(self, reset_at: datetime, now: datetime) -> timedelta:
        return max(reset_at - now, self._min_ttl)

    async def record(
        self, integration_id: int, headers: Mapping[str, str]
    ) -> RateLimitRecord | None:
        """Parse ``headers`` and persist them immediately."""
        self.observer(integration_id)(headers)
        return await self.flush(integration_id)

    async def flush(self, integration_id: int) -> RateLimitRecord | None:
        """Persist the pending snapshot for the integration, if any.

        Also mirrors the figures onto the Integration row.
        """
        core = self._pending.pop(integration_id, None)
        if core is None:
            return None

        now = self._clock()
        async with get_session(self._session_factory) as session:
            record = await RateLimitRepository(session).put(
                integration_id,
                limit=core.limit,
                remaining=core.remaining,
                used=core.used,
                reset_at=core.reset_at,
                expires_at=now + self.ttl_for(core.reset_at, now),
                now=now,
            )
            integrations = IntegrationRepository(session)
            integration = await integrations.get_by_id(integration_id)
            if integration is not None:
                await integrations.update_rate_limit(
                    integration,
                    limit=core.limit,
                    remaining=core.remaining,
                    reset_at=core.reset_at,
                    used=core.used,
                )

        if core.remaining <= 0:
            logger.warning(
                "Integration {} exhausted its GitHub quota until {}",
                integration_id,
                core.reset_at.isoformat(),
            )
        return record

    async def get(self, integration_id: int) -> RateLimitRecord | None:
        """Live persisted snapshot, or None once its TTL has passed."""
        async with get_session(self._session_factory) as session:
            return await RateLimitRepository(session).get_live(integration_id, now=self._clock())

    # -------------------------------------------------------------------------
    # Admission
    # -------------------------------------------------------------------------
    async def check(self, integration_id: int) -> None:
        """Admit or reject a sync-triggering call.

        Raises:
            GitHubRateLimitError: The live snapshot shows no remaining calls
                and its reset time is still in the future
        """
        record = await self.get(integration_id)
        if record is None:
            return
        if record.remaining <= 0 and record.reset_at > self._clock():
            raise GitHubRateLimitError(
                f"GitHub API rate limit exceeded. Resets at {record.reset_at.isoformat()}",
                reset_at=record.reset_at,
            )
