"""Repository for the shared sync progress table."""

from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import SyncProgressEntry, utc_now

from .base import BaseRepository


class SyncProgressRepository(BaseRepository[SyncProgressEntry]):
    """TTL-bounded progress rows, one per integration.

    Rows whose ``expires_at`` has passed read as absent and are purged
    lazily on access.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SyncProgressEntry)

    async def put(
        self,
        integration_id: int,
        *,
        status: str,
        message: str,
        current: int,
        total: int,
        ttl: timedelta,
        now: datetime | None = None,
    ) -> SyncProgressEntry:
        now = now or utc_now()
        return await self.upsert_by_natural_key(
            {"integration_id": integration_id},
            {
                "status": status,
                "message": message,
                "current": current,
                "total": total,
                "updated_at": now,
                "expires_at": now + ttl,
            },
        )

    async def get_live(
        self, integration_id: int, now: datetime | None = None
    ) -> SyncProgressEntry | None:
        entry = await self.find_by_natural_key({"integration_id": integration_id})
        if entry is None:
            return None
        if entry.expires_at <= (now or utc_now()):
            await self._session.delete(entry)
            await self._session.flush()
            return None
        return entry

    async def expire_after(
        self, integration_id: int, delay: timedelta, now: datetime | None = None
    ) -> None:
        """Shorten the row's lifetime so it disappears ``delay`` from now."""
        entry = await self.find_by_natural_key({"integration_id": integration_id})
        if entry is not None:
            entry.expires_at = (now or utc_now()) + delay
            await self._session.flush()

    async def clear(self, integration_id: int) -> None:
        await self._session.execute(
            delete(SyncProgressEntry).where(SyncProgressEntry.integration_id == integration_id)
        )
