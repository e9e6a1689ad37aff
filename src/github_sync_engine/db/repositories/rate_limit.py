"""Repository for persisted rate limit snapshots."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import RateLimitRecord, utc_now

from .base import BaseRepository


class RateLimitRepository(BaseRepository[RateLimitRecord]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, RateLimitRecord)

    async def put(
        self,
        integration_id: int,
        *,
        limit: int,
        remaining: int,
        used: int,
        reset_at: datetime,
        expires_at: datetime,
        now: datetime | None = None,
    ) -> RateLimitRecord:
        return await self.upsert_by_natural_key(
            {"integration_id": integration_id},
            {
                "limit": limit,
                "remaining": remaining,
                "used": used,
                "reset_at": reset_at,
                "recorded_at": now or utc_now(),
                "expires_at": expires_at,
            },
        )

    async def get_live(
        self, integration_id: int, now: datetime | None = None
    ) -> RateLimitRecord | None:
        """Snapshot for the integration unless its TTL has run out."""
        record = await self.find_by_natural_key({"integration_id": integration_id})
        if record is None or record.expires_at <= (now or utc_now()):
            return None
        return record
