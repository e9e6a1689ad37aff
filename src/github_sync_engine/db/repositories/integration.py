"""Repository for Integration records."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import Integration, SyncStatus, utc_now

from .base import BaseRepository


class IntegrationRepository(BaseRepository[Integration]):
    """Reads and mutates integration sync state.

    JSON columns are always reassigned, never mutated in place, so the
    ORM notices the change.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Integration)

    async def get_active(self) -> list[Integration]:
        """All integrations that still hold credentials."""
        stmt = select(Integration).where(Integration.is_active.is_(True)).order_by(Integration.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_needing_sync(
        self, *, now: datetime | None = None, stale_after: timedelta = timedelta(hours=24)
    ) -> list[Integration]:
        """Active integrations never synced or last synced more than ``stale_after`` ago."""
        return [i for i in await self.get_active() if i.needs_sync(now, stale_after)]

    async def create(
        self,
        github_login: str,
        access_token: str,
        *,
        github_user_id: int | None = None,
        scope: str | None = None,
    ) -> Integration:
        """Create an integration, or reactivate the existing one for the login."""
        integration = await self.find_by_natural_key({"github_login": github_login})
        if integration is None:
            integration = Integration(
                github_login=github_login,
                sync_progress={},
                sync_metadata={},
                rate_limit_info={},
            )
            self._session.add(integration)
        integration.access_token = access_token
        integration.github_user_id = github_user_id
        integration.scope = scope
        integration.is_active = True
        await self._session.flush()
        return integration

    async def update_sync_status(self, integration: Integration, status: SyncStatus) -> None:
        integration.sync_status = status
        await self._session.flush()

    async def update_progress(
        self, integration: Integration, current: int, total: int, message: str
    ) -> None:
        integration.sync_progress = {"current": current, "total": total, "message": message}
        await self._session.flush()

    async def update_metadata(self, integration: Integration, **fields: Any) -> None:
        """Merge ``fields`` into the integration metadata."""
        integration.sync_metadata = {**(integration.sync_metadata or {}), **fields}
        await self._session.flush()

    async def update_rate_limit(
        self,
        integration: Integration,
        *,
        limit: int,
        remaining: int,
        reset_at: datetime,
        used: int,
    ) -> None:
        integration.rate_limit_info = {
            "limit": limit,
            "remaining": remaining,
            "reset": reset_at.isoformat(),
            "used": used,
        }
        await self._session.flush()

    async def mark_synced(self, integration: Integration, at: datetime | None = None) -> None:
        """Stamp ``last_sync_at`` and mark the run completed."""
        integration.last_sync_at = at or utc_now()
        integration.sync_status = SyncStatus.COMPLETED
        await self._session.flush()

    async def deactivate(self, integration: Integration) -> None:
        integration.deactivate()
        await self._session.flush()
