"""Repository for Changelog records."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import Changelog

from .base import BaseRepository


class ChangelogRepository(BaseRepository[Changelog]):
    """Append-only access to issue timelines."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Changelog)

    async def create_if_absent(
        self, issue_id: int, github_event_id: int, data: dict[str, Any]
    ) -> bool:
        """Insert the event unless (issue, event id) is already stored.

        Returns:
            True if a row was created
        """
        existing = await self.find_by_natural_key(
            {"issue_id": issue_id, "github_event_id": github_event_id}
        )
        if existing is not None:
            return False
        self._session.add(Changelog(issue_id=issue_id, github_event_id=github_event_id, **data))
        await self._session.flush()
        return True

    async def list_for_issue(self, issue_id: int) -> list[Changelog]:
        """Timeline of an issue, oldest first."""
        stmt = (
            select(Changelog)
            .where(Changelog.issue_id == issue_id)
            .order_by(Changelog.event_created_at, Changelog.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
