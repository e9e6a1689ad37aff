"""Repository for Issue records."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import Issue

from .base import BaseRepository


class IssueRepository(BaseRepository[Issue]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Issue)

    async def upsert_by_repo_and_number(
        self, repo_id: int, number: int, data: dict[str, Any]
    ) -> Issue:
        return await self.upsert_by_natural_key({"repo_id": repo_id, "number": number}, data)

    async def get_by_number(self, repo_id: int, number: int) -> Issue | None:
        return await self.find_by_natural_key({"repo_id": repo_id, "number": number})
