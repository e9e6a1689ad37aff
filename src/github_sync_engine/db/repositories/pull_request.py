"""Repository for PullRequest records."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import PullRequest

from .base import BaseRepository


class PullRequestRepository(BaseRepository[PullRequest]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PullRequest)

    async def upsert_by_repo_and_number(
        self, repo_id: int, number: int, data: dict[str, Any]
    ) -> PullRequest:
        return await self.upsert_by_natural_key({"repo_id": repo_id, "number": number}, data)

    async def get_by_number(self, repo_id: int, number: int) -> PullRequest | None:
        return await self.find_by_natural_key({"repo_id": repo_id, "number": number})
