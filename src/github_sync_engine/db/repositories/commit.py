"""Repository for Commit records."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import Commit

from .base import BaseRepository


class CommitRepository(BaseRepository[Commit]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Commit)

    async def upsert_by_sha(self, sha: str, data: dict[str, Any]) -> Commit:
        return await self.upsert_by_natural_key({"sha": sha}, data)

    async def count_for_repo(self, repo_id: int) -> int:
        return await self.count(Commit.repo_id == repo_id)
