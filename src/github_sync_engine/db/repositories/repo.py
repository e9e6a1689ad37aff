"""Repository for Repo records."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import Repo

from .base import BaseRepository


class RepoRepository(BaseRepository[Repo]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Repo)

    async def upsert_by_github_id(self, github_id: int, data: dict[str, Any]) -> Repo:
        return await self.upsert_by_natural_key({"github_id": github_id}, data)

    async def find_by_owner_and_name(
        self, integration_id: int, owner: str, name: str
    ) -> Repo | None:
        return await self.find_by_natural_key(
            {"integration_id": integration_id, "owner": owner, "name": name}
        )

    async def list_for_integration(self, integration_id: int) -> list[Repo]:
        stmt = select(Repo).where(Repo.integration_id == integration_id).order_by(Repo.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
