"""Repository for User records."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import User

from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def upsert_by_github_id(self, github_id: int, data: dict[str, Any]) -> User:
        return await self.upsert_by_natural_key({"github_id": github_id}, data)
