"""Repository for Organization records."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import Organization, OrganizationType

from .base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Organization)

    async def upsert_by_github_id(self, github_id: int, data: dict[str, Any]) -> Organization:
        return await self.upsert_by_natural_key({"github_id": github_id}, data)

    async def find_by_login(self, integration_id: int, login: str) -> Organization | None:
        return await self.find_by_natural_key({"integration_id": integration_id, "login": login})

    async def list_for_integration(
        self,
        integration_id: int,
        type: OrganizationType | None = None,
    ) -> list[Organization]:
        """Organizations of an integration, optionally only one account type."""
        stmt = select(Organization).where(Organization.integration_id == integration_id)
        if type is not None:
            stmt = stmt.where(Organization.type == type)
        result = await self._session.execute(stmt.order_by(Organization.id))
        return list(result.scalars().all())
