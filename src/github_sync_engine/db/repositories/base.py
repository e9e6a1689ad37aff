"""Base repository pattern implementation for async SQLAlchemy.

Provides session handling, natural-key upserts and bulk deletes shared by
every entity repository.
"""

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_engine.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with common async session handling.

    Usage:
        class CommitRepository(BaseRepository[Commit]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Commit)

            async def upsert_by_sha(self, sha: str, data: dict) -> Commit:
                return await self.upsert_by_natural_key({"sha": sha}, data)

    The caller owns the session lifecycle; repositories flush but never
    commit.
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        self._session = session
        self._model_class = model_class

    @property
    def session(self) -> AsyncSession:
        """Access the underlying session."""
        return self._session

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_by_id(self, id: int) -> ModelT | None:
        """Get an entity by its primary key."""
        return await self._session.get(self._model_class, id)

    async def find_by_natural_key(self, key: Mapping[str, Any]) -> ModelT | None:
        """Find the single entity matching every field in ``key``.

        Args:
            key: Column name to value mapping forming a unique key

        Returns:
            Matching entity or None
        """
        stmt = select(self._model_class).where(
            *(getattr(self._model_class, field) == value for field, value in key.items())
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all(self, limit: int | None = None) -> list[ModelT]:
        """Get all entities, optionally limited."""
        stmt = select(self._model_class)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        """Count entities, optionally filtered."""
        stmt = select(func.count()).select_from(self._model_class)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def upsert_by_natural_key(
        self,
        key: Mapping[str, Any],
        data: Mapping[str, Any],
    ) -> ModelT:
        """Insert or update the entity identified by ``key``.

        Existing rows have every field in ``data`` overwritten (last write
        wins). New rows are built from ``key`` and ``data`` together.

        Returns:
            The persisted entity (flushed, so its id is populated)
        """
        entity = await self.find_by_natural_key(key)
        if entity is None:
            entity = self._model_class(**{**data, **key})
            self._session.add(entity)
        else:
            for field, value in data.items():
                setattr(entity, field, value)
        await self._session.flush()
        return entity

    def add(self, entity: ModelT) -> ModelT:
        """Add an entity to the session (does not flush)."""
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        """Flush pending changes without committing."""
        await self._session.flush()

    async def delete_many(self, *criteria: ColumnElement[bool]) -> int:
        """Bulk delete rows matching ``criteria``.

        Returns:
            Number of rows deleted
        """
        stmt = delete(self._model_class).where(*criteria)
        result = await self._session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]
