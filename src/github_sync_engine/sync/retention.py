"""Retention sweeps: delete synced rows older than their retention window.

A row's age is measured by ``synced_at``, the last time a sync wrote it.
Pull requests and issues are only removed once closed; repositories only
once archived or disabled. Deleting a repository or issue cascades to its
children.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from github_sync_engine.config import RetentionConfig, get_settings
from github_sync_engine.db.engine import get_session
from github_sync_engine.db.models import (
    Base,
    Changelog,
    Commit,
    Issue,
    PullRequest,
    Repo,
    User,
    utc_now,
)
from github_sync_engine.db.repositories import BaseRepository
from github_sync_engine.logging import get_logger
from github_sync_engine.redaction import sanitize_message

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetentionRule:
    """One sweep: which table, how long rows live, and extra conditions."""

    entity: str
    model: type[Base]
    days: int
    closed_only: bool = False
    inactive_only: bool = False

    def criteria(self, cutoff: datetime) -> list[ColumnElement[bool]]:
        model: Any = self.model
        conditions: list[ColumnElement[bool]] = [model.synced_at < cutoff]
        if self.closed_only:
            conditions.append(model.state == "closed")
        if self.inactive_only:
            conditions.append(or_(model.archived.is_(True), model.disabled.is_(True)))
        return conditions


def default_rules(config: RetentionConfig) -> list[RetentionRule]:
    return [
        RetentionRule("commits", Commit, config.commits_days),
        RetentionRule("pulls", PullRequest, config.pulls_days, closed_only=True),
        RetentionRule("issues", Issue, config.issues_days, closed_only=True),
        RetentionRule("changelogs", Changelog, config.changelogs_days),
        RetentionRule("repos", Repo, config.repos_days, inactive_only=True),
        RetentionRule("users", User, config.users_days),
    ]


class RetentionSweeper:
    """Runs retention sweeps and reports table ages.

    Usage:
        sweeper = RetentionSweeper()
        summary = await sweeper.run_full_cleanup()
        print(summary["total_deleted"])
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        config: RetentionConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._rules = default_rules(config or get_settings().retention)
        self._clock = clock

    @property
    def rules(self) -> list[RetentionRule]:
        return list(self._rules)

    async def sweep(self, rule: RetentionRule) -> int:
        """Delete the rows ``rule`` has expired.

        Returns:
            Number of rows deleted
        """
        cutoff = self._clock() - timedelta(days=rule.days)
        async with get_session(self._session_factory) as session:
            deleted = await BaseRepository(session, rule.model).delete_many(*rule.criteria(cutoff))
        if deleted:
            logger.info("Retention removed {} {} synced before {}", deleted, rule.entity, cutoff.date())
        return deleted

    async def run_full_cleanup(self) -> dict[str, Any]:
        """Run every sweep concurrently; one failing sweep does not stop the rest.

        Returns:
            Dict with ``success``, ``timestamp``, ``cleanups`` (one entry per
            entity with ``deleted_count`` or ``error``) and ``total_deleted``
        """
        outcomes = await asyncio.gather(
            *(self.sweep(rule) for rule in self._rules), return_exceptions=True
        )

        cleanups: list[dict[str, Any]] = []
        total = 0
        for rule, outcome in zip(self._rules, outcomes, strict=True):
            if isinstance(outcome, Exception):
                message = sanitize_message(str(outcome))
                logger.error("Retention sweep for {} failed: {}", rule.entity, message)
                cleanups.append({"entity": rule.entity, "error": message})
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                total += outcome
                cleanups.append({"entity": rule.entity, "deleted_count": outcome})

        logger.info("Retention cleanup finished: {} rows deleted", total)
        return {
            "success": all("error" not in c for c in cleanups),
            "timestamp": self._clock().isoformat(),
            "cleanups": cleanups,
            "total_deleted": total,
        }

    async def get_retention_stats(self) -> dict[str, Any]:
        """Row counts and synced_at range per entity, with the windows."""
        entities: dict[str, dict[str, Any]] = {}
        async with get_session(self._session_factory) as session:
            for rule in self._rules:
                model: Any = rule.model
                row = (
                    await session.execute(
                        select(func.count(), func.min(model.synced_at), func.max(model.synced_at))
                    )
                ).one()
                total, oldest, newest = row
                entities[rule.entity] = {
                    "total": total or 0,
                    "oldest_synced_at": oldest.isoformat() if oldest else None,
                    "newest_synced_at": newest.isoformat() if newest else None,
                }
        return {
            "entities": entities,
            "windows": {rule.entity: rule.days for rule in self._rules},
        }
