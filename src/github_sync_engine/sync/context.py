"""Per-run state handed explicitly to every stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from github_sync_engine.db.models import utc_now

from .exceptions import SyncCancelledError

if TYPE_CHECKING:
    from loguru import Logger

    from github_sync_engine.github.client import GitHubClient

    from .progress import ProgressReporter


@dataclass
class SyncContext:
    """Everything a stage needs for one integration.

    Built by the orchestrator for each public call and closed when the
    call returns.
    """

    integration_id: int
    github_login: str
    client: GitHubClient
    log: Logger
    reporter: ProgressReporter | None = None
    started_at: datetime = field(default_factory=utc_now)
    cancelled: bool = False

    def ensure_not_cancelled(self) -> None:
        """Raise SyncCancelledError once cancellation was requested."""
        if self.cancelled:
            raise SyncCancelledError(f"Sync for integration {self.integration_id} was cancelled")

    async def report(self, message: str, current: int) -> None:
        if self.reporter is not None:
            await self.reporter.update(message, current)
