"""Result objects for sync stages and full runs.

Stage methods return a StageResult; a full sync collects them into a
SyncRunReport. Both render to plain dicts for the CLI and job results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from github_sync_engine.db.models import SyncStatus, utc_now
from github_sync_engine.redaction import sanitize_error


class StageStatus(StrEnum):
    """Outcome of one stage."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StageResult:
    """Result of a single sync stage (organizations, commits, ...)."""

    stage: str
    """Stage name, e.g. "commits"."""

    target: str | None = None
    """What the stage ran against, e.g. "acme/widgets"."""

    status: StageStatus = StageStatus.SUCCESS
    """How the stage ended."""

    stats: dict[str, int] = field(default_factory=dict)
    """Stage-specific counters (items stored, detail failures, ...)."""

    error: dict[str, Any] | None = None
    """Sanitized error description if the stage failed."""

    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    @property
    def success(self) -> bool:
        return self.status != StageStatus.FAILED

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def message(self) -> str:
        label = f"{self.stage} ({self.target})" if self.target else self.stage
        if self.status == StageStatus.FAILED:
            reason = self.error["message"] if self.error else "unknown error"
            return f"{label} failed: {reason}"
        if self.status == StageStatus.SKIPPED:
            return f"{label} skipped"
        counts = ", ".join(f"{value} {key}" for key, value in self.stats.items())
        return f"{label} synced" + (f": {counts}" if counts else "")

    def finish(self) -> StageResult:
        """Stamp the completion time and return self."""
        self.completed_at = utc_now()
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "stage": self.stage,
            "status": self.status.value,
            **self.stats,
        }
        if self.target:
            result["target"] = self.target
        if self.error:
            result["error"] = self.error
        return result

    @classmethod
    def from_error(cls, stage: str, error: Exception, target: str | None = None) -> StageResult:
        """Create a failed result with a credential-free error description."""
        return cls(
            stage=stage,
            target=target,
            status=StageStatus.FAILED,
            error=sanitize_error(error),
        ).finish()

    @classmethod
    def skipped(cls, stage: str, target: str | None = None) -> StageResult:
        return cls(stage=stage, target=target, status=StageStatus.SKIPPED).finish()


@dataclass
class SyncRunReport:
    """Aggregated outcome of one full sync."""

    integration_id: int
    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    status: SyncStatus = SyncStatus.SYNCING
    """Final integration status (completed or failed)."""

    stages: list[StageResult] = field(default_factory=list)

    repositories: int = 0
    """Repositories processed by the per-repository stages."""

    error: dict[str, Any] | None = None
    """Sanitized cause when the run failed."""

    def add(self, result: StageResult) -> StageResult:
        self.stages.append(result)
        return result

    @property
    def failed_stages(self) -> list[StageResult]:
        return [s for s in self.stages if s.status == StageStatus.FAILED]

    @property
    def skipped_stages(self) -> list[StageResult]:
        return [s for s in self.stages if s.status == StageStatus.SKIPPED]

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.COMPLETED

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.success:
            message = (
                f"Sync completed: {self.repositories} repositories, "
                f"{len(self.failed_stages)} failed stages"
            )
        else:
            reason = self.error["message"] if self.error else "unknown error"
            message = f"Sync failed: {reason}"

        result: dict[str, Any] = {
            "success": self.success,
            "message": message,
            "integration_id": self.integration_id,
            "status": self.status.value,
            "repositories": self.repositories,
            "stages_total": len(self.stages),
            "stages_failed": len(self.failed_stages),
            "stages_skipped": len(self.skipped_stages),
            "duration_seconds": round(self.duration_seconds, 2),
            "failures": [s.to_dict() for s in self.failed_stages],
        }
        if self.error:
            result["error"] = self.error
        return result
