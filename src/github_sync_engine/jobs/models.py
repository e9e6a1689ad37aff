"""Job types, states and the Job record tracked by the queue."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, model_validator

from github_sync_engine.db.models import utc_now

if TYPE_CHECKING:
    from github_sync_engine.sync.progress import ProgressReporter


class JobType(StrEnum):
    """Kinds of sync work a job can carry."""

    FULL_SYNC = "full-sync"
    ORG_SYNC = "org-sync"
    REPO_SYNC = "repo-sync"
    COMMIT_SYNC = "commit-sync"
    PULL_SYNC = "pull-sync"
    ISSUE_SYNC = "issue-sync"
    USER_SYNC = "user-sync"

    @property
    def needs_owner(self) -> bool:
        return self in (JobType.REPO_SYNC, *_REPO_JOBS)

    @property
    def needs_repo(self) -> bool:
        return self in _REPO_JOBS


_REPO_JOBS = (JobType.COMMIT_SYNC, JobType.PULL_SYNC, JobType.ISSUE_SYNC)


class JobState(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    DELAYED = "delayed"  # waiting out the backoff before another attempt
    COMPLETED = "completed"
    FAILED = "failed"


class JobPayload(BaseModel):
    """Data a job carries. ``access_token`` overrides the stored token."""

    integration_id: int = Field(ge=1)
    access_token: str | None = Field(default=None, repr=False)
    owner: str | None = None
    repo: str | None = None

    @model_validator(mode="after")
    def _repo_needs_owner(self) -> JobPayload:
        if self.repo and not self.owner:
            raise ValueError("repo given without owner")
        return self


@dataclass
class Job:
    """One unit of queued work and its observable state."""

    type: JobType
    payload: JobPayload
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: JobState = JobState.WAITING

    attempts_made: int = 0
    """Attempts started so far, including the current one."""

    failed_reason: str | None = None
    """Sanitized message of the most recent failure."""

    progress: int = 0
    """Last reported progress percentage (0-100)."""

    result: Any = None
    """Handler return value once completed."""

    created_at: datetime = field(default_factory=utc_now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    reporter: ProgressReporter | None = field(default=None, repr=False, compare=False)
    """Writes progress to the shared store; set by the queue."""

    @property
    def integration_id(self) -> int:
        return self.payload.integration_id

    @property
    def is_finished(self) -> bool:
        return self.state in (JobState.COMPLETED, JobState.FAILED)

    def mirror_progress(self, percent: int) -> None:
        """Record progress reported through the shared reporter."""
        self.progress = max(0, min(percent, 100))

    async def set_progress(self, percent: int, message: str | None = None) -> None:
        """Report progress; also written to the shared progress store."""
        if self.reporter is not None:
            await self.reporter.update(message or f"{self.type.value} {percent}%", percent)
        else:
            self.mirror_progress(percent)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization (token excluded)."""
        return {
            "id": self.id,
            "type": self.type.value,
            "state": self.state.value,
            "payload": self.payload.model_dump(exclude={"access_token"}, exclude_none=True),
            "attempts_made": self.attempts_made,
            "failed_reason": self.failed_reason,
            "progress": self.progress,
            "result": self.result,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
