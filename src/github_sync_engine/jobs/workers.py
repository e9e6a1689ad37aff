"""Job handlers: one per job type, each delegating to the orchestrator."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from github_sync_engine.config import Settings, get_settings
from github_sync_engine.github import GitHubAuthenticationError, GitHubForbiddenError
from github_sync_engine.sync import (
    IntegrationNotFoundError,
    RepositoryNotSyncedError,
    SyncInProgressError,
    SyncOrchestrator,
)
from github_sync_engine.sync.orchestrator import ClientFactory

from .models import Job, JobType
from .queue import JobHandler, JobQueue

# Repeating these cannot succeed without outside intervention
_UNRECOVERABLE = (
    IntegrationNotFoundError,
    RepositoryNotSyncedError,
    GitHubAuthenticationError,
    GitHubForbiddenError,
    ValidationError,
    ValueError,
)


def is_retryable_job_error(error: Exception) -> bool:
    """Whether a failed job attempt is worth another attempt.

    A running full sync (SyncInProgressError) is retried so the job runs
    once the other sync finishes.
    """
    if isinstance(error, SyncInProgressError):
        return True
    return not isinstance(error, _UNRECOVERABLE)


class PayloadTokens:
    """Token provider fed by job payloads.

    Jobs running side by side for the same integration each hold their own
    entry; the most recently started one wins and its entry is dropped when
    it ends. Returns None once no job holds a token, which makes the
    orchestrator fall back to the stored token.
    """

    def __init__(self) -> None:
        self._tokens: dict[int, list[str]] = {}

    def remember(self, integration_id: int, token: str) -> None:
        self._tokens.setdefault(integration_id, []).append(token)

    def forget(self, integration_id: int, token: str) -> None:
        held = self._tokens.get(integration_id, [])
        if token in held:
            held.remove(token)
        if not held:
            self._tokens.pop(integration_id, None)

    async def __call__(self, integration_id: int) -> str | None:
        held = self._tokens.get(integration_id)
        return held[-1] if held else None


class SyncWorkers:
    """Handlers for every JobType, backed by one orchestrator."""

    def __init__(self, orchestrator: SyncOrchestrator, tokens: PayloadTokens | None = None) -> None:
        self._orchestrator = orchestrator
        self._tokens = tokens

    def handlers(self) -> dict[JobType, JobHandler]:
        return {
            JobType.FULL_SYNC: self.full_sync,
            JobType.ORG_SYNC: self.org_sync,
            JobType.REPO_SYNC: self.repo_sync,
            JobType.COMMIT_SYNC: self.commit_sync,
            JobType.PULL_SYNC: self.pull_sync,
            JobType.ISSUE_SYNC: self.issue_sync,
            JobType.USER_SYNC: self.user_sync,
        }

    async def _run(self, job: Job, call: Callable[[], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
        token = job.payload.access_token
        if token and self._tokens is not None:
            self._tokens.remember(job.integration_id, token)
        try:
            return await call()
        finally:
            if token and self._tokens is not None:
                self._tokens.forget(job.integration_id, token)

    async def full_sync(self, job: Job) -> dict[str, Any]:
        return await self._run(
            job, lambda: self._orchestrator.sync_all(job.integration_id, reporter=job.reporter)
        )

    async def org_sync(self, job: Job) -> dict[str, Any]:
        return await self._run(
            job,
            lambda: self._orchestrator.sync_organizations(
                job.integration_id, reporter=job.reporter
            ),
        )

    async def repo_sync(self, job: Job) -> dict[str, Any]:
        owner = _require(job.payload.owner, "owner")
        return await self._run(
            job,
            lambda: self._orchestrator.sync_repositories(
                job.integration_id, owner, reporter=job.reporter
            ),
        )

    async def commit_sync(self, job: Job) -> dict[str, Any]:
        owner, repo = _require(job.payload.owner, "owner"), _require(job.payload.repo, "repo")
        return await self._run(
            job,
            lambda: self._orchestrator.sync_commits(
                job.integration_id, owner, repo, reporter=job.reporter
            ),
        )

    async def pull_sync(self, job: Job) -> dict[str, Any]:
        owner, repo = _require(job.payload.owner, "owner"), _require(job.payload.repo, "repo")
        return await self._run(
            job,
            lambda: self._orchestrator.sync_pulls(
                job.integration_id, owner, repo, reporter=job.reporter
            ),
        )

    async def issue_sync(self, job: Job) -> dict[str, Any]:
        owner, repo = _require(job.payload.owner, "owner"), _require(job.payload.repo, "repo")
        return await self._run(
            job,
            lambda: self._orchestrator.sync_issues(
                job.integration_id, owner, repo, reporter=job.reporter
            ),
        )

    async def user_sync(self, job: Job) -> dict[str, Any]:
        return await self._run(
            job, lambda: self._orchestrator.sync_users(job.integration_id, reporter=job.reporter)
        )


def _require(value: str | None, name: str) -> str:
    if not value:
        raise ValueError(f"Job payload is missing '{name}'")
    return value


def create_sync_queue(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    settings: Settings | None = None,
    client_factory: ClientFactory | None = None,
) -> tuple[JobQueue, SyncOrchestrator]:
    """Wire an orchestrator, its workers and a queue sharing one progress store.

    Returns:
        (queue, orchestrator); the queue still needs ``start()``
    """
    settings = settings or get_settings()
    tokens = PayloadTokens()
    orchestrator = SyncOrchestrator(
        session_factory,
        client_factory=client_factory,
        token_provider=tokens,
        settings=settings,
    )
    queue = JobQueue(
        SyncWorkers(orchestrator, tokens).handlers(),
        progress_store=orchestrator.progress_store,
        config=settings.queue,
        is_retryable=is_retryable_job_error,
    )
    return queue, orchestrator
