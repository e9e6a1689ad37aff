"""Tests for the sync job handlers and queue wiring."""

import asyncio

import pytest
from pydantic import ValidationError

from github_sync_engine.config import QueueConfig
from github_sync_engine.db import SyncStatus, get_session
from github_sync_engine.db.repositories import IntegrationRepository, RepoRepository
from github_sync_engine.github import (
    GitHubAuthenticationError,
    GitHubForbiddenError,
    GitHubNetworkError,
)
from github_sync_engine.jobs import (
    JobFailedError,
    JobState,
    JobType,
    PayloadTokens,
    create_sync_queue,
    is_retryable_job_error,
)
from github_sync_engine.jobs.models import JobPayload
from github_sync_engine.sync import (
    IntegrationNotFoundError,
    ProgressStore,
    RepositoryNotSyncedError,
    SyncInProgressError,
)
from tests.factories import make_integration
from tests.fixtures import FakeGitHubClient


@pytest.fixture
async def integration_id(session_factory) -> int:
    async with get_session(session_factory) as session:
        integration = make_integration(session, access_token="ghp_stored")
        await session.flush()
        return integration.id


@pytest.fixture
def client() -> FakeGitHubClient:
    return FakeGitHubClient.with_org()


@pytest.fixture
def tokens_seen() -> list[str]:
    return []


@pytest.fixture
async def queue(session_factory, test_settings, client, tokens_seen):
    def client_factory(token, on_rate_limit):
        tokens_seen.append(token)
        return client

    queue, _ = create_sync_queue(
        session_factory, settings=test_settings, client_factory=client_factory
    )
    await queue.start()
    yield queue
    await queue.shutdown(wait=False)


class TestIsRetryableJobError:
    """Tests for job retry classification."""

    def test_sync_in_progress_is_retried(self):
        assert is_retryable_job_error(SyncInProgressError(1)) is True

    def test_transient_errors_are_retried(self):
        assert is_retryable_job_error(GitHubNetworkError("reset")) is True
        assert is_retryable_job_error(RuntimeError("database is locked")) is True

    @pytest.mark.parametrize(
        "error",
        [
            IntegrationNotFoundError(1),
            RepositoryNotSyncedError("acme", "widgets"),
            GitHubAuthenticationError(),
            GitHubForbiddenError("Resource not accessible by integration"),
            ValueError("bad payload"),
        ],
    )
    def test_unrecoverable_errors(self, error):
        assert is_retryable_job_error(error) is False

    def test_payload_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            JobPayload(integration_id=0)

        assert is_retryable_job_error(exc_info.value) is False


class TestPayloadTokens:
    async def test_remember_and_forget(self):
        tokens = PayloadTokens()

        tokens.remember(1, "ghp_payload")
        assert await tokens(1) == "ghp_payload"

        tokens.forget(1, "ghp_payload")
        assert await tokens(1) is None

    async def test_overlapping_jobs_keep_their_tokens(self):
        tokens = PayloadTokens()
        tokens.remember(1, "ghp_first")
        tokens.remember(1, "ghp_second")

        tokens.forget(1, "ghp_second")
        assert await tokens(1) == "ghp_first"

        tokens.remember(1, "ghp_third")
        tokens.forget(1, "ghp_first")
        assert await tokens(1) == "ghp_third"

        tokens.forget(1, "ghp_third")
        assert await tokens(1) is None

    async def test_forget_unknown_token(self):
        tokens = PayloadTokens()
        tokens.remember(1, "ghp_payload")

        tokens.forget(1, "ghp_other")
        tokens.forget(2, "ghp_payload")

        assert await tokens(1) == "ghp_payload"


class TestSyncJobs:
    """Tests for jobs running through the orchestrator."""

    async def test_full_sync_job(self, queue, session_factory, integration_id, tokens_seen):
        job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": integration_id})

        result = await queue.wait(job, timeout=10)

        assert job.state == JobState.COMPLETED
        assert result["status"] == "completed"
        assert result["repositories"] == 3
        assert job.progress == 100
        assert tokens_seen == ["ghp_stored"]

        async with get_session(session_factory) as session:
            integration = await IntegrationRepository(session).get_by_id(integration_id)
            assert integration.sync_status == SyncStatus.COMPLETED

    async def test_payload_token_used_for_the_job_only(
        self, queue, integration_id, tokens_seen
    ):
        first = queue.enqueue(
            JobType.ORG_SYNC, {"integration_id": integration_id, "access_token": "ghp_payload"}
        )
        await queue.wait(first, timeout=10)
        second = queue.enqueue(JobType.ORG_SYNC, {"integration_id": integration_id})
        await queue.wait(second, timeout=10)

        assert tokens_seen == ["ghp_payload", "ghp_stored"]

    async def test_repo_sync_job(self, queue, session_factory, integration_id):
        job = queue.enqueue(JobType.REPO_SYNC, {"integration_id": integration_id, "owner": "acme"})

        await queue.wait(job, timeout=10)

        assert job.progress == 100
        async with get_session(session_factory) as session:
            assert await RepoRepository(session).count() == 3

    async def test_unknown_integration_fails_without_retry(self, queue):
        job = queue.enqueue(JobType.USER_SYNC, {"integration_id": 999})

        with pytest.raises(JobFailedError):
            await queue.wait(job, timeout=10)

        assert job.attempts_made == 1
        assert job.state == JobState.FAILED

    async def test_commit_job_for_unsynced_repo(self, queue, integration_id):
        job = queue.enqueue(
            JobType.COMMIT_SYNC,
            {"integration_id": integration_id, "owner": "acme", "repo": "alpha"},
        )

        with pytest.raises(JobFailedError):
            await queue.wait(job, timeout=10)

        assert job.attempts_made == 1

    async def test_stage_job_publishes_completed_progress(
        self, queue, session_factory, test_settings, integration_id
    ):
        job = queue.enqueue(JobType.ORG_SYNC, {"integration_id": integration_id})

        await queue.wait(job, timeout=10)

        progress = await ProgressStore(session_factory, config=test_settings.sync).read(
            integration_id
        )
        assert progress.status == "completed"
        assert progress.current == 100

    async def test_failed_stage_job_publishes_failed_progress(
        self, queue, session_factory, test_settings, integration_id, client
    ):
        client.failures["list_issues:acme/alpha"] = GitHubAuthenticationError()
        await queue.wait(
            queue.enqueue(JobType.REPO_SYNC, {"integration_id": integration_id, "owner": "acme"}),
            timeout=10,
        )
        job = queue.enqueue(
            JobType.ISSUE_SYNC,
            {"integration_id": integration_id, "owner": "acme", "repo": "alpha"},
        )

        with pytest.raises(JobFailedError):
            await queue.wait(job, timeout=10)

        progress = await ProgressStore(session_factory, config=test_settings.sync).read(
            integration_id
        )
        assert progress.status == "failed"
        assert "issues of acme/alpha" in progress.message


class TestJobTimeouts:
    """Tests for attempts cut short by the queue timeout."""

    async def test_timed_out_full_sync_marks_integration_failed(
        self, session_factory, test_settings, client, integration_id
    ):
        async def stall() -> None:
            await asyncio.sleep(5)

        client.hooks["get_authenticated_user"] = stall
        settings = test_settings.model_copy(
            update={"queue": QueueConfig(attempts=1, timeout_seconds=0.2)}
        )
        queue, orchestrator = create_sync_queue(
            session_factory, settings=settings, client_factory=lambda token, on_rate_limit: client
        )
        await queue.start()
        try:
            job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": integration_id})
            with pytest.raises(JobFailedError):
                await queue.wait(job, timeout=5)
        finally:
            await queue.shutdown(wait=False)

        assert job.failed_reason == "Job timed out after 0.2s"

        async with get_session(session_factory) as session:
            integration = await IntegrationRepository(session).get_by_id(integration_id)
            assert integration.sync_status == SyncStatus.FAILED
            assert "interrupted" in integration.sync_metadata["last_error"]["message"]

        progress = await orchestrator.get_sync_progress(integration_id)
        assert progress["status"] == "failed"
        assert orchestrator.is_syncing(integration_id) is False
