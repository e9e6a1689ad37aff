"""Tests for JobQueue."""

import asyncio

import pytest

from github_sync_engine.config import QueueConfig
from github_sync_engine.jobs import Job, JobFailedError, JobQueue, JobState, JobType


def fast_config(**overrides) -> QueueConfig:
    values = {"attempts": 3, "backoff_base_seconds": 1.0, "timeout_seconds": 5.0}
    values.update(overrides)
    return QueueConfig(**values)


@pytest.fixture
def delays() -> list[float]:
    return []


@pytest.fixture
def no_sleep(delays):
    async def sleep(delay: float) -> None:
        delays.append(delay)

    return sleep


async def ok_handler(job: Job) -> dict:
    return {"integration_id": job.integration_id}


class TestEnqueue:
    """Tests for job submission and validation."""

    async def test_enqueue_returns_waiting_job(self):
        queue = JobQueue({JobType.FULL_SYNC: ok_handler}, config=fast_config())

        job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})

        assert job.state == JobState.WAITING
        assert queue.get(job.id) is job
        assert queue.queue_size == 1

    async def test_job_type_accepts_string(self):
        queue = JobQueue({JobType.FULL_SYNC: ok_handler}, config=fast_config())

        job = queue.enqueue("full-sync", {"integration_id": 1})

        assert job.type == JobType.FULL_SYNC

    async def test_unregistered_type_rejected(self):
        queue = JobQueue({JobType.FULL_SYNC: ok_handler}, config=fast_config())

        with pytest.raises(ValueError, match="No handler"):
            queue.enqueue(JobType.USER_SYNC, {"integration_id": 1})

    @pytest.mark.parametrize(
        ("job_type", "payload"),
        [
            (JobType.REPO_SYNC, {"integration_id": 1}),
            (JobType.COMMIT_SYNC, {"integration_id": 1, "owner": "acme"}),
            (JobType.FULL_SYNC, {"integration_id": 0}),
            (JobType.FULL_SYNC, {"integration_id": 1, "repo": "widgets"}),
        ],
    )
    async def test_invalid_payload_rejected(self, job_type, payload):
        queue = JobQueue({t: ok_handler for t in JobType}, config=fast_config())

        with pytest.raises(ValueError):
            queue.enqueue(job_type, payload)

    async def test_to_dict_hides_token(self):
        queue = JobQueue({JobType.FULL_SYNC: ok_handler}, config=fast_config())

        job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1, "access_token": "ghp_secret"})

        assert job.to_dict()["payload"] == {"integration_id": 1}
        assert "ghp_secret" not in repr(job.payload)


class TestProcessing:
    """Tests for running jobs through the workers."""

    async def test_job_completes(self):
        queue = JobQueue({JobType.FULL_SYNC: ok_handler}, config=fast_config())
        await queue.start()
        try:
            job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 7})
            result = await queue.wait(job, timeout=2)
        finally:
            await queue.shutdown()

        assert result == {"integration_id": 7}
        assert job.state == JobState.COMPLETED
        assert job.attempts_made == 1
        assert job.finished_at is not None
        assert queue.completed_jobs == [job]
        assert queue.get_stats()["total_completed"] == 1

    async def test_retries_with_exponential_backoff(self, no_sleep, delays):
        calls = 0

        async def flaky(job: Job) -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise RuntimeError(f"transient {calls}")
            return "done"

        queue = JobQueue({JobType.FULL_SYNC: flaky}, config=fast_config(), sleep=no_sleep)
        await queue.start()
        try:
            job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})
            assert await queue.wait(job, timeout=2) == "done"
        finally:
            await queue.shutdown()

        assert job.attempts_made == 3
        assert delays == [1.0, 2.0]
        assert job.failed_reason is None

    async def test_fails_after_attempts_exhausted(self, no_sleep):
        async def broken(job: Job) -> None:
            raise RuntimeError("token=ghp_abcdefghijklmnopqrstuvwxyz rejected")

        queue = JobQueue(
            {JobType.FULL_SYNC: broken}, config=fast_config(attempts=2), sleep=no_sleep
        )
        await queue.start()
        try:
            job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})
            with pytest.raises(JobFailedError) as exc_info:
                await queue.wait(job, timeout=2)
        finally:
            await queue.shutdown()

        assert exc_info.value.job is job
        assert job.state == JobState.FAILED
        assert job.attempts_made == 2
        assert "ghp_" not in job.failed_reason
        assert queue.failed_jobs == [job]

    async def test_non_retryable_error_fails_immediately(self, no_sleep, delays):
        async def broken(job: Job) -> None:
            raise ValueError("bad payload")

        queue = JobQueue(
            {JobType.FULL_SYNC: broken},
            config=fast_config(),
            is_retryable=lambda e: not isinstance(e, ValueError),
            sleep=no_sleep,
        )
        await queue.start()
        try:
            job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})
            with pytest.raises(JobFailedError):
                await queue.wait(job, timeout=2)
        finally:
            await queue.shutdown()

        assert job.attempts_made == 1
        assert delays == []

    async def test_attempt_timeout(self, no_sleep):
        async def slow(job: Job) -> None:
            await asyncio.sleep(10)

        queue = JobQueue(
            {JobType.FULL_SYNC: slow},
            config=fast_config(attempts=1, timeout_seconds=0.05),
            sleep=no_sleep,
        )
        await queue.start()
        try:
            job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})
            with pytest.raises(JobFailedError):
                await queue.wait(job, timeout=2)
        finally:
            await queue.shutdown()

        assert job.failed_reason == "Job timed out after 0.05s"

    async def test_wait_after_failure(self, no_sleep):
        async def broken(job: Job) -> None:
            raise RuntimeError("boom")

        queue = JobQueue(
            {JobType.FULL_SYNC: broken}, config=fast_config(attempts=1), sleep=no_sleep
        )
        await queue.start()
        job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})
        await queue.shutdown(wait=True, timeout=2)

        with pytest.raises(JobFailedError):
            await queue.wait(job)

    async def test_set_progress_without_store(self):
        async def reporting(job: Job) -> None:
            await job.set_progress(40)
            await job.set_progress(140)

        queue = JobQueue({JobType.FULL_SYNC: reporting}, config=fast_config())
        await queue.start()
        try:
            job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})
            await queue.wait(job, timeout=2)
        finally:
            await queue.shutdown()

        assert job.progress == 100


class TestHistory:
    """Tests for bounded job history."""

    async def test_completed_history_is_bounded(self):
        queue = JobQueue({JobType.FULL_SYNC: ok_handler}, config=fast_config(keep_completed=2))
        await queue.start()
        try:
            jobs = [queue.enqueue(JobType.FULL_SYNC, {"integration_id": n}) for n in (1, 2, 3)]
            for job in jobs:
                await queue.wait(job, timeout=2)
        finally:
            await queue.shutdown()

        assert [j.integration_id for j in queue.completed_jobs] == [2, 3]
        assert queue.get(jobs[0].id) is None
        assert queue.get(jobs[2].id) is jobs[2]

    async def test_shutdown_drains_queue(self):
        queue = JobQueue({JobType.FULL_SYNC: ok_handler}, config=fast_config())
        await queue.start()
        for n in range(1, 4):
            queue.enqueue(JobType.FULL_SYNC, {"integration_id": n})

        await queue.shutdown(wait=True, timeout=2)

        stats = queue.get_stats()
        assert stats["total_enqueued"] == 3
        assert stats["total_completed"] == 3
        assert stats["is_running"] is False
        assert queue.is_idle
