"""In-process job queue with attempts, backoff and per-attempt timeouts.

Features:
- One handler per job type
- Fixed number of worker tasks (``queue.concurrency``)
- Up to ``queue.attempts`` attempts with exponential backoff between them
- Hard timeout per attempt
- Bounded history of completed and failed jobs
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from github_sync_engine.config import QueueConfig, get_settings
from github_sync_engine.db.models import utc_now
from github_sync_engine.logging import bind_job, get_logger
from github_sync_engine.redaction import sanitize_message
from github_sync_engine.sync.progress import ProgressReporter, ProgressStore

from .models import Job, JobPayload, JobState, JobType

logger = get_logger(__name__)

JobHandler = Callable[[Job], Awaitable[Any]]


class JobFailedError(Exception):
    """Raised by ``JobQueue.wait`` when the job ended in the failed state."""

    def __init__(self, job: Job) -> None:
        super().__init__(f"Job {job.id} ({job.type.value}) failed: {job.failed_reason}")
        self.job = job


def _always_retry(error: Exception) -> bool:
    return True


class JobQueue:
    """Queue of sync jobs processed by background worker tasks.

    Usage:
        queue = JobQueue({JobType.FULL_SYNC: workers.full_sync}, progress_store=store)
        await queue.start()

        job = queue.enqueue(JobType.FULL_SYNC, {"integration_id": 1})
        result = await queue.wait(job)

        await queue.shutdown()
    """

    def __init__(
        self,
        handlers: Mapping[JobType, JobHandler] | None = None,
        *,
        progress_store: ProgressStore | None = None,
        config: QueueConfig | None = None,
        is_retryable: Callable[[Exception], bool] = _always_retry,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the queue.

        Args:
            handlers: Handler per job type
            progress_store: Shared store that ``job.set_progress`` writes to
            config: Attempts, backoff, timeout and history sizes
            is_retryable: Decides whether a failed attempt may be repeated
            sleep: Backoff sleep, injectable for tests
        """
        self._handlers: dict[JobType, JobHandler] = dict(handlers or {})
        self._store = progress_store
        self._config = config or get_settings().queue
        self._is_retryable = is_retryable
        self._sleep = sleep

        self._pending: asyncio.Queue[Job] = asyncio.Queue()
        self._jobs: dict[str, Job] = {}
        self._done: dict[str, asyncio.Future[Any]] = {}
        self._completed: deque[Job] = deque()
        self._failed: deque[Job] = deque()

        self._running = False
        self._workers: list[asyncio.Task[None]] = []
        self._active = 0

        # Statistics
        self._total_enqueued = 0
        self._total_completed = 0
        self._total_failed = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def register(self, job_type: JobType, handler: JobHandler) -> None:
        self._handlers[job_type] = handler

    async def start(self) -> None:
        """Start the worker tasks."""
        if self._running:
            return

        self._running = True
        self._workers = [
            asyncio.create_task(self._worker_loop(n)) for n in range(self._config.concurrency)
        ]
        logger.info("Job queue started (concurrency={})", self._config.concurrency)

    async def shutdown(self, wait: bool = True, timeout: float = 30.0) -> None:
        """Stop the workers.

        Args:
            wait: Let queued jobs drain first
            timeout: Maximum seconds to wait for the drain
        """
        if wait and self._running:
            try:
                await asyncio.wait_for(self._pending.join(), timeout)
            except TimeoutError:
                logger.warning("Job queue drain timed out with {} jobs left", self._pending.qsize())

        self._running = False
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        for future in self._done.values():
            if not future.done():
                future.cancel()

        logger.info(
            "Job queue stopped (completed={}, failed={})",
            self._total_completed,
            self._total_failed,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------
    def enqueue(self, job_type: JobType | str, payload: Mapping[str, Any] | JobPayload) -> Job:
        """Add a job to the queue.

        Raises:
            ValueError: Unknown job type, no handler, or a payload missing the
                owner/repo the job type needs
        """
        job_type = JobType(job_type)
        if job_type not in self._handlers:
            raise ValueError(f"No handler registered for {job_type.value}")

        data = payload if isinstance(payload, JobPayload) else JobPayload.model_validate(payload)
        if job_type.needs_owner and not data.owner:
            raise ValueError(f"{job_type.value} jobs need an owner")
        if job_type.needs_repo and not data.repo:
            raise ValueError(f"{job_type.value} jobs need a repo")

        job = Job(type=job_type, payload=data)
        if self._store is not None:
            job.reporter = ProgressReporter(
                self._store, data.integration_id, listener=job.mirror_progress
            )

        self._jobs[job.id] = job
        self._done[job.id] = asyncio.get_running_loop().create_future()
        self._pending.put_nowait(job)
        self._total_enqueued += 1

        logger.debug(
            "Enqueued job {} ({}, queue_size={})",
            job.id[:8],
            job_type.value,
            self._pending.qsize(),
        )
        return job

    async def wait(self, job: Job, timeout: float | None = None) -> Any:
        """Wait for a job to finish and return its result.

        Raises:
            JobFailedError: The job exhausted its attempts
            TimeoutError: ``timeout`` elapsed first
        """
        future = self._done.get(job.id)
        if future is None:
            if job.state == JobState.FAILED:
                raise JobFailedError(job)
            return job.result
        return await asyncio.wait_for(asyncio.shield(future), timeout)

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    # -------------------------------------------------------------------------
    # Worker Loop
    # -------------------------------------------------------------------------
    async def _worker_loop(self, worker: int) -> None:
        while True:
            job = await self._pending.get()
            self._active += 1
            try:
                await self._execute(job)
            except Exception:
                logger.exception("Worker {} crashed on job {}", worker, job.id[:8])
            finally:
                self._active -= 1
                self._pending.task_done()

    async def _execute(self, job: Job) -> None:
        """Run a job until it succeeds or runs out of attempts."""
        log = bind_job(job.id[:8], job.type.value)
        handler = self._handlers[job.type]
        timeout = self._config.timeout_seconds

        while True:
            job.state = JobState.ACTIVE
            job.attempts_made += 1
            job.started_at = job.started_at or utc_now()
            log.info("Attempt {}/{}", job.attempts_made, self._config.attempts)

            try:
                result = await asyncio.wait_for(handler(job), timeout)
            except TimeoutError as e:
                error: Exception = TimeoutError(f"Job timed out after {timeout:g}s")
                error.__cause__ = e
            except Exception as e:
                error = e
            else:
                self._complete(job, result)
                log.info("Completed after {} attempt(s)", job.attempts_made)
                return

            job.failed_reason = sanitize_message(str(error) or error.__class__.__name__)
            if job.attempts_made < self._config.attempts and self._is_retryable(error):
                delay = self._config.backoff_base_seconds * 2 ** (job.attempts_made - 1)
                log.warning("Attempt failed: {}; retrying in {:.1f}s", job.failed_reason, delay)
                job.state = JobState.DELAYED
                await self._sleep(delay)
                continue

            self._fail(job, error)
            log.error("Failed permanently: {}", job.failed_reason)
            return

    def _complete(self, job: Job, result: Any) -> None:
        job.state = JobState.COMPLETED
        job.result = result
        job.failed_reason = None
        job.finished_at = utc_now()
        self._total_completed += 1
        self._remember(self._completed, job, self._config.keep_completed)

        future = self._done.pop(job.id, None)
        if future is not None and not future.done():
            future.set_result(result)

    def _fail(self, job: Job, error: Exception) -> None:
        job.state = JobState.FAILED
        job.finished_at = utc_now()
        self._total_failed += 1
        self._remember(self._failed, job, self._config.keep_failed)

        future = self._done.pop(job.id, None)
        if future is not None and not future.done():
            future.set_exception(JobFailedError(job))
            # Nobody may be waiting; mark the exception as retrieved
            future.exception()

    def _remember(self, history: deque[Job], job: Job, keep: int) -> None:
        history.append(job)
        while len(history) > keep:
            evicted = history.popleft()
            self._jobs.pop(evicted.id, None)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def queue_size(self) -> int:
        return self._pending.qsize()

    @property
    def is_idle(self) -> bool:
        return self._pending.empty() and self._active == 0

    @property
    def completed_jobs(self) -> list[Job]:
        return list(self._completed)

    @property
    def failed_jobs(self) -> list[Job]:
        return list(self._failed)

    def get_stats(self) -> dict[str, int | bool]:
        return {
            "queue_size": self._pending.qsize(),
            "is_running": self._running,
            "is_idle": self.is_idle,
            "active": self._active,
            "total_enqueued": self._total_enqueued,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
        }
