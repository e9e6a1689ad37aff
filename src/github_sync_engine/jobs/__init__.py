"""Background job queue for sync work."""

from .models import Job, JobPayload, JobState, JobType
from .queue import JobFailedError, JobHandler, JobQueue
from .workers import PayloadTokens, SyncWorkers, create_sync_queue, is_retryable_job_error

__all__ = [
    "Job",
    "JobFailedError",
    "JobHandler",
    "JobPayload",
    "JobQueue",
    "JobState",
    "JobType",
    "PayloadTokens",
    "SyncWorkers",
    "create_sync_queue",
    "is_retryable_job_error",
]
