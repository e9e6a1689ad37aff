"""Sync pipeline: orchestrator, progress tracking and retention."""

from .context import SyncContext
from .exceptions import (
    IntegrationNotFoundError,
    RepositoryNotSyncedError,
    SyncCancelledError,
    SyncError,
    SyncInProgressError,
    SyncInterruptedError,
)
from .orchestrator import SyncOrchestrator, TokenProvider
from .progress import ProgressReporter, ProgressStore
from .results import StageResult, StageStatus, SyncRunReport
from .retention import RetentionRule, RetentionSweeper

__all__ = [
    "IntegrationNotFoundError",
    "ProgressReporter",
    "ProgressStore",
    "RepositoryNotSyncedError",
    "RetentionRule",
    "RetentionSweeper",
    "StageResult",
    "StageStatus",
    "SyncCancelledError",
    "SyncContext",
    "SyncError",
    "SyncInProgressError",
    "SyncInterruptedError",
    "SyncOrchestrator",
    "SyncRunReport",
    "TokenProvider",
]
