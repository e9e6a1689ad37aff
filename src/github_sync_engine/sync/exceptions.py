"""Sync pipeline exceptions."""


class SyncError(Exception):
    """Base exception for sync pipeline errors."""

    pass


class IntegrationNotFoundError(SyncError):
    """Raised when an integration does not exist or has been deactivated."""

    def __init__(self, integration_id: int) -> None:
        super().__init__(f"Integration {integration_id} not found or inactive")
        self.integration_id = integration_id


class RepositoryNotSyncedError(SyncError):
    """Raised when a per-repository stage runs before the repo was stored."""

    def __init__(self, owner: str, repo: str) -> None:
        super().__init__(f"Repository {owner}/{repo} not found in database")
        self.owner = owner
        self.repo = repo


class SyncInProgressError(SyncError):
    """Raised when a full sync is requested while one is already running."""

    def __init__(self, integration_id: int) -> None:
        super().__init__(f"A sync is already running for integration {integration_id}")
        self.integration_id = integration_id


class SyncCancelledError(SyncError):
    """Raised inside a run once cancellation has been requested."""

    pass


class SyncInterruptedError(SyncError):
    """Recorded when a run is cancelled from outside, e.g. by a job timeout."""

    def __init__(self, integration_id: int) -> None:
        super().__init__(
            f"Sync for integration {integration_id} was interrupted before it finished"
        )
        self.integration_id = integration_id
