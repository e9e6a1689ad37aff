"""GitHub client exceptions.

Every error from an HTTP response carries ``status_code`` so the retry
layer can classify it without knowing which endpoint failed.
"""

from datetime import datetime


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubNetworkError(GitHubClientError):
    """Raised when the request never produced a response (reset, timeout, DNS)."""

    pass


class GitHubAPIError(GitHubClientError):
    """Raised for any non-2xx response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubAuthenticationError(GitHubAPIError):
    """Raised when the token is rejected (401)."""

    def __init__(self, message: str = "Invalid GitHub token", status_code: int | None = 401) -> None:
        super().__init__(message, status_code)


class GitHubForbiddenError(GitHubAPIError):
    """Raised when the token lacks access to a resource (403)."""

    def __init__(self, message: str, status_code: int | None = 403) -> None:
        super().__init__(message, status_code)


class GitHubRateLimitError(GitHubAPIError):
    """Raised when the quota is exhausted.

    Comes from a 403/429 response, or from the rate limit tracker refusing
    a call before it is made (``status_code`` is None then).
    """

    def __init__(
        self,
        message: str,
        reset_at: datetime | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.reset_at = reset_at


class GitHubNotFoundError(GitHubAPIError):
    """Raised when a resource is not found (404)."""

    def __init__(self, message: str, status_code: int | None = 404) -> None:
        super().__init__(message, status_code)
