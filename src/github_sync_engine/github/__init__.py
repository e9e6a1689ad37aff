"""GitHub access layer.

This module provides:
- GitHubClient: per-integration async client with capped pagination
- Retry helpers: retry, RetryPolicy, is_retryable_github_error
- process_all: settle-all fan-out under a concurrency cap
- RateLimitTracker: persisted per-integration quota snapshots
"""

from .batch import BatchResult, process_all
from .client import GitHubClient
from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubForbiddenError,
    GitHubNetworkError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from .pagination import Paginator
from .rate_limit import RateLimitSnapshot, RateLimitTracker
from .retry import (
    RetryPolicy,
    compute_backoff,
    github_retry_policy,
    is_retryable_github_error,
    retry,
    retry_github_call,
)

__all__ = [
    # Client
    "GitHubClient",
    "Paginator",
    # Exceptions
    "GitHubAPIError",
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubForbiddenError",
    "GitHubNetworkError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    # Retry
    "RetryPolicy",
    "compute_backoff",
    "github_retry_policy",
    "is_retryable_github_error",
    "retry",
    "retry_github_call",
    # Batch
    "BatchResult",
    "process_all",
    # Rate limit
    "RateLimitSnapshot",
    "RateLimitTracker",
]
