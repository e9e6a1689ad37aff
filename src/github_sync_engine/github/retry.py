"""Retry with exponential backoff and jitter.

This is the only place GitHub calls are retried. Delay before attempt k
(k >= 2) is ``min(base * 2**(k - 2), max_delay)`` scaled by a uniform
factor in [0.75, 1.25].
"""

from __future__ import annotations

import asyncio
import errno
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from github_sync_engine.config import RetryConfig, get_settings
from github_sync_engine.logging import get_logger

from .exceptions import GitHubAPIError, GitHubNetworkError

logger = get_logger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
FATAL_STATUS_CODES = frozenset({401, 403})

RetryObserver = Callable[[int, BaseException, float], None]


def _always(error: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between."""

    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 60.0
    jitter: float = 0.25
    is_retryable: Callable[[BaseException], bool] = _always

    @classmethod
    def from_config(
        cls,
        config: RetryConfig,
        is_retryable: Callable[[BaseException], bool] = _always,
    ) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            max_delay=config.max_delay_seconds,
            is_retryable=is_retryable,
        )


def nominal_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Un-jittered delay before ``attempt`` (1-based; attempt 1 has none)."""
    if attempt < 2:
        return 0.0
    return min(base_delay * 2 ** (attempt - 2), max_delay)


def compute_backoff(
    attempt: int,
    policy: RetryPolicy,
    rand: Callable[[float, float], float] = random.uniform,
) -> float:
    """Jittered delay before ``attempt``."""
    delay = nominal_delay(attempt, policy.base_delay, policy.max_delay)
    return delay * (1 + rand(-policy.jitter, policy.jitter))


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    on_retry: RetryObserver | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds, fails fatally, or attempts run out.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Attempt count, delays and retryability predicate
        on_retry: Called as ``(next_attempt, error, delay)`` before each sleep
        sleep: Injected for tests

    Returns:
        The operation's result

    Raises:
        The last error, unchanged, once it is fatal or attempts are exhausted
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as error:
            if attempt >= policy.max_attempts or not policy.is_retryable(error):
                raise
            attempt += 1
            delay = compute_backoff(attempt, policy)
            if on_retry is not None:
                on_retry(attempt, error, delay)
            await sleep(delay)


# -----------------------------------------------------------------------------
# GitHub-specific classification
# -----------------------------------------------------------------------------

_NETWORK_ERRNOS = frozenset({errno.ECONNRESET, errno.ETIMEDOUT, errno.ECONNREFUSED, errno.EPIPE})


def is_retryable_github_error(error: BaseException) -> bool:
    """Classify an error raised by a GitHub call.

    401/403 never retry. 408/429/5xx and transport failures (connection
    resets, timeouts) do. Anything else is treated as permanent.
    """
    if isinstance(error, GitHubAPIError):
        status = error.status_code
        if status in FATAL_STATUS_CODES:
            return False
        return status in RETRYABLE_STATUS_CODES
    if isinstance(error, GitHubNetworkError | TimeoutError | ConnectionError):
        return True
    if isinstance(error, OSError):
        return error.errno in _NETWORK_ERRNOS
    return False


def github_retry_policy(config: RetryConfig | None = None) -> RetryPolicy:
    """Policy for GitHub calls built from settings."""
    return RetryPolicy.from_config(config or get_settings().retry, is_retryable_github_error)


def log_retry(attempt: int, error: BaseException, delay: float) -> None:
    logger.warning(
        "GitHub call failed ({}), retrying in {:.1f}s (attempt {})",
        error.__class__.__name__,
        delay,
        attempt,
    )


async def retry_github_call(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    on_retry: RetryObserver | None = log_retry,
) -> T:
    """Retry a GitHub call with the GitHub classification and settings."""
    return await retry(operation, policy or github_retry_policy(), on_retry=on_retry)
