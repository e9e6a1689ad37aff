"""Rate limit parsing and per-integration tracking."""

from .schemas import (
    PoolRateLimit,
    RateLimitPool,
    RateLimitSnapshot,
    RateLimitStatus,
)
from .tracker import RateLimitTracker

__all__ = [
    "PoolRateLimit",
    "RateLimitPool",
    "RateLimitSnapshot",
    "RateLimitStatus",
    "RateLimitTracker",
]
