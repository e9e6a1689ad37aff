"""Pydantic schemas for GitHub API rate limit data.

Parsed from either the GET /rate_limit endpoint or the ``x-ratelimit-*``
headers GitHub attaches to every response.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, Field, computed_field


class RateLimitPool(StrEnum):
    """GitHub rate limit resource pools. Sync traffic uses ``core``."""

    CORE = "core"
    SEARCH = "search"
    GRAPHQL = "graphql"
    CODE_SEARCH = "code_search"


class RateLimitStatus(StrEnum):
    """Coarse health of a pool's remaining quota."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"


class PoolRateLimit(BaseModel):
    """Quota state of one resource pool."""

    pool: RateLimitPool = Field(description="Resource pool name")
    limit: int = Field(ge=0, description="Maximum requests allowed per window")
    remaining: int = Field(ge=0, description="Requests remaining in current window")
    used: int = Field(ge=0, description="Requests used in current window")
    reset_at: datetime = Field(description="UTC datetime when limit resets")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining_percent(self) -> float:
        """Percentage of the limit still available."""
        if self.limit == 0:
            return 0.0
        return (self.remaining / self.limit) * 100

    def seconds_until_reset(self, now: datetime | None = None) -> int:
        """Seconds until the window resets (0 if already past)."""
        delta = self.reset_at - (now or datetime.now(UTC))
        return max(0, int(delta.total_seconds()))

    def is_exhausted(self, now: datetime | None = None) -> bool:
        """No calls left and the window has not reset yet."""
        return self.remaining <= 0 and self.reset_at > (now or datetime.now(UTC))

    def get_status(self) -> RateLimitStatus:
        if self.remaining == 0:
            return RateLimitStatus.EXHAUSTED
        if self.remaining_percent >= 50.0:
            return RateLimitStatus.HEALTHY
        if self.remaining_percent >= 20.0:
            return RateLimitStatus.WARNING
        return RateLimitStatus.CRITICAL


class RateLimitSnapshot(BaseModel):
    """Point-in-time view of one or more pools."""

    timestamp: datetime = Field(description="When this snapshot was taken")
    pools: dict[RateLimitPool, PoolRateLimit] = Field(
        default_factory=dict, description="Rate limits by pool"
    )

    @classmethod
    def from_api_response(cls, data: Mapping[str, Any]) -> Self:
        """Parse the body of GET /rate_limit."""
        pools: dict[RateLimitPool, PoolRateLimit] = {}
        resources = data.get("resources", {})

        for pool in RateLimitPool:
            if pool.value in resources:
                r = resources[pool.value]
                pools[pool] = PoolRateLimit(
                    pool=pool,
                    limit=r["limit"],
                    remaining=r["remaining"],
                    used=r.get("used", r["limit"] - r["remaining"]),
                    reset_at=datetime.fromtimestamp(r["reset"], tz=UTC),
                )

        return cls(timestamp=datetime.now(UTC), pools=pools)

    @classmethod
    def from_response_headers(
        cls,
        headers: Mapping[str, str],
        default_pool: RateLimitPool = RateLimitPool.CORE,
    ) -> Self | None:
        """Parse ``x-ratelimit-*`` headers.

        Returns:
            Snapshot with the single pool named by ``x-ratelimit-resource``,
            or None when the response carried no rate limit headers
        """
        if "x-ratelimit-remaining" not in headers:
            return None

        resource = headers.get("x-ratelimit-resource", default_pool.value)
        try:
            pool = RateLimitPool(resource)
        except ValueError:
            pool = default_pool

        limit = int(headers.get("x-ratelimit-limit", "0"))
        remaining = int(headers.get("x-ratelimit-remaining", "0"))
        used = int(headers.get("x-ratelimit-used", str(max(limit - remaining, 0))))
        reset_ts = int(headers.get("x-ratelimit-reset", "0"))
        now = datetime.now(UTC)
        reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts > 0 else now

        return cls(
            timestamp=now,
            pools={
                pool: PoolRateLimit(
                    pool=pool,
                    limit=limit,
                    remaining=remaining,
                    used=used,
                    reset_at=reset_at,
                )
            },
        )

    def get_core(self) -> PoolRateLimit | None:
        """Convenience accessor for the core pool."""
        return self.pools.get(RateLimitPool.CORE)
