"""Configuration settings for the GitHub sync engine."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetryConfig(BaseModel):
    """Backoff policy for GitHub API calls.

    Delay before attempt k (k >= 2) is min(base * 2^(k-2), max) with
    +/- 25% jitter.
    """

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts including the first call",
    )
    base_delay_seconds: float = Field(
        default=2.0,
        gt=0.0,
        description="Delay before the second attempt",
    )
    max_delay_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Upper bound for a single backoff delay",
    )


class PacingConfig(BaseModel):
    """Page sizes, page ceilings and fan-out limits for remote listings."""

    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per page (GitHub maximum is 100)",
    )
    user_fetch_concurrency: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Parallel profile fetches when syncing organization members",
    )

    # Ceilings
    max_commits: int = Field(default=1000, ge=1, description="Commits per listing")
    max_pulls: int = Field(default=500, ge=1, description="Pull requests per listing")
    max_issues: int = Field(default=500, ge=1, description="Issues per listing")
    max_timeline_pages: int = Field(default=3, ge=1, description="Timeline pages per issue")
    max_pages: int = Field(
        default=1000,
        ge=1,
        description="Page ceiling for listings without a specific cap",
    )


class SyncConfig(BaseModel):
    """Configuration for sync pipeline behavior."""

    commit_window_days: int = Field(
        default=30,
        ge=1,
        description="Only commits newer than this many days are fetched",
    )
    progress_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="Lifetime of a shared progress entry while a sync runs",
    )
    progress_grace_seconds: int = Field(
        default=300,
        ge=0,
        description="How long a finished sync's progress stays readable",
    )
    stale_after_hours: int = Field(
        default=24,
        ge=1,
        description="Integrations not synced for this long need a sync",
    )

    @property
    def commit_window(self) -> timedelta:
        """Get the commit window as a timedelta."""
        return timedelta(days=self.commit_window_days)

    @property
    def stale_after(self) -> timedelta:
        """Get the staleness threshold as a timedelta."""
        return timedelta(hours=self.stale_after_hours)


class QueueConfig(BaseModel):
    """Policy applied to every queued sync job."""

    attempts: int = Field(default=3, ge=1, description="Attempts per job")
    backoff_base_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Exponential backoff base between job attempts",
    )
    timeout_seconds: float = Field(
        default=1800.0,
        gt=0.0,
        description="Hard timeout for a single job attempt (30 minutes)",
    )
    keep_completed: int = Field(default=50, ge=0, description="Completed jobs retained")
    keep_failed: int = Field(default=100, ge=0, description="Failed jobs retained")
    concurrency: int = Field(default=1, ge=1, description="Jobs processed at once")


class RetentionConfig(BaseModel):
    """Retention windows per entity type, in days."""

    commits_days: int = Field(default=180, ge=1)
    pulls_days: int = Field(default=365, ge=1, description="Closed pull requests only")
    issues_days: int = Field(default=365, ge=1, description="Closed issues only")
    changelogs_days: int = Field(default=180, ge=1)
    repos_days: int = Field(default=730, ge=1, description="Archived or disabled repos only")
    users_days: int = Field(default=365, ge=1)


class RateLimitConfig(BaseModel):
    """Configuration for the persisted rate limit snapshot."""

    min_ttl_seconds: int = Field(
        default=60,
        ge=1,
        description="Floor for the snapshot lifetime",
    )
    track_from_headers: bool = Field(
        default=True,
        description="Passively track limits from response headers",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./github_sync.db",
        description="Async database connection string",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="Fallback GitHub token for commands not tied to an integration",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Remote API behavior
    # --------------------------------------------------------------------------
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Backoff policy for GitHub calls",
    )
    pacing: PacingConfig = Field(
        default_factory=PacingConfig,
        description="Page sizes and listing ceilings",
    )
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Rate limit snapshot configuration",
    )

    # --------------------------------------------------------------------------
    # Sync, Queue & Retention
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Sync pipeline configuration",
    )
    queue: QueueConfig = Field(
        default_factory=QueueConfig,
        description="Job queue policy",
    )
    retention: RetentionConfig = Field(
        default_factory=RetentionConfig,
        description="Data retention windows",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
