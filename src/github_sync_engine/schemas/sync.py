"""Read models for sync state exposed to callers and the CLI."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from github_sync_engine.db.models import SyncStatus

from .base import SchemaBase


class SyncProgress(BaseModel):
    """One progress snapshot of a running or recently finished sync."""

    status: str = Field(description="running, completed, failed or cancelled")
    message: str = ""
    current: int = Field(default=0, ge=0)
    total: int = Field(default=100, ge=0)
    timestamp: datetime

    @model_validator(mode="after")
    def _current_within_total(self) -> "SyncProgress":
        if self.current > self.total:
            raise ValueError(f"current ({self.current}) exceeds total ({self.total})")
        return self

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return self.current / self.total * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "current": self.current,
            "total": self.total,
            "timestamp": self.timestamp.isoformat(),
        }


class IntegrationRead(SchemaBase):
    """Integration as shown by ``ghsync integration list``."""

    id: int
    github_login: str
    is_active: bool
    sync_status: SyncStatus
    last_sync_at: datetime | None = None
    sync_metadata: dict[str, Any] = Field(default_factory=dict)
    rate_limit_info: dict[str, Any] = Field(default_factory=dict)
