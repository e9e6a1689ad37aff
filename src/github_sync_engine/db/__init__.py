"""Database layer: models, engine/session helpers and repositories."""

from github_sync_engine.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    enable_sqlite_foreign_keys,
    get_engine,
    get_session,
    get_session_factory,
)
from github_sync_engine.db.models import (
    Base,
    Changelog,
    Commit,
    Integration,
    Issue,
    Organization,
    OrganizationType,
    PullRequest,
    RateLimitRecord,
    Repo,
    SyncProgressEntry,
    SyncStatus,
    User,
)

__all__ = [
    # Models
    "Base",
    "Changelog",
    "Commit",
    "Integration",
    "Issue",
    "Organization",
    "OrganizationType",
    "PullRequest",
    "RateLimitRecord",
    "Repo",
    "SyncProgressEntry",
    "SyncStatus",
    "User",
    # Engine
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "enable_sqlite_foreign_keys",
    "get_engine",
    "get_session",
    "get_session_factory",
]
