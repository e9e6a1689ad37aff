"""SQLAlchemy ORM models for the GitHub sync engine.

Every synced entity belongs to one Integration and carries ``synced_at``,
the time it was last written by a sync. Natural keys (GitHub ids, commit
SHAs, repo+number pairs) are unique so re-syncs update rows in place.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)
from sqlalchemy.types import JSON


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator[datetime]):
    """Stores naive UTC, returns aware UTC.

    SQLite has no timezone support, so values are normalized on the way in
    and re-tagged on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class SyncStatus(str, Enum):
    """Externally visible sync state of an integration."""

    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    FAILED = "failed"


class OrganizationType(str, Enum):
    """Kind of account an Organization row represents."""

    USER = "User"
    ORGANIZATION = "Organization"


# ------------------------------------------------------------------------------
# Integration
# ------------------------------------------------------------------------------
class Integration(Base):
    """One connected GitHub account plus its sync state."""

    __tablename__ = "integrations"

    id: Mapped[int] = mapped_column(primary_key=True)
    github_login: Mapped[str] = mapped_column(String(100))
    github_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    # Encryption at rest happens outside this service
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    scope: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    sync_status: Mapped[SyncStatus] = mapped_column(default=SyncStatus.IDLE)
    sync_progress: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)  # {current, total, message}
    sync_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    rate_limit_info: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    last_sync_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, onupdate=utc_now)

    def needs_sync(self, now: datetime | None = None, stale_after: timedelta = timedelta(hours=24)) -> bool:
        """Whether the integration has never synced or last synced too long ago."""
        if self.last_sync_at is None:
            return True
        now = now or utc_now()
        return now - self.last_sync_at > stale_after

    def deactivate(self) -> None:
        """Soft-disconnect: drop credentials but keep synced data."""
        self.access_token = None
        self.scope = None
        self.is_active = False
        self.sync_status = SyncStatus.IDLE

    def __repr__(self) -> str:
        return f"<Integration(id={self.id}, login='{self.github_login}', status={self.sync_status.value})>"


# ------------------------------------------------------------------------------
# Organization
# ------------------------------------------------------------------------------
class Organization(Base):
    """A personal account or a GitHub organization visible to an integration."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(ForeignKey("integrations.id", ondelete="CASCADE"))
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    login: Mapped[str] = mapped_column(String(100), index=True)
    type: Mapped[OrganizationType] = mapped_column(default=OrganizationType.ORGANIZATION)

    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    public_repos: Mapped[int] = mapped_column(default=0)
    public_gists: Mapped[int] = mapped_column(default=0)
    followers: Mapped[int] = mapped_column(default=0)
    following: Mapped[int] = mapped_column(default=0)
    github_created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)

    repos: Mapped[list["Repo"]] = relationship(back_populates="organization")
    users: Mapped[list["User"]] = relationship(back_populates="organization")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, login='{self.login}', type={self.type.value})>"


# ------------------------------------------------------------------------------
# Repo
# ------------------------------------------------------------------------------
class Repo(Base):
    """A GitHub repository."""

    __tablename__ = "repos"
    __table_args__ = (UniqueConstraint("owner", "name", name="uq_repo_owner_name"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(ForeignKey("integrations.id", ondelete="CASCADE"))
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    owner: Mapped[str] = mapped_column(String(100))
    name: Mapped[str] = mapped_column(String(200))
    full_name: Mapped[str] = mapped_column(String(300), index=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    private: Mapped[bool] = mapped_column(default=False)
    fork: Mapped[bool] = mapped_column(default=False)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    clone_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    homepage: Mapped[str | None] = mapped_column(String(500), nullable=True)
    language: Mapped[str | None] = mapped_column(String(100), nullable=True)
    size: Mapped[int] = mapped_column(default=0)
    stargazers_count: Mapped[int] = mapped_column(default=0)
    watchers_count: Mapped[int] = mapped_column(default=0)
    forks_count: Mapped[int] = mapped_column(default=0)
    open_issues_count: Mapped[int] = mapped_column(default=0)
    default_branch: Mapped[str | None] = mapped_column(String(200), nullable=True)
    topics: Mapped[list[str]] = mapped_column(JSON, default=list)
    visibility: Mapped[str | None] = mapped_column(String(20), nullable=True)
    archived: Mapped[bool] = mapped_column(default=False)
    disabled: Mapped[bool] = mapped_column(default=False)
    owner_info: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)  # {login, avatar_url, type}
    pushed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)

    organization: Mapped["Organization | None"] = relationship(back_populates="repos")
    commits: Mapped[list["Commit"]] = relationship(
        back_populates="repo", cascade="all, delete-orphan", passive_deletes=True
    )
    pulls: Mapped[list["PullRequest"]] = relationship(
        back_populates="repo", cascade="all, delete-orphan", passive_deletes=True
    )
    issues: Mapped[list["Issue"]] = relationship(
        back_populates="repo", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Repo(id={self.id}, full_name='{self.full_name}')>"


# ------------------------------------------------------------------------------
# Commit
# ------------------------------------------------------------------------------
class Commit(Base):
    """A commit, keyed by its SHA."""

    __tablename__ = "commits"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(ForeignKey("integrations.id", ondelete="CASCADE"))
    repo_id: Mapped[int] = mapped_column(ForeignKey("repos.id", ondelete="CASCADE"), index=True)
    sha: Mapped[str] = mapped_column(String(40), unique=True)

    message: Mapped[str] = mapped_column(Text, default="")
    author: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)  # {name, email, date, login, avatar_url}
    committer: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    comment_count: Mapped[int] = mapped_column(default=0)
    additions: Mapped[int] = mapped_column(default=0)
    deletions: Mapped[int] = mapped_column(default=0)
    total_changes: Mapped[int] = mapped_column(default=0)
    files: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    parents: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    verified: Mapped[bool] = mapped_column(default=False)
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    committed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)

    repo: Mapped["Repo"] = relationship(back_populates="commits")

    def __repr__(self) -> str:
        return f"<Commit(id={self.id}, sha='{self.sha[:7]}')>"


# ------------------------------------------------------------------------------
# PullRequest
# ------------------------------------------------------------------------------
class PullRequest(Base):
    """A pull request, keyed by (repo, number)."""

    __tablename__ = "pulls"
    __table_args__ = (UniqueConstraint("repo_id", "number", name="uq_pull_repo_number"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(ForeignKey("integrations.id", ondelete="CASCADE"))
    repo_id: Mapped[int] = mapped_column(ForeignKey("repos.id", ondelete="CASCADE"), index=True)
    number: Mapped[int] = mapped_column(Integer)
    github_id: Mapped[int] = mapped_column(BigInteger)

    title: Mapped[str] = mapped_column(String(1000), default="")
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str] = mapped_column(String(20), default="open", index=True)
    locked: Mapped[bool] = mapped_column(default=False)
    draft: Mapped[bool] = mapped_column(default=False)
    merged: Mapped[bool] = mapped_column(default=False)
    user: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    labels: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    milestone: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    assignees: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    requested_reviewers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    head: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)  # {ref, sha, label, user}
    base: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    merged_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)

    repo: Mapped["Repo"] = relationship(back_populates="pulls")

    def __repr__(self) -> str:
        return f"<PullRequest(id={self.id}, number={self.number}, state='{self.state}')>"


# ------------------------------------------------------------------------------
# Issue
# ------------------------------------------------------------------------------
class Issue(Base):
    """An issue, keyed by (repo, number). Owns its timeline as Changelogs."""

    __tablename__ = "issues"
    __table_args__ = (UniqueConstraint("repo_id", "number", name="uq_issue_repo_number"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(ForeignKey("integrations.id", ondelete="CASCADE"))
    repo_id: Mapped[int] = mapped_column(ForeignKey("repos.id", ondelete="CASCADE"), index=True)
    number: Mapped[int] = mapped_column(Integer)
    github_id: Mapped[int] = mapped_column(BigInteger)

    title: Mapped[str] = mapped_column(String(1000), default="")
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str] = mapped_column(String(20), default="open", index=True)
    state_reason: Mapped[str | None] = mapped_column(String(50), nullable=True)
    locked: Mapped[bool] = mapped_column(default=False)
    user: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    labels: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    assignees: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    milestone: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    comments: Mapped[int] = mapped_column(default=0)
    closed_by: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)

    repo: Mapped["Repo"] = relationship(back_populates="issues")
    changelogs: Mapped[list["Changelog"]] = relationship(
        back_populates="issue",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Changelog.event_created_at",
    )

    def __repr__(self) -> str:
        return f"<Issue(id={self.id}, number={self.number}, state='{self.state}')>"


# ------------------------------------------------------------------------------
# Changelog
# ------------------------------------------------------------------------------
class Changelog(Base):
    """One timeline event on an issue. Rows are never updated once written."""

    __tablename__ = "changelogs"
    __table_args__ = (
        UniqueConstraint("issue_id", "github_event_id", name="uq_changelog_issue_event"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(ForeignKey("integrations.id", ondelete="CASCADE"))
    issue_id: Mapped[int] = mapped_column(ForeignKey("issues.id", ondelete="CASCADE"), index=True)
    github_event_id: Mapped[int] = mapped_column(BigInteger)

    event: Mapped[str] = mapped_column(String(100))
    actor: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    commit_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    label: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    assignee: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    milestone: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    rename: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # {from, to}
    review_requester: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    requested_reviewer: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    event_created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)

    issue: Mapped["Issue"] = relationship(back_populates="changelogs")

    def __repr__(self) -> str:
        return f"<Changelog(id={self.id}, event='{self.event}')>"


# ------------------------------------------------------------------------------
# User
# ------------------------------------------------------------------------------
class User(Base):
    """A GitHub user, usually an organization member."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_id: Mapped[int] = mapped_column(ForeignKey("integrations.id", ondelete="CASCADE"))
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    login: Mapped[str] = mapped_column(String(100), index=True)

    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    type: Mapped[str] = mapped_column(String(50), default="User")
    site_admin: Mapped[bool] = mapped_column(default=False)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    blog: Mapped[str | None] = mapped_column(String(500), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    twitter_username: Mapped[str | None] = mapped_column(String(100), nullable=True)
    public_repos: Mapped[int] = mapped_column(default=0)
    public_gists: Mapped[int] = mapped_column(default=0)
    followers: Mapped[int] = mapped_column(default=0)
    following: Mapped[int] = mapped_column(default=0)
    github_created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, index=True)

    organization: Mapped["Organization | None"] = relationship(back_populates="users")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, login='{self.login}')>"


# ------------------------------------------------------------------------------
# Shared store tables (bounded TTL)
# ------------------------------------------------------------------------------
class SyncProgressEntry(Base):
    """Latest progress of a running sync, readable from any process."""

    __tablename__ = "sync_progress"

    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(String(20))
    message: Mapped[str] = mapped_column(Text, default="")
    current: Mapped[int] = mapped_column(default=0)
    total: Mapped[int] = mapped_column(default=100)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime)

    def __repr__(self) -> str:
        return f"<SyncProgressEntry(integration_id={self.integration_id}, {self.current}/{self.total})>"


class RateLimitRecord(Base):
    """Most recent core quota reported by GitHub for an integration."""

    __tablename__ = "rate_limit_snapshots"

    integration_id: Mapped[int] = mapped_column(
        ForeignKey("integrations.id", ondelete="CASCADE"), primary_key=True
    )
    limit: Mapped[int] = mapped_column(default=0)
    remaining: Mapped[int] = mapped_column(default=0)
    used: Mapped[int] = mapped_column(default=0)
    reset_at: Mapped[datetime] = mapped_column(UTCDateTime)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime)

    def __repr__(self) -> str:
        return f"<RateLimitRecord(integration_id={self.integration_id}, remaining={self.remaining})>"
