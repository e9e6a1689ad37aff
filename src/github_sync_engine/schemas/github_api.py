"""Pydantic schemas for GitHub REST API payloads.

Each wire model validates the fields the sync engine relies on and ignores
the rest. ``to_values()`` translates a payload into the column values of
the matching ORM model; foreign keys and ``synced_at`` are added by the
caller.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GitHubPayload(BaseModel):
    """Base for wire models: tolerant of extra fields."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# -----------------------------------------------------------------------------
# Nested objects
# -----------------------------------------------------------------------------
class GitHubActor(GitHubPayload):
    """The short user object embedded in most payloads."""

    login: str = Field(description="GitHub username")
    id: int | None = Field(default=None, description="GitHub user ID")
    avatar_url: str | None = None
    type: str | None = Field(default=None, description="User, Organization or Bot")

    def brief(self, *, with_type: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {"login": self.login, "avatar_url": self.avatar_url}
        if with_type:
            data["type"] = self.type
        return data


def _brief(actor: GitHubActor | None, *, with_type: bool = False) -> dict[str, Any] | None:
    return actor.brief(with_type=with_type) if actor is not None else None


class GitHubLabel(GitHubPayload):
    name: str
    color: str | None = None
    description: str | None = None


class GitHubMilestone(GitHubPayload):
    title: str
    number: int | None = None
    state: str | None = None
    description: str | None = None


class GitHubGitActor(GitHubPayload):
    """Author/committer as recorded in git (not a GitHub account)."""

    name: str | None = None
    email: str | None = None
    date: datetime | None = None


class GitHubVerification(GitHubPayload):
    verified: bool = False
    signature: str | None = None


class GitHubGitCommit(GitHubPayload):
    message: str = ""
    author: GitHubGitActor | None = None
    committer: GitHubGitActor | None = None
    comment_count: int = 0
    verification: GitHubVerification | None = None


class GitHubCommitStats(GitHubPayload):
    additions: int = 0
    deletions: int = 0
    total: int = 0


class GitHubCommitFile(GitHubPayload):
    filename: str
    status: str | None = None
    additions: int = 0
    deletions: int = 0
    changes: int = 0


class GitHubParent(GitHubPayload):
    sha: str
    url: str | None = None


class GitHubBranchRef(GitHubPayload):
    ref: str
    sha: str
    label: str | None = None
    user: GitHubActor | None = None


class GitHubRename(GitHubPayload):
    from_: str = Field(alias="from")
    to: str


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------
class GitHubAccount(GitHubPayload):
    """A user or organization profile (GET /user, /users/{u}, /orgs/{o}).

    Organizations have ``description``, users have ``bio``; both map to the
    same column.
    """

    id: int
    login: str
    type: str | None = None
    name: str | None = None
    description: str | None = None
    bio: str | None = None
    email: str | None = None
    url: str | None = None
    html_url: str | None = None
    avatar_url: str | None = None
    location: str | None = None
    company: str | None = None
    blog: str | None = None
    twitter_username: str | None = None
    site_admin: bool = False
    public_repos: int = 0
    public_gists: int = 0
    followers: int = 0
    following: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_organization_values(self) -> dict[str, Any]:
        return {
            "login": self.login,
            "name": self.name,
            "description": self.description if self.description is not None else self.bio,
            "url": self.url,
            "html_url": self.html_url,
            "avatar_url": self.avatar_url,
            "location": self.location,
            "email": self.email,
            "public_repos": self.public_repos,
            "public_gists": self.public_gists,
            "followers": self.followers,
            "following": self.following,
            "github_created_at": self.created_at,
            "github_updated_at": self.updated_at,
        }

    def to_user_values(self) -> dict[str, Any]:
        return {
            "login": self.login,
            "name": self.name,
            "email": self.email,
            "avatar_url": self.avatar_url,
            "html_url": self.html_url,
            "type": self.type or "User",
            "site_admin": self.site_admin,
            "company": self.company,
            "blog": self.blog,
            "location": self.location,
            "bio": self.bio,
            "twitter_username": self.twitter_username,
            "public_repos": self.public_repos,
            "public_gists": self.public_gists,
            "followers": self.followers,
            "following": self.following,
            "github_created_at": self.created_at,
            "github_updated_at": self.updated_at,
        }


class GitHubOrganizationSummary(GitHubPayload):
    """Entry of GET /user/orgs and GET /orgs/{org}/members (login + id only)."""

    id: int
    login: str


class GitHubContributor(GitHubPayload):
    id: int | None = None
    login: str | None = None
    type: str | None = None
    contributions: int = 0


# -----------------------------------------------------------------------------
# Repositories and activity
# -----------------------------------------------------------------------------
class GitHubRepository(GitHubPayload):
    """Maps to: GET /orgs/{org}/repos, GET /user/repos"""

    id: int
    name: str
    full_name: str
    owner: GitHubActor
    description: str | None = None
    private: bool = False
    fork: bool = False
    html_url: str | None = None
    clone_url: str | None = None
    homepage: str | None = None
    language: str | None = None
    size: int = 0
    stargazers_count: int = 0
    watchers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    default_branch: str | None = None
    topics: list[str] = Field(default_factory=list)
    visibility: str | None = None
    archived: bool = False
    disabled: bool = False
    pushed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_values(self) -> dict[str, Any]:
        return {
            "owner": self.owner.login,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "private": self.private,
            "fork": self.fork,
            "html_url": self.html_url,
            "clone_url": self.clone_url,
            "homepage": self.homepage,
            "language": self.language,
            "size": self.size,
            "stargazers_count": self.stargazers_count,
            "watchers_count": self.watchers_count,
            "forks_count": self.forks_count,
            "open_issues_count": self.open_issues_count,
            "default_branch": self.default_branch,
            "topics": list(self.topics),
            "visibility": self.visibility,
            "archived": self.archived,
            "disabled": self.disabled,
            "owner_info": self.owner.brief(with_type=True),
            "pushed_at": self.pushed_at,
            "github_created_at": self.created_at,
            "github_updated_at": self.updated_at,
        }


class GitHubCommit(GitHubPayload):
    """Maps to: GET /repos/{owner}/{repo}/commits[/{ref}]

    The listing omits ``stats`` and ``files``; the single-commit endpoint
    fills them in.
    """

    sha: str
    commit: GitHubGitCommit
    html_url: str | None = None
    author: GitHubActor | None = None
    committer: GitHubActor | None = None
    parents: list[GitHubParent] = Field(default_factory=list)
    stats: GitHubCommitStats | None = None
    files: list[GitHubCommitFile] | None = None

    @staticmethod
    def _person(git: GitHubGitActor | None, account: GitHubActor | None) -> dict[str, Any]:
        return {
            "name": git.name if git else None,
            "email": git.email if git else None,
            "date": git.date.isoformat() if git and git.date else None,
            "login": account.login if account else None,
            "avatar_url": account.avatar_url if account else None,
        }

    def to_values(self, detail: "GitHubCommit | None" = None) -> dict[str, Any]:
        """Column values, taking stats and files from ``detail`` when given."""
        source = detail or self
        stats = source.stats or GitHubCommitStats()
        verification = self.commit.verification
        author_date = self.commit.author.date if self.commit.author else None
        return {
            "message": self.commit.message,
            "author": self._person(self.commit.author, self.author),
            "committer": self._person(self.commit.committer, self.committer),
            "html_url": self.html_url,
            "comment_count": self.commit.comment_count,
            "additions": stats.additions,
            "deletions": stats.deletions,
            "total_changes": stats.total,
            "files": [f.model_dump() for f in source.files or []],
            "parents": [p.model_dump() for p in self.parents],
            "verified": verification.verified if verification else False,
            "signature": verification.signature if verification else None,
            "committed_at": author_date,
        }


class GitHubPullRequest(GitHubPayload):
    """Maps to: GET /repos/{owner}/{repo}/pulls"""

    id: int
    number: int
    title: str = ""
    body: str | None = None
    state: str = "open"
    locked: bool = False
    draft: bool = False
    user: GitHubActor | None = None
    labels: list[GitHubLabel] = Field(default_factory=list)
    milestone: GitHubMilestone | None = None
    assignees: list[GitHubActor] = Field(default_factory=list)
    requested_reviewers: list[GitHubActor] = Field(default_factory=list)
    head: GitHubBranchRef | None = None
    base: GitHubBranchRef | None = None
    html_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    merged_at: datetime | None = None

    @staticmethod
    def _ref(ref: GitHubBranchRef | None, *, with_user: bool) -> dict[str, Any]:
        if ref is None:
            return {}
        data: dict[str, Any] = {"ref": ref.ref, "sha": ref.sha, "label": ref.label}
        if with_user:
            data["user"] = _brief(ref.user)
        return data

    def to_values(self) -> dict[str, Any]:
        return {
            "github_id": self.id,
            "title": self.title,
            "body": self.body,
            "state": self.state,
            "locked": self.locked,
            "draft": self.draft,
            # The listing has no "merged" flag; merged_at is authoritative
            "merged": self.merged_at is not None,
            "user": _brief(self.user, with_type=True) or {},
            "labels": [label.model_dump() for label in self.labels],
            "milestone": (
                self.milestone.model_dump(exclude={"description"}) if self.milestone else None
            ),
            "assignees": [a.brief() for a in self.assignees],
            "requested_reviewers": [r.brief() for r in self.requested_reviewers],
            "head": self._ref(self.head, with_user=True),
            "base": self._ref(self.base, with_user=False),
            "html_url": self.html_url,
            "github_created_at": self.created_at,
            "github_updated_at": self.updated_at,
            "closed_at": self.closed_at,
            "merged_at": self.merged_at,
        }


class GitHubIssue(GitHubPayload):
    """Maps to: GET /repos/{owner}/{repo}/issues (pull requests filtered out)."""

    id: int
    number: int
    title: str = ""
    body: str | None = None
    state: str = "open"
    state_reason: str | None = None
    locked: bool = False
    user: GitHubActor | None = None
    labels: list[GitHubLabel] = Field(default_factory=list)
    assignees: list[GitHubActor] = Field(default_factory=list)
    milestone: GitHubMilestone | None = None
    comments: int = 0
    closed_by: GitHubActor | None = None
    html_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None

    def to_values(self) -> dict[str, Any]:
        return {
            "github_id": self.id,
            "title": self.title,
            "body": self.body,
            "state": self.state,
            "state_reason": self.state_reason,
            "locked": self.locked,
            "user": _brief(self.user, with_type=True) or {},
            "labels": [label.model_dump() for label in self.labels],
            "assignees": [a.brief() for a in self.assignees],
            "milestone": self.milestone.model_dump() if self.milestone else None,
            "comments": self.comments,
            "closed_by": _brief(self.closed_by),
            "html_url": self.html_url,
            "github_created_at": self.created_at,
            "github_updated_at": self.updated_at,
            "closed_at": self.closed_at,
        }


class GitHubTimelineEvent(GitHubPayload):
    """Maps to: GET /repos/{owner}/{repo}/issues/{number}/timeline

    Some timeline entries (e.g. cross-references, commits) have no ``id``;
    those cannot be de-duplicated and are skipped by the sync.
    """

    id: int | None = None
    event: str = "unknown"
    actor: GitHubActor | None = None
    commit_id: str | None = None
    label: GitHubLabel | None = None
    assignee: GitHubActor | None = None
    milestone: GitHubMilestone | None = None
    rename: GitHubRename | None = None
    review_requester: GitHubActor | None = None
    requested_reviewer: GitHubActor | None = None
    created_at: datetime | None = None

    def to_values(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "actor": _brief(self.actor, with_type=True),
            "commit_id": self.commit_id,
            "label": {"name": self.label.name, "color": self.label.color} if self.label else None,
            "assignee": _brief(self.assignee),
            "milestone": {"title": self.milestone.title} if self.milestone else None,
            "rename": {"from": self.rename.from_, "to": self.rename.to} if self.rename else None,
            "review_requester": _brief(self.review_requester),
            "requested_reviewer": _brief(self.requested_reviewer),
            "event_created_at": self.created_at,
        }
