"""Async GitHub API client built on githubkit.

One client per integration. Listings go through Paginator (retried per
page, capped per resource); single-item getters are not retried here.
githubkit's own retry is disabled so ``retry.py`` stays the only retry
point.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from githubkit import GitHub
from githubkit.exception import RequestError, RequestFailed, RequestTimeout
from pydantic import BaseModel, ValidationError

from github_sync_engine.config import PacingConfig, get_settings
from github_sync_engine.logging import get_logger
from github_sync_engine.schemas.github_api import (
    GitHubAccount,
    GitHubCommit,
    GitHubContributor,
    GitHubIssue,
    GitHubOrganizationSummary,
    GitHubPullRequest,
    GitHubRepository,
    GitHubTimelineEvent,
)

from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubForbiddenError,
    GitHubNetworkError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from .pagination import Paginator
from .rate_limit.schemas import RateLimitSnapshot
from .retry import RetryPolicy, github_retry_policy

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

HeadersCallback = Callable[[Mapping[str, str]], None]


class GitHubClient:
    """Typed access to the endpoints the sync pipeline needs.

    Usage:
        async with GitHubClient(token, on_rate_limit=tracker.observer(1)) as client:
            me = await client.get_authenticated_user()
            repos = await client.list_repositories(me.login, personal=True)
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        on_rate_limit: HeadersCallback | None = None,
        retry_policy: RetryPolicy | None = None,
        pacing: PacingConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token: Integration access token. Falls back to GITHUB_TOKEN.
            on_rate_limit: Receives the headers of every response, including
                failed ones, for rate limit tracking
            retry_policy: Policy for page fetches (defaults from settings)
            pacing: Page size and ceilings (defaults from settings)

        Raises:
            GitHubAuthenticationError: If no token is available.
        """
        settings = get_settings()
        self._token = token or settings.github_token
        if not self._token:
            raise GitHubAuthenticationError("GitHub token required for this integration")
        self._client: GitHub[Any] | None = None
        self._on_rate_limit = on_rate_limit
        self._retry_policy = retry_policy or github_retry_policy(settings.retry)
        self._pacing = pacing or settings.pacing

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance."""
        if self._client is None:
            self._client = GitHub(self._token, auto_retry=False)
        return self._client

    async def close(self) -> None:
        self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------
    def _report_headers(self, headers: Any) -> None:
        if self._on_rate_limit is None or headers is None:
            return
        try:
            self._on_rate_limit({str(k).lower(): str(v) for k, v in headers.items()})
        except Exception as e:
            # Tracking must never break an API call
            logger.debug("Failed to record rate limit headers: {}", e)

    async def _request(self, method: Callable[..., Awaitable[Any]], **params: Any) -> Any:
        """Call a githubkit endpoint and return the decoded JSON body."""
        try:
            response = await method(**params)
        except RequestFailed as e:
            raise self._handle_error(e) from e
        except (RequestError, RequestTimeout) as e:
            raise GitHubNetworkError(f"GitHub request failed: {e}") from e
        self._report_headers(response.headers)
        return response.json()

    def _paginate(
        self,
        method: Callable[..., Awaitable[Any]],
        *,
        max_items: int | None = None,
        max_pages: int | None = None,
        **params: Any,
    ) -> Paginator[dict[str, Any]]:
        """Build a Paginator of raw items over a page-numbered endpoint.

        Ceilings count raw items, before any filtering or validation.

        Args:
            method: githubkit endpoint coroutine
            max_items: Item ceiling for the whole listing
            max_pages: Page ceiling (defaults to the global page ceiling)
            **params: Endpoint parameters other than page/per_page
        """

        async def fetch_page(page: int, per_page: int) -> list[dict[str, Any]]:
            return list(await self._request(method, page=page, per_page=per_page, **params))

        return Paginator(
            fetch_page,
            per_page=self._pacing.per_page,
            max_items=max_items,
            max_pages=max_pages or self._pacing.max_pages,
            retry_policy=self._retry_policy,
        )

    async def _list(
        self,
        model: type[ModelT],
        paginator: Paginator[dict[str, Any]],
        *,
        keep: Callable[[dict[str, Any]], bool] | None = None,
    ) -> list[ModelT]:
        """Collect a listing and validate each kept item into ``model``."""
        parsed: list[ModelT] = []
        for item in await paginator.collect():
            if keep is not None and not keep(item):
                continue
            try:
                parsed.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping malformed {} item: {}", model.__name__, e)
        return parsed

    # -------------------------------------------------------------------------
    # Accounts and organizations
    # -------------------------------------------------------------------------
    async def get_authenticated_user(self) -> GitHubAccount:
        data = await self._request(self._github.rest.users.async_get_authenticated)
        return GitHubAccount.model_validate(data)

    async def get_user(self, username: str) -> GitHubAccount:
        data = await self._request(self._github.rest.users.async_get_by_username, username=username)
        return GitHubAccount.model_validate(data)

    async def get_organization(self, org: str) -> GitHubAccount:
        data = await self._request(self._github.rest.orgs.async_get, org=org)
        return GitHubAccount.model_validate(data)

    async def list_organizations(self) -> list[GitHubOrganizationSummary]:
        """Organizations the token's user belongs to."""
        return await self._list(
            GitHubOrganizationSummary,
            self._paginate(self._github.rest.orgs.async_list_for_authenticated_user),
        )

    async def list_org_members(self, org: str) -> list[GitHubOrganizationSummary]:
        return await self._list(
            GitHubOrganizationSummary,
            self._paginate(self._github.rest.orgs.async_list_members, org=org),
        )

    # -------------------------------------------------------------------------
    # Repositories and activity
    # -------------------------------------------------------------------------
    async def list_repositories(self, owner: str, *, personal: bool = False) -> list[GitHubRepository]:
        """Repositories of an organization, or the token owner's own repos.

        Args:
            owner: Organization login (ignored when ``personal``)
            personal: List repositories owned by the authenticated user
        """
        if personal:
            paginator = self._paginate(
                self._github.rest.repos.async_list_for_authenticated_user,
                affiliation="owner",
            )
        else:
            paginator = self._paginate(
                self._github.rest.repos.async_list_for_org, org=owner, type="all"
            )
        return await self._list(GitHubRepository, paginator)

    async def list_commits(
        self, owner: str, repo: str, *, since: datetime | None = None
    ) -> list[GitHubCommit]:
        params: dict[str, Any] = {"owner": owner, "repo": repo}
        if since is not None:
            params["since"] = since
        return await self._list(
            GitHubCommit,
            self._paginate(
                self._github.rest.repos.async_list_commits,
                max_items=self._pacing.max_commits,
                **params,
            ),
        )

    async def get_commit(self, owner: str, repo: str, sha: str) -> GitHubCommit:
        """Single commit including ``stats`` and ``files``."""
        data = await self._request(
            self._github.rest.repos.async_get_commit, owner=owner, repo=repo, ref=sha
        )
        return GitHubCommit.model_validate(data)

    async def list_contributors(self, owner: str, repo: str) -> list[GitHubContributor]:
        return await self._list(
            GitHubContributor,
            self._paginate(self._github.rest.repos.async_list_contributors, owner=owner, repo=repo),
        )

    async def list_pulls(self, owner: str, repo: str) -> list[GitHubPullRequest]:
        """Pull requests in any state."""
        return await self._list(
            GitHubPullRequest,
            self._paginate(
                self._github.rest.pulls.async_list,
                max_items=self._pacing.max_pulls,
                owner=owner,
                repo=repo,
                state="all",
            ),
        )

    async def list_issues(self, owner: str, repo: str) -> list[GitHubIssue]:
        """Issues in any state.

        GitHub's issues endpoint also returns pull requests; entries with a
        ``pull_request`` key are dropped after paging, so the item ceiling
        applies to the raw listing.
        """
        return await self._list(
            GitHubIssue,
            self._paginate(
                self._github.rest.issues.async_list_for_repo,
                max_items=self._pacing.max_issues,
                owner=owner,
                repo=repo,
                state="all",
            ),
            keep=lambda item: "pull_request" not in item,
        )

    async def list_issue_timeline(
        self, owner: str, repo: str, issue_number: int
    ) -> list[GitHubTimelineEvent]:
        return await self._list(
            GitHubTimelineEvent,
            self._paginate(
                self._github.rest.issues.async_list_events_for_timeline,
                max_pages=self._pacing.max_timeline_pages,
                owner=owner,
                repo=repo,
                issue_number=issue_number,
            ),
        )

    # -------------------------------------------------------------------------
    # Rate Limit Info
    # -------------------------------------------------------------------------
    async def get_rate_limit(self) -> RateLimitSnapshot:
        """Current quota across pools (this call does not count against it)."""
        data = await self._request(self._github.rest.rate_limit.async_get)
        return RateLimitSnapshot.from_api_response(data)

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: RequestFailed) -> GitHubAPIError:
        """Convert a githubkit failure into a typed error carrying the status."""
        response = error.response
        # Failed responses still report quota
        self._report_headers(response.headers)

        status = response.status_code
        headers = {str(k).lower(): str(v) for k, v in response.headers.items()}

        if status in (403, 429) and headers.get("x-ratelimit-remaining") == "0":
            snapshot = RateLimitSnapshot.from_response_headers(headers)
            core = snapshot.get_core() if snapshot else None
            reset_at = core.reset_at if core else None
            message = "GitHub API rate limit exceeded"
            if reset_at is not None:
                message += f". Resets at {reset_at.isoformat()}"
            return GitHubRateLimitError(message, reset_at=reset_at, status_code=status)
        if status == 401:
            return GitHubAuthenticationError("Invalid or revoked GitHub token")
        if status == 403:
            return GitHubForbiddenError(f"Access forbidden: {error}")
        if status == 404:
            return GitHubNotFoundError(f"Not found: {error}")
        return GitHubAPIError(f"GitHub API error ({status}): {error}", status_code=status)
