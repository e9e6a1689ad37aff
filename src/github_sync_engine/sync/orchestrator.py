"""Sync orchestrator: drives the stage pipeline for one integration.

Stage order for a full sync:
    organizations (each with its repositories) -> per repository
    (commits, pulls, issues with their timelines) -> organization members
    -> finalize

Organizations and repositories are essential: their failure fails the run.
Everything after them is recorded per stage and the run carries on.

Each stage opens its own short database session after its remote calls
are done, so no transaction is held open across network I/O.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from github_sync_engine.config import Settings, get_settings
from github_sync_engine.db.engine import get_session
from github_sync_engine.db.models import (
    Commit,
    Issue,
    OrganizationType,
    PullRequest,
    Repo,
    SyncStatus,
    User,
    utc_now,
)
from github_sync_engine.db.repositories import (
    ChangelogRepository,
    CommitRepository,
    IntegrationRepository,
    IssueRepository,
    OrganizationRepository,
    PullRequestRepository,
    RepoRepository,
    UserRepository,
)
from github_sync_engine.github import (
    GitHubAuthenticationError,
    GitHubClient,
    GitHubRateLimitError,
    RateLimitTracker,
    process_all,
    retry_github_call,
)
from github_sync_engine.github.client import HeadersCallback
from github_sync_engine.github.retry import RetryPolicy, github_retry_policy
from github_sync_engine.logging import bind_integration, bind_repo, get_logger
from github_sync_engine.redaction import sanitize_error, sanitize_message
from github_sync_engine.schemas.github_api import GitHubAccount, GitHubCommit

from .context import SyncContext
from .exceptions import (
    IntegrationNotFoundError,
    RepositoryNotSyncedError,
    SyncCancelledError,
    SyncError,
    SyncInProgressError,
    SyncInterruptedError,
)
from .progress import ProgressReporter, ProgressStore
from .results import StageResult, SyncRunReport

logger = get_logger(__name__)

TokenProvider = Callable[[int], Awaitable[str | None]]
ClientFactory = Callable[[str, HeadersCallback], GitHubClient]

ACTIVITY_STAGES = ("commits", "pulls", "issues")

# Errors that make every following call pointless; they abort even the
# stages that otherwise fail in isolation.
_RUN_ABORTING = (GitHubAuthenticationError, GitHubRateLimitError, SyncCancelledError)

# Progress milestones (percent)
_ORGS_DONE = 20
_REPOS_DONE = 80
_USERS_DONE = 90


class SyncOrchestrator:
    """Runs full and single-stage syncs for integrations.

    Usage:
        orchestrator = SyncOrchestrator()
        report = await orchestrator.sync_all(integration_id)
        progress = await orchestrator.get_sync_progress(integration_id)

    One instance should serve a whole process: it owns the single-flight
    locks and the progress cache.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        client_factory: ClientFactory | None = None,
        token_provider: TokenProvider | None = None,
        tracker: RateLimitTracker | None = None,
        progress_store: ProgressStore | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session_factory: Factory for database sessions (global by default)
            client_factory: Builds a GitHubClient from a token and a
                rate limit header callback
            token_provider: Resolves an integration's token; when it returns
                None the token stored on the Integration row is used
            tracker: Rate limit tracker shared with other components
            progress_store: Shared progress store
            settings: Settings override
            clock: Source of "now", injectable for tests
        """
        self._settings = settings or get_settings()
        self._session_factory = session_factory
        self._clock = clock
        self._retry_policy: RetryPolicy = github_retry_policy(self._settings.retry)
        self._client_factory = client_factory or self._default_client
        self._token_provider = token_provider or self._stored_token
        self._tracker = tracker or RateLimitTracker(
            session_factory,
            min_ttl_seconds=self._settings.rate_limit.min_ttl_seconds,
            clock=clock,
        )
        self._store = progress_store or ProgressStore(
            session_factory, config=self._settings.sync, clock=clock
        )
        self._locks: dict[int, asyncio.Lock] = {}
        self._active: dict[int, SyncContext] = {}

    @property
    def progress_store(self) -> ProgressStore:
        return self._store

    @property
    def tracker(self) -> RateLimitTracker:
        return self._tracker

    def _session(self) -> Any:
        return get_session(self._session_factory)

    # -------------------------------------------------------------------------
    # Context
    # -------------------------------------------------------------------------
    def _default_client(self, token: str, on_rate_limit: HeadersCallback) -> GitHubClient:
        return GitHubClient(
            token,
            on_rate_limit=on_rate_limit if self._settings.rate_limit.track_from_headers else None,
            retry_policy=self._retry_policy,
            pacing=self._settings.pacing,
        )

    async def _stored_token(self, integration_id: int) -> str | None:
        async with self._session() as session:
            integration = await IntegrationRepository(session).get_by_id(integration_id)
            return integration.access_token if integration else None

    async def _open_context(self, integration_id: int) -> SyncContext:
        """Resolve the integration, check the quota and build a client.

        Raises:
            IntegrationNotFoundError: Unknown or deactivated integration
            GitHubRateLimitError: The stored snapshot says the quota is spent
            GitHubAuthenticationError: No token could be resolved
        """
        async with self._session() as session:
            integration = await IntegrationRepository(session).get_by_id(integration_id)
            if integration is None or not integration.is_active:
                raise IntegrationNotFoundError(integration_id)
            login = integration.github_login

        await self._tracker.check(integration_id)

        token = await self._token_provider(integration_id) or await self._stored_token(
            integration_id
        )
        if not token:
            raise GitHubAuthenticationError(f"No access token for integration {integration_id}")

        return SyncContext(
            integration_id=integration_id,
            github_login=login,
            client=self._client_factory(token, self._tracker.observer(integration_id)),
            log=bind_integration(integration_id),
            started_at=self._clock(),
        )

    async def _close_context(self, ctx: SyncContext) -> None:
        await ctx.client.close()
        await self._flush_rate_limit(ctx)

    async def _flush_rate_limit(self, ctx: SyncContext) -> None:
        try:
            await self._tracker.flush(ctx.integration_id)
        except Exception as e:
            ctx.log.warning("Failed to persist rate limit snapshot: {}", e)

    async def _run_single(
        self,
        integration_id: int,
        label: str,
        work: Callable[[SyncContext], Awaitable[StageResult]],
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Run one stage, publishing running/completed/failed progress for it."""
        ctx = await self._open_context(integration_id)
        reporter = reporter or ProgressReporter(self._store, integration_id, clock=self._clock)
        try:
            await reporter.start(f"Syncing {label}")
            result = await work(ctx)
        except asyncio.CancelledError:
            await asyncio.shield(
                reporter.finish(f"Sync of {label} interrupted", status="failed")
            )
            raise
        except Exception as e:
            await reporter.finish(
                f"Sync of {label} failed: {sanitize_message(str(e))}", status="failed"
            )
            raise
        finally:
            await self._close_context(ctx)

        status = "completed" if result.success else "failed"
        await reporter.finish(result.message, status=status)
        ctx.log.info(result.message)
        return result.to_dict()

    async def _guarded(
        self,
        ctx: SyncContext,
        stage: str,
        target: str | None,
        work: Callable[..., Awaitable[StageResult]],
        *args: Any,
    ) -> StageResult:
        """Run a non-essential stage, turning its failure into a result."""
        try:
            return await work(ctx, *args)
        except _RUN_ABORTING:
            raise
        except Exception as e:
            ctx.log.bind(stage=stage).error(
                "Stage {} failed for {}: {}",
                stage,
                target or ctx.github_login,
                sanitize_message(str(e)),
            )
            return StageResult.from_error(stage, e, target)

    async def _find_repo(self, ctx: SyncContext, owner: str, name: str) -> Repo:
        async with self._session() as session:
            repo = await RepoRepository(session).find_by_owner_and_name(
                ctx.integration_id, owner, name
            )
        if repo is None:
            raise RepositoryNotSyncedError(owner, name)
        return repo

    # -------------------------------------------------------------------------
    # Full sync
    # -------------------------------------------------------------------------
    def is_syncing(self, integration_id: int) -> bool:
        lock = self._locks.get(integration_id)
        return lock is not None and lock.locked()

    async def sync_all(
        self,
        integration_id: int,
        *,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Run every stage for an integration.

        Args:
            integration_id: Integration to sync
            reporter: Progress reporter to use (the job queue passes its own
                so job progress mirrors the run)

        Returns:
            SyncRunReport as a dict

        Raises:
            SyncInProgressError: A full sync for this integration is running
            IntegrationNotFoundError: Unknown or deactivated integration
            GitHubRateLimitError: Quota spent, before or during the run
            Exception: Whatever failed an essential stage
        """
        lock = self._locks.setdefault(integration_id, asyncio.Lock())
        if lock.locked():
            raise SyncInProgressError(integration_id)

        async with lock:
            ctx = await self._open_context(integration_id)
            ctx.reporter = reporter or ProgressReporter(
                self._store, integration_id, clock=self._clock
            )
            report = SyncRunReport(integration_id=integration_id, started_at=ctx.started_at)
            self._active[integration_id] = ctx
            ctx.log.info("Starting full sync for {}", ctx.github_login)

            try:
                await self._set_status(integration_id, SyncStatus.SYNCING)
                await ctx.reporter.start()
                await self._run_stages(ctx, report)
                await self._finalize(ctx, report)
            except asyncio.CancelledError:
                # Task cancellation (the job queue's attempt timeout) must still
                # leave the integration failed rather than syncing
                await asyncio.shield(self._fail(ctx, report, SyncInterruptedError(integration_id)))
                raise
            except Exception as e:
                await self._fail(ctx, report, e)
                raise
            finally:
                self._active.pop(integration_id, None)
                await self._close_context(ctx)

        return report.to_dict()

    async def _run_stages(self, ctx: SyncContext, report: SyncRunReport) -> None:
        report.add(await self._organizations(ctx))
        await self._flush_rate_limit(ctx)
        await ctx.report("Organizations and repositories synced", _ORGS_DONE)

        async with self._session() as session:
            repos = await RepoRepository(session).list_for_integration(ctx.integration_id)

        total = len(repos)
        for index, repo in enumerate(repos):
            if ctx.cancelled:
                for remaining in repos[index:]:
                    for stage in ACTIVITY_STAGES:
                        report.add(StageResult.skipped(stage, remaining.full_name))
                report.add(StageResult.skipped("users"))
                ctx.ensure_not_cancelled()

            span = _REPOS_DONE - _ORGS_DONE
            await ctx.report(
                f"Syncing {repo.full_name} ({index + 1}/{total})",
                _ORGS_DONE + span * index // total,
            )
            report.add(await self._guarded(ctx, "commits", repo.full_name, self._commits, repo))
            report.add(await self._guarded(ctx, "pulls", repo.full_name, self._pulls, repo))
            report.add(await self._guarded(ctx, "issues", repo.full_name, self._issues, repo))
            report.repositories += 1
            await self._flush_rate_limit(ctx)

        await ctx.report("Repository activity synced", _REPOS_DONE)

        if ctx.cancelled:
            report.add(StageResult.skipped("users"))
            ctx.ensure_not_cancelled()
        report.add(await self._guarded(ctx, "users", None, self._users))
        await ctx.report("Organization members synced", _USERS_DONE)

    async def _finalize(self, ctx: SyncContext, report: SyncRunReport) -> None:
        integration_id = ctx.integration_id
        now = self._clock()
        async with self._session() as session:
            integrations = IntegrationRepository(session)
            integration = await integrations.get_by_id(integration_id)
            if integration is None:
                raise IntegrationNotFoundError(integration_id)

            organizations = await OrganizationRepository(session).list_for_integration(
                integration_id
            )
            await integrations.update_metadata(
                integration,
                organizations=[org.login for org in organizations],
                total_repos=await RepoRepository(session).count(
                    Repo.integration_id == integration_id
                ),
                total_commits=await CommitRepository(session).count(
                    Commit.integration_id == integration_id
                ),
                total_pulls=await PullRequestRepository(session).count(
                    PullRequest.integration_id == integration_id
                ),
                total_issues=await IssueRepository(session).count(
                    Issue.integration_id == integration_id
                ),
                total_users=await UserRepository(session).count(
                    User.integration_id == integration_id
                ),
                failed_stages=len(report.failed_stages),
                last_error=None,
            )
            await integrations.update_progress(integration, 100, 100, "Sync completed")
            await integrations.mark_synced(integration, at=now)

        report.status = SyncStatus.COMPLETED
        report.completed_at = now
        if ctx.reporter is not None:
            await ctx.reporter.finish(
                f"Sync completed: {report.repositories} repositories, "
                f"{len(report.failed_stages)} failed stages"
            )
        ctx.log.info(
            "Full sync completed: repos={}, stages={}, failed={} ({:.1f}s)",
            report.repositories,
            len(report.stages),
            len(report.failed_stages),
            report.duration_seconds,
        )

    async def _fail(self, ctx: SyncContext, report: SyncRunReport, error: Exception) -> None:
        cancelled = isinstance(error, SyncCancelledError)
        details = sanitize_error(error)
        last_error = {
            "message": details["message"],
            "code": details["code"],
            "timestamp": self._clock().isoformat(),
        }
        report.status = SyncStatus.FAILED
        report.error = last_error
        report.completed_at = self._clock()

        if cancelled:
            ctx.log.warning("Full sync cancelled")
        else:
            ctx.log.error("Full sync failed: {}", details["message"])

        try:
            async with self._session() as session:
                integrations = IntegrationRepository(session)
                integration = await integrations.get_by_id(ctx.integration_id)
                if integration is not None:
                    await integrations.update_sync_status(integration, SyncStatus.FAILED)
                    await integrations.update_metadata(integration, last_error=last_error)
        except Exception as e:
            ctx.log.error("Failed to record sync failure: {}", e)

        if ctx.reporter is not None:
            if cancelled:
                await ctx.reporter.finish("Sync cancelled", status="cancelled")
            else:
                await ctx.reporter.finish(f"Sync failed: {details['message']}", status="failed")

    async def _set_status(self, integration_id: int, status: SyncStatus) -> None:
        async with self._session() as session:
            integrations = IntegrationRepository(session)
            integration = await integrations.get_by_id(integration_id)
            if integration is not None:
                await integrations.update_sync_status(integration, status)

    # -------------------------------------------------------------------------
    # Progress & cancellation
    # -------------------------------------------------------------------------
    async def get_sync_progress(self, integration_id: int) -> dict[str, Any] | None:
        """Latest progress snapshot, or None when nothing is live."""
        progress = await self._store.read(integration_id)
        return progress.to_dict() if progress else None

    async def cancel_sync(self, integration_id: int) -> bool:
        """Request cancellation and clear the shared progress marker.

        The running sync stops at its next repository boundary (or before
        the users stage); in-flight calls are not interrupted.

        Returns:
            True if a run in this process was flagged
        """
        ctx = self._active.get(integration_id)
        if ctx is not None:
            ctx.cancelled = True
        await self._store.clear(integration_id)
        logger.info("Cancellation requested for integration {}", integration_id)
        return ctx is not None

    # -------------------------------------------------------------------------
    # Public single stages
    # -------------------------------------------------------------------------
    async def sync_organizations(
        self, integration_id: int, *, reporter: ProgressReporter | None = None
    ) -> dict[str, Any]:
        """Sync the account, its organizations and all their repositories."""
        return await self._run_single(
            integration_id, "organizations", self._organizations, reporter
        )

    async def sync_repositories(
        self, integration_id: int, owner: str, *, reporter: ProgressReporter | None = None
    ) -> dict[str, Any]:
        """Sync repositories of one owner (organization or the account itself)."""

        async def work(ctx: SyncContext) -> StageResult:
            async with self._session() as session:
                org = await OrganizationRepository(session).find_by_login(ctx.integration_id, owner)
            if org is not None:
                personal = org.type == OrganizationType.USER
            else:
                personal = owner.lower() == ctx.github_login.lower()
            return await self._repositories(ctx, owner, personal=personal)

        return await self._run_single(integration_id, f"repositories of {owner}", work, reporter)

    async def sync_commits(
        self,
        integration_id: int,
        owner: str,
        repo: str,
        *,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        async def work(ctx: SyncContext) -> StageResult:
            return await self._commits(ctx, await self._find_repo(ctx, owner, repo))

        return await self._run_single(integration_id, f"commits of {owner}/{repo}", work, reporter)

    async def sync_pulls(
        self,
        integration_id: int,
        owner: str,
        repo: str,
        *,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        async def work(ctx: SyncContext) -> StageResult:
            return await self._pulls(ctx, await self._find_repo(ctx, owner, repo))

        return await self._run_single(integration_id, f"pulls of {owner}/{repo}", work, reporter)

    async def sync_issues(
        self,
        integration_id: int,
        owner: str,
        repo: str,
        *,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Sync issues of a repository, including each issue's timeline."""

        async def work(ctx: SyncContext) -> StageResult:
            return await self._issues(ctx, await self._find_repo(ctx, owner, repo))

        return await self._run_single(integration_id, f"issues of {owner}/{repo}", work, reporter)

    async def sync_changelogs(
        self,
        integration_id: int,
        owner: str,
        repo: str,
        issue_number: int,
        *,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Sync the timeline of one stored issue."""

        async def work(ctx: SyncContext) -> StageResult:
            stored = await self._find_repo(ctx, owner, repo)
            async with self._session() as session:
                issue = await IssueRepository(session).get_by_number(stored.id, issue_number)
            if issue is None:
                raise SyncError(f"Issue #{issue_number} of {owner}/{repo} not found in database")

            result = StageResult("changelogs", target=f"{stored.full_name}#{issue_number}")
            created = await self._changelogs(ctx, stored, issue.id, issue_number)
            result.stats = {"changelogs": created}
            return result.finish()

        label = f"timeline of {owner}/{repo}#{issue_number}"
        return await self._run_single(integration_id, label, work, reporter)

    async def sync_users(
        self, integration_id: int, *, reporter: ProgressReporter | None = None
    ) -> dict[str, Any]:
        """Sync members of every stored organization."""
        return await self._run_single(integration_id, "organization members", self._users, reporter)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------
    async def _organizations(self, ctx: SyncContext) -> StageResult:
        result = StageResult("organizations", target=ctx.github_login)
        client = ctx.client

        account = await client.get_authenticated_user()
        summaries = await client.list_organizations()
        profiles: list[GitHubAccount] = []
        for summary in summaries:
            profiles.append(
                await retry_github_call(
                    lambda login=summary.login: client.get_organization(login),
                    policy=self._retry_policy,
                )
            )

        now = self._clock()
        async with self._session() as session:
            orgs = OrganizationRepository(session)
            await orgs.upsert_by_github_id(
                account.id,
                {
                    **account.to_organization_values(),
                    "integration_id": ctx.integration_id,
                    "type": OrganizationType.USER,
                    "synced_at": now,
                },
            )
            for profile in profiles:
                await orgs.upsert_by_github_id(
                    profile.id,
                    {
                        **profile.to_organization_values(),
                        "integration_id": ctx.integration_id,
                        "type": OrganizationType.ORGANIZATION,
                        "synced_at": now,
                    },
                )

            integrations = IntegrationRepository(session)
            integration = await integrations.get_by_id(ctx.integration_id)
            if integration is not None and integration.github_user_id is None:
                integration.github_user_id = account.id
                await integrations.flush()

        ctx.log.info("Stored account {} and {} organizations", account.login, len(profiles))

        owners = [(profile.login, False) for profile in profiles] + [(account.login, True)]
        repositories = 0
        for index, (login, personal) in enumerate(owners, start=1):
            ctx.ensure_not_cancelled()
            stage = await self._repositories(ctx, login, personal=personal)
            repositories += stage.stats.get("repositories", 0)
            await ctx.report(f"Synced repositories for {login}", _ORGS_DONE * index // len(owners))

        result.stats = {"organizations": len(owners), "repositories": repositories}
        return result.finish()

    async def _repositories(self, ctx: SyncContext, owner: str, *, personal: bool) -> StageResult:
        result = StageResult("repositories", target=owner)
        repos = await ctx.client.list_repositories(owner, personal=personal)

        now = self._clock()
        async with self._session() as session:
            org = await OrganizationRepository(session).find_by_login(ctx.integration_id, owner)
            store = RepoRepository(session)
            for repo in repos:
                await store.upsert_by_github_id(
                    repo.id,
                    {
                        **repo.to_values(),
                        "integration_id": ctx.integration_id,
                        "organization_id": org.id if org else None,
                        "synced_at": now,
                    },
                )

        ctx.log.debug("Stored {} repositories for {}", len(repos), owner)
        result.stats = {"repositories": len(repos)}
        return result.finish()

    async def _commits(self, ctx: SyncContext, repo: Repo) -> StageResult:
        result = StageResult("commits", target=repo.full_name)
        log = bind_repo(ctx.integration_id, repo.owner, repo.name)
        client = ctx.client

        since = self._clock() - self._settings.sync.commit_window
        listed = await client.list_commits(repo.owner, repo.name, since=since)

        # Stats and files come from the single-commit endpoint; without them
        # the summary from the listing is stored as is.
        enriched: list[tuple[GitHubCommit, GitHubCommit | None]] = []
        missing = 0
        for commit in listed:
            detail: GitHubCommit | None = None
            try:
                detail = await retry_github_call(
                    lambda sha=commit.sha: client.get_commit(repo.owner, repo.name, sha),
                    policy=self._retry_policy,
                )
            except _RUN_ABORTING:
                raise
            except Exception as e:
                missing += 1
                log.warning("No detail for commit {}: {}", commit.sha[:7], sanitize_message(str(e)))
            enriched.append((commit, detail))

        now = self._clock()
        async with self._session() as session:
            commits = CommitRepository(session)
            for commit, detail in enriched:
                await commits.upsert_by_sha(
                    commit.sha,
                    {
                        **commit.to_values(detail),
                        "integration_id": ctx.integration_id,
                        "repo_id": repo.id,
                        "synced_at": now,
                    },
                )

        log.info("Synced {} commits", len(enriched))
        result.stats = {"commits": len(enriched), "commit_details_missing": missing}
        return result.finish()

    async def _pulls(self, ctx: SyncContext, repo: Repo) -> StageResult:
        result = StageResult("pulls", target=repo.full_name)
        pulls = await ctx.client.list_pulls(repo.owner, repo.name)

        now = self._clock()
        async with self._session() as session:
            store = PullRequestRepository(session)
            for pull in pulls:
                await store.upsert_by_repo_and_number(
                    repo.id,
                    pull.number,
                    {**pull.to_values(), "integration_id": ctx.integration_id, "synced_at": now},
                )

        bind_repo(ctx.integration_id, repo.owner, repo.name).info("Synced {} pulls", len(pulls))
        result.stats = {"pulls": len(pulls)}
        return result.finish()

    async def _issues(self, ctx: SyncContext, repo: Repo) -> StageResult:
        result = StageResult("issues", target=repo.full_name)
        log = bind_repo(ctx.integration_id, repo.owner, repo.name)
        issues = await ctx.client.list_issues(repo.owner, repo.name)

        now = self._clock()
        stored: list[tuple[int, int]] = []
        async with self._session() as session:
            store = IssueRepository(session)
            for issue in issues:
                row = await store.upsert_by_repo_and_number(
                    repo.id,
                    issue.number,
                    {**issue.to_values(), "integration_id": ctx.integration_id, "synced_at": now},
                )
                stored.append((row.id, issue.number))

        changelogs = 0
        failures = 0
        for issue_id, number in stored:
            try:
                changelogs += await self._changelogs(ctx, repo, issue_id, number)
            except _RUN_ABORTING:
                raise
            except Exception as e:
                failures += 1
                log.warning("Timeline of issue #{} failed: {}", number, sanitize_message(str(e)))

        log.info("Synced {} issues, {} new timeline events", len(stored), changelogs)
        result.stats = {
            "issues": len(stored),
            "changelogs": changelogs,
            "changelog_failures": failures,
        }
        return result.finish()

    async def _changelogs(self, ctx: SyncContext, repo: Repo, issue_id: int, number: int) -> int:
        """Store new timeline events of one issue.

        Returns:
            Number of events created (already stored events are skipped)
        """
        events = await ctx.client.list_issue_timeline(repo.owner, repo.name, number)

        now = self._clock()
        created = 0
        async with self._session() as session:
            store = ChangelogRepository(session)
            for event in events:
                if event.id is None:
                    continue
                if await store.create_if_absent(
                    issue_id,
                    event.id,
                    {**event.to_values(), "integration_id": ctx.integration_id, "synced_at": now},
                ):
                    created += 1
        return created

    async def _users(self, ctx: SyncContext) -> StageResult:
        result = StageResult("users")
        client = ctx.client

        async with self._session() as session:
            orgs = [
                (org.id, org.login)
                for org in await OrganizationRepository(session).list_for_integration(
                    ctx.integration_id, type=OrganizationType.ORGANIZATION
                )
            ]

        async def fetch_profile(login: str) -> GitHubAccount:
            return await retry_github_call(
                lambda: client.get_user(login), policy=self._retry_policy
            )

        users = 0
        failures = 0
        for org_id, org_login in orgs:
            members = await client.list_org_members(org_login)
            batch = await process_all(
                [member.login for member in members],
                fetch_profile,
                concurrency=self._settings.pacing.user_fetch_concurrency,
            )
            for index, error in batch.errors:
                ctx.log.warning(
                    "Profile of {} unavailable: {}",
                    members[index].login,
                    sanitize_message(str(error)),
                )
            failures += batch.failure_count

            now = self._clock()
            async with self._session() as session:
                store = UserRepository(session)
                for profile in batch.results:
                    await store.upsert_by_github_id(
                        profile.id,
                        {
                            **profile.to_user_values(),
                            "integration_id": ctx.integration_id,
                            "organization_id": org_id,
                            "synced_at": now,
                        },
                    )
            users += batch.success_count
            ctx.log.debug("Stored {} members of {}", batch.success_count, org_login)

        result.stats = {"users": users, "user_failures": failures}
        return result.finish()

