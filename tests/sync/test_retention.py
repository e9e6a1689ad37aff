"""Tests for RetentionSweeper.

Sweeps run concurrently in separate sessions, so these tests use the
file-backed database fixture.
"""

from datetime import timedelta

import pytest

from github_sync_engine.config import RetentionConfig
from github_sync_engine.db import get_session
from github_sync_engine.db.models import utc_now
from github_sync_engine.db.repositories import (
    ChangelogRepository,
    CommitRepository,
    IssueRepository,
    PullRequestRepository,
    RepoRepository,
    UserRepository,
)
from github_sync_engine.sync import RetentionSweeper
from tests.factories import (
    make_changelog,
    make_commit,
    make_integration,
    make_issue,
    make_pull,
    make_repo,
    make_user,
)

WINDOW = RetentionConfig(
    commits_days=30,
    pulls_days=30,
    issues_days=30,
    changelogs_days=30,
    repos_days=30,
    users_days=30,
)


@pytest.fixture
def sweeper(file_session_factory) -> RetentionSweeper:
    return RetentionSweeper(file_session_factory, config=WINDOW)


async def seed(session_factory) -> None:
    """Rows on both sides of a 30-day window."""
    old = utc_now() - timedelta(days=45)
    fresh = utc_now() - timedelta(days=5)
    async with get_session(session_factory) as session:
        integration = make_integration(session)
        await session.flush()

        active = make_repo(session, integration, github_id=1, name="active", synced_at=old)
        archived = make_repo(
            session, integration, github_id=2, name="archived", archived=True, synced_at=old
        )
        make_repo(session, integration, github_id=3, name="recent", disabled=True, synced_at=fresh)

        make_commit(session, active, sha="a" * 40, synced_at=old)
        make_commit(session, active, sha="b" * 40, synced_at=fresh)
        make_commit(session, archived, sha="c" * 40, synced_at=fresh)

        make_pull(session, active, number=1, state="closed", synced_at=old)
        make_pull(session, active, number=2, state="open", synced_at=old)

        closed = make_issue(session, active, number=1, state="closed", synced_at=old)
        make_issue(session, active, number=2, state="open", synced_at=old)
        make_changelog(session, closed, github_event_id=1, synced_at=fresh)

        make_user(session, integration, github_id=10, login="stale", synced_at=old)
        make_user(session, integration, github_id=11, login="current", synced_at=fresh)


class TestRunFullCleanup:
    """Tests for the combined sweep."""

    async def test_deletes_only_expired_rows(self, sweeper, file_session_factory):
        await seed(file_session_factory)

        summary = await sweeper.run_full_cleanup()

        assert summary["success"] is True
        deleted = {c["entity"]: c["deleted_count"] for c in summary["cleanups"]}
        assert deleted["commits"] == 1
        assert deleted["pulls"] == 1
        assert deleted["issues"] == 1
        assert deleted["repos"] == 1
        assert deleted["users"] == 1

        async with get_session(file_session_factory) as session:
            # Active and recently-synced disabled repos survive
            assert await RepoRepository(session).count() == 2
            # The archived repo's fresh commit went with it
            assert await CommitRepository(session).count() == 1
            assert await PullRequestRepository(session).count() == 1
            assert await IssueRepository(session).count() == 1
            # The closed issue's changelog cascaded away
            assert await ChangelogRepository(session).count() == 0
            assert await UserRepository(session).count() == 1

    async def test_empty_database(self, sweeper):
        summary = await sweeper.run_full_cleanup()

        assert summary["success"] is True
        assert summary["total_deleted"] == 0
        assert len(summary["cleanups"]) == 6

    async def test_failing_sweep_is_reported(self, file_session_factory, monkeypatch):
        sweeper = RetentionSweeper(file_session_factory, config=WINDOW)
        original = sweeper.sweep

        async def flaky(rule):
            if rule.entity == "users":
                raise RuntimeError("disk I/O error")
            return await original(rule)

        monkeypatch.setattr(sweeper, "sweep", flaky)

        summary = await sweeper.run_full_cleanup()

        assert summary["success"] is False
        users = next(c for c in summary["cleanups"] if c["entity"] == "users")
        assert users == {"entity": "users", "error": "disk I/O error"}
        assert all("deleted_count" in c for c in summary["cleanups"] if c["entity"] != "users")


class TestRetentionStats:
    """Tests for get_retention_stats."""

    async def test_reports_counts_and_windows(self, sweeper, file_session_factory):
        await seed(file_session_factory)

        stats = await sweeper.get_retention_stats()

        assert stats["entities"]["repos"]["total"] == 3
        assert stats["entities"]["users"]["oldest_synced_at"] is not None
        assert stats["entities"]["changelogs"]["total"] == 1
        assert stats["windows"] == {
            "commits": 30,
            "pulls": 30,
            "issues": 30,
            "changelogs": 30,
            "repos": 30,
            "users": 30,
        }

    async def test_empty_tables(self, sweeper):
        stats = await sweeper.get_retention_stats()

        assert stats["entities"]["commits"] == {
            "total": 0,
            "oldest_synced_at": None,
            "newest_synced_at": None,
        }
