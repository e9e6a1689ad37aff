"""Tests for ORM models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from github_sync_engine.db.models import Changelog, Integration, Repo, SyncStatus, utc_now
from tests.conftest import JAN_15
from tests.factories import make_changelog, make_commit, make_integration, make_issue, make_repo


class TestIntegration:
    """Tests for Integration helpers."""

    def test_needs_sync_when_never_synced(self):
        assert Integration(github_login="octocat").needs_sync() is True

    def test_needs_sync_after_stale_window(self):
        integration = Integration(github_login="octocat", last_sync_at=JAN_15)

        assert integration.needs_sync(now=JAN_15 + timedelta(hours=23)) is False
        assert integration.needs_sync(now=JAN_15 + timedelta(hours=25)) is True
        assert integration.needs_sync(
            now=JAN_15 + timedelta(hours=3), stale_after=timedelta(hours=2)
        ) is True

    def test_deactivate(self):
        integration = Integration(
            github_login="octocat",
            access_token="ghp_x",
            scope="repo",
            is_active=True,
            sync_status=SyncStatus.FAILED,
        )

        integration.deactivate()

        assert integration.access_token is None
        assert integration.scope is None
        assert integration.is_active is False
        assert integration.sync_status == SyncStatus.IDLE

    async def test_defaults(self, db_session):
        integration = Integration(github_login="octocat")
        db_session.add(integration)
        await db_session.flush()

        assert integration.is_active is True
        assert integration.sync_status == SyncStatus.IDLE
        assert integration.sync_metadata == {}
        assert integration.created_at is not None


class TestUTCDateTime:
    """Tests for timezone normalization."""

    async def test_round_trip_returns_aware_utc(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        plus_two = timezone(timedelta(hours=2))
        local = datetime(2024, 1, 15, 12, 0, tzinfo=plus_two)
        repo = make_repo(db_session, integration, synced_at=local)
        await db_session.flush()

        await db_session.refresh(repo)

        assert repo.synced_at.tzinfo == UTC
        assert repo.synced_at == datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

    async def test_comparison_in_queries(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        make_repo(db_session, integration, github_id=1, name="old", synced_at=utc_now() - timedelta(days=10))
        make_repo(db_session, integration, github_id=2, name="new", synced_at=utc_now())
        await db_session.flush()

        result = await db_session.execute(
            select(Repo.name).where(Repo.synced_at < utc_now() - timedelta(days=1))
        )

        assert result.scalars().all() == ["old"]


class TestConstraints:
    """Tests for natural-key uniqueness and cascades."""

    async def test_duplicate_sha_rejected(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        make_commit(db_session, repo, sha="a" * 40)
        make_commit(db_session, repo, sha="a" * 40)

        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_duplicate_issue_event_rejected(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        issue = make_issue(db_session, repo)
        make_changelog(db_session, issue, github_event_id=1)
        make_changelog(db_session, issue, github_event_id=1)

        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_issue_delete_cascades_to_changelogs(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        issue = make_issue(db_session, repo)
        make_changelog(db_session, issue, github_event_id=1)
        make_changelog(db_session, issue, github_event_id=2)
        await db_session.flush()

        await db_session.delete(issue)
        await db_session.flush()

        remaining = await db_session.execute(select(Changelog))
        assert remaining.scalars().all() == []
