"""Tests for IntegrationRepository."""

from datetime import UTC, datetime, timedelta

from github_sync_engine.db import SyncStatus
from github_sync_engine.db.repositories import IntegrationRepository
from tests.factories import make_integration


class TestIntegrationRepositoryCreate:
    """Tests for creating and reactivating integrations."""

    async def test_create(self, db_session):
        repository = IntegrationRepository(db_session)

        integration = await repository.create("octocat", "ghp_first", github_user_id=1)

        assert integration.id is not None
        assert integration.is_active is True
        assert integration.sync_status == SyncStatus.IDLE
        assert integration.sync_metadata == {}

    async def test_create_reactivates_existing_login(self, db_session):
        repository = IntegrationRepository(db_session)
        first = await repository.create("octocat", "ghp_first")
        await repository.deactivate(first)

        second = await repository.create("octocat", "ghp_second")

        assert second.id == first.id
        assert second.is_active is True
        assert second.access_token == "ghp_second"

    async def test_get_active_skips_deactivated(self, db_session):
        make_integration(db_session, github_login="active")
        make_integration(db_session, github_login="gone", is_active=False)
        await db_session.flush()

        active = await IntegrationRepository(db_session).get_active()

        assert [i.github_login for i in active] == ["active"]

    async def test_list_needing_sync(self, db_session):
        now = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
        make_integration(db_session, github_login="never")
        make_integration(db_session, github_login="fresh", last_sync_at=now - timedelta(hours=1))
        make_integration(db_session, github_login="stale", last_sync_at=now - timedelta(hours=30))
        make_integration(
            db_session, github_login="gone", is_active=False, last_sync_at=now - timedelta(days=9)
        )
        await db_session.flush()
        repository = IntegrationRepository(db_session)

        default = await repository.list_needing_sync(now=now)
        strict = await repository.list_needing_sync(now=now, stale_after=timedelta(minutes=30))

        assert [i.github_login for i in default] == ["never", "stale"]
        assert [i.github_login for i in strict] == ["never", "fresh", "stale"]


class TestIntegrationRepositoryState:
    """Tests for sync state mutations."""

    async def test_update_metadata_merges(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repository = IntegrationRepository(db_session)

        await repository.update_metadata(integration, total_repos=3)
        await repository.update_metadata(integration, failed_stages=1)

        assert integration.sync_metadata == {"total_repos": 3, "failed_stages": 1}

    async def test_update_progress(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()

        await IntegrationRepository(db_session).update_progress(integration, 40, 100, "Repos")

        assert integration.sync_progress == {"current": 40, "total": 100, "message": "Repos"}

    async def test_mark_synced(self, db_session):
        integration = make_integration(db_session, sync_status=SyncStatus.SYNCING)
        await db_session.flush()
        at = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

        await IntegrationRepository(db_session).mark_synced(integration, at=at)

        assert integration.last_sync_at == at
        assert integration.sync_status == SyncStatus.COMPLETED

    async def test_update_rate_limit(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        reset = datetime(2024, 1, 15, 11, 0, tzinfo=UTC)

        await IntegrationRepository(db_session).update_rate_limit(
            integration, limit=5000, remaining=4999, reset_at=reset, used=1
        )

        assert integration.rate_limit_info == {
            "limit": 5000,
            "remaining": 4999,
            "reset": reset.isoformat(),
            "used": 1,
        }

    async def test_deactivate_drops_credentials(self, db_session):
        integration = make_integration(db_session, scope="repo,read:org")
        await db_session.flush()

        await IntegrationRepository(db_session).deactivate(integration)

        assert integration.is_active is False
        assert integration.access_token is None
        assert integration.scope is None
