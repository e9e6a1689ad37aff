"""Tests for the synced entity repositories and the TTL store repositories."""

from datetime import timedelta

from github_sync_engine.db.models import Commit, OrganizationType, Repo, utc_now
from github_sync_engine.db.repositories import (
    ChangelogRepository,
    CommitRepository,
    IssueRepository,
    OrganizationRepository,
    RateLimitRepository,
    RepoRepository,
    SyncProgressRepository,
)
from tests.factories import (
    make_commit,
    make_integration,
    make_issue,
    make_organization,
    make_repo,
)


class TestUpsertByNaturalKey:
    """Tests for last-write-wins upserts."""

    async def test_insert_then_update(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repos = RepoRepository(db_session)
        values = {
            "integration_id": integration.id,
            "owner": "acme",
            "name": "widgets",
            "full_name": "acme/widgets",
            "stargazers_count": 1,
            "synced_at": utc_now(),
        }

        created = await repos.upsert_by_github_id(1000, values)
        updated = await repos.upsert_by_github_id(1000, {**values, "stargazers_count": 7})

        assert updated.id == created.id
        assert updated.stargazers_count == 7
        assert await repos.count() == 1

    async def test_commit_upsert_by_sha(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        await db_session.flush()
        commits = CommitRepository(db_session)
        values = {"integration_id": integration.id, "repo_id": repo.id, "message": "first"}

        await commits.upsert_by_sha("f" * 40, values)
        await commits.upsert_by_sha("f" * 40, {**values, "message": "amended"})

        assert await commits.count_for_repo(repo.id) == 1
        stored = await commits.find_by_natural_key({"sha": "f" * 40})
        assert stored.message == "amended"

    async def test_issue_lookup_by_number(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        issue = make_issue(db_session, repo, number=42)
        await db_session.flush()

        found = await IssueRepository(db_session).get_by_number(repo.id, 42)

        assert found is not None
        assert found.id == issue.id
        assert await IssueRepository(db_session).get_by_number(repo.id, 43) is None


class TestLookups:
    """Tests for integration-scoped lookups."""

    async def test_find_repo_by_owner_and_name(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        make_repo(db_session, integration, owner="acme", name="widgets")
        await db_session.flush()

        repos = RepoRepository(db_session)

        assert await repos.find_by_owner_and_name(integration.id, "acme", "widgets") is not None
        assert await repos.find_by_owner_and_name(integration.id, "acme", "gadgets") is None

    async def test_list_organizations_by_type(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        make_organization(
            db_session, integration, github_id=1, login="octocat", type=OrganizationType.USER
        )
        make_organization(db_session, integration, github_id=100, login="acme")
        await db_session.flush()

        orgs = OrganizationRepository(db_session)

        assert len(await orgs.list_for_integration(integration.id)) == 2
        only_orgs = await orgs.list_for_integration(integration.id, type=OrganizationType.ORGANIZATION)
        assert [o.login for o in only_orgs] == ["acme"]


class TestChangelogRepository:
    """Tests for append-only timeline storage."""

    async def test_create_if_absent(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        issue = make_issue(db_session, repo)
        await db_session.flush()
        changelogs = ChangelogRepository(db_session)
        data = {"integration_id": integration.id, "event": "labeled", "synced_at": utc_now()}

        assert await changelogs.create_if_absent(issue.id, 1, data) is True
        assert await changelogs.create_if_absent(issue.id, 1, {**data, "event": "closed"}) is False

        timeline = await changelogs.list_for_issue(issue.id)
        assert [c.event for c in timeline] == ["labeled"]


class TestDeleteMany:
    """Tests for bulk deletes."""

    async def test_delete_many_returns_count(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        make_commit(db_session, repo, sha="1" * 40)
        make_commit(db_session, repo, sha="2" * 40)
        await db_session.flush()

        deleted = await CommitRepository(db_session).delete_many(Commit.sha == "1" * 40)

        assert deleted == 1
        assert await CommitRepository(db_session).count() == 1

    async def test_repo_delete_cascades(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        repo = make_repo(db_session, integration)
        make_commit(db_session, repo)
        await db_session.flush()
        db_session.expunge_all()

        await RepoRepository(db_session).delete_many(Repo.id == repo.id)

        assert await CommitRepository(db_session).count() == 0


class TestTTLStores:
    """Tests for rows that read as absent once expired."""

    async def test_progress_entry_expiry(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        progress = SyncProgressRepository(db_session)
        now = utc_now()

        await progress.put(
            integration.id, status="running", message="x", current=5, total=100,
            ttl=timedelta(minutes=5), now=now,
        )

        assert await progress.get_live(integration.id, now=now + timedelta(minutes=4)) is not None
        assert await progress.get_live(integration.id, now=now + timedelta(minutes=6)) is None
        # Expired rows are purged on read
        assert await progress.count() == 0

    async def test_progress_expire_after(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        progress = SyncProgressRepository(db_session)
        now = utc_now()
        await progress.put(
            integration.id, status="completed", message="done", current=100, total=100,
            ttl=timedelta(hours=1), now=now,
        )

        await progress.expire_after(integration.id, timedelta(minutes=5), now=now)

        assert await progress.get_live(integration.id, now=now + timedelta(minutes=6)) is None

    async def test_rate_limit_record_expiry(self, db_session):
        integration = make_integration(db_session)
        await db_session.flush()
        records = RateLimitRepository(db_session)
        now = utc_now()

        await records.put(
            integration.id,
            limit=5000,
            remaining=0,
            used=5000,
            reset_at=now + timedelta(minutes=10),
            expires_at=now + timedelta(minutes=10),
            now=now,
        )

        live = await records.get_live(integration.id, now=now)
        assert live is not None
        assert live.remaining == 0
        assert await records.get_live(integration.id, now=now + timedelta(minutes=11)) is None
