"""Tests for ProgressStore and ProgressReporter."""

import pytest

from github_sync_engine.config import SyncConfig
from github_sync_engine.db import get_session
from github_sync_engine.schemas import SyncProgress
from github_sync_engine.sync import ProgressReporter, ProgressStore
from tests.factories import make_integration


@pytest.fixture
async def integration_id(session_factory) -> int:
    async with get_session(session_factory) as session:
        integration = make_integration(session)
        await session.flush()
        return integration.id


@pytest.fixture
def store(session_factory, clock) -> ProgressStore:
    return ProgressStore(
        session_factory,
        config=SyncConfig(progress_ttl_seconds=3600, progress_grace_seconds=300),
        clock=clock,
    )


class TestProgressStore:
    """Tests for the cached, shared progress store."""

    async def test_write_then_read(self, store, integration_id, clock):
        progress = SyncProgress(status="running", message="Working", current=40, timestamp=clock())

        await store.write(integration_id, progress)

        assert await store.read(integration_id) == progress

    async def test_other_process_reads_from_database(
        self, store, session_factory, integration_id, clock
    ):
        """A second store (empty cache) still sees the shared entry."""
        await store.write(
            integration_id,
            SyncProgress(status="running", message="Working", current=40, timestamp=clock()),
        )
        other = ProgressStore(session_factory, clock=clock)

        progress = await other.read(integration_id)

        assert progress is not None
        assert progress.current == 40
        assert progress.message == "Working"

    async def test_entry_expires_after_ttl(self, store, session_factory, integration_id, clock):
        await store.write(
            integration_id,
            SyncProgress(status="running", message="Working", current=10, timestamp=clock()),
        )

        clock.advance(seconds=3601)

        assert await store.read(integration_id) is None
        assert await ProgressStore(session_factory, clock=clock).read(integration_id) is None

    async def test_clear(self, store, integration_id, clock):
        await store.write(
            integration_id,
            SyncProgress(status="running", message="Working", current=10, timestamp=clock()),
        )

        await store.clear(integration_id)

        assert await store.read(integration_id) is None

    async def test_read_unknown_integration(self, store):
        assert await store.read(12345) is None


class TestProgressReporter:
    """Tests for run-scoped progress reporting."""

    async def test_start_resets_to_zero(self, store, integration_id):
        reporter = ProgressReporter(store, integration_id)

        progress = await reporter.start()

        assert progress.current == 0
        assert progress.total == 100
        assert progress.status == "running"

    async def test_never_moves_backwards(self, store, integration_id):
        reporter = ProgressReporter(store, integration_id)
        await reporter.start()

        await reporter.update("Repositories", 50)
        progress = await reporter.update("Late message", 20)

        assert progress.current == 50
        assert reporter.current == 50

    async def test_clamped_to_total(self, store, integration_id):
        reporter = ProgressReporter(store, integration_id)

        progress = await reporter.update("Overshoot", 250)

        assert progress.current == 100

    async def test_listener_receives_percentages(self, store, integration_id):
        seen: list[int] = []
        reporter = ProgressReporter(store, integration_id, listener=seen.append)

        await reporter.start()
        await reporter.update("Half", 50)

        assert seen == [0, 50]

    async def test_async_listener_is_awaited(self, store, integration_id):
        seen: list[int] = []

        async def listener(percent: int) -> None:
            seen.append(percent)

        reporter = ProgressReporter(store, integration_id, listener=listener)
        await reporter.update("Quarter", 25)

        assert seen == [25]

    async def test_finish_completed_reaches_total(self, store, integration_id, clock):
        reporter = ProgressReporter(store, integration_id, clock=clock)
        await reporter.update("Halfway", 50)

        progress = await reporter.finish("Done")

        assert progress.current == 100
        assert progress.status == "completed"

        # Readable during the grace period, gone after it
        clock.advance(seconds=299)
        assert (await store.read(integration_id)).status == "completed"
        clock.advance(seconds=2)
        assert await store.read(integration_id) is None

    async def test_finish_failed_keeps_current(self, store, integration_id):
        reporter = ProgressReporter(store, integration_id)
        await reporter.update("Halfway", 50)

        progress = await reporter.finish("Boom", status="failed")

        assert progress.current == 50
        assert progress.status == "failed"

    async def test_store_failure_does_not_raise(self, integration_id):
        class BrokenStore(ProgressStore):
            async def write(self, integration_id, progress):
                raise RuntimeError("database is locked")

        reporter = ProgressReporter(BrokenStore(config=SyncConfig()), integration_id)

        progress = await reporter.update("Still going", 10)

        assert progress.current == 10
        assert len(reporter.history) == 1
