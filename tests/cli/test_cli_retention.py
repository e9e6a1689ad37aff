"""Tests for retention CLI commands."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from github_sync_engine.cli.app import app

runner = CliRunner()


@pytest.fixture
def mock_sweeper():
    with patch("github_sync_engine.cli.retention.RetentionSweeper") as sweeper_class:
        sweeper = MagicMock()
        sweeper_class.return_value = sweeper
        yield sweeper


class TestCleanupCommand:
    """Tests for 'retention cleanup'."""

    def test_success(self, mock_sweeper):
        mock_sweeper.run_full_cleanup = AsyncMock(
            return_value={
                "success": True,
                "total_deleted": 5,
                "cleanups": [
                    {"entity": "commits", "deleted_count": 3},
                    {"entity": "users", "deleted_count": 2},
                ],
            }
        )

        result = runner.invoke(app, ["retention", "cleanup"])

        assert result.exit_code == 0
        assert "Total deleted: 5" in result.stdout

    def test_partial_failure_exits_nonzero(self, mock_sweeper):
        summary = {
            "success": False,
            "total_deleted": 3,
            "cleanups": [
                {"entity": "commits", "deleted_count": 3},
                {"entity": "users", "error": "disk I/O error"},
            ],
        }
        mock_sweeper.run_full_cleanup = AsyncMock(return_value=summary)

        result = runner.invoke(app, ["retention", "cleanup", "--format", "json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout) == summary


class TestStatsCommand:
    """Tests for 'retention stats'."""

    def test_table(self, mock_sweeper):
        mock_sweeper.get_retention_stats = AsyncMock(
            return_value={
                "entities": {
                    "commits": {
                        "total": 12,
                        "oldest_synced_at": "2024-01-10T09:00:00+00:00",
                        "newest_synced_at": "2024-01-15T10:00:00+00:00",
                    },
                    "users": {"total": 0, "oldest_synced_at": None, "newest_synced_at": None},
                },
                "windows": {"commits": 180, "users": 365},
            }
        )

        result = runner.invoke(app, ["retention", "stats"])

        assert result.exit_code == 0
        assert "commits" in result.stdout
        assert "180" in result.stdout
        assert "365" in result.stdout

    def test_error(self, mock_sweeper):
        mock_sweeper.get_retention_stats = AsyncMock(side_effect=RuntimeError("no such table: commits"))

        result = runner.invoke(app, ["retention", "stats"])

        assert result.exit_code == 1
        assert "Failed to read stats" in result.stdout
