"""Data retention commands."""

from typing import Any

import typer
from rich.table import Table

from github_sync_engine.cli.common import (
    OutputFormat,
    OutputFormatOption,
    console,
    print_json,
    run_async_command,
)
from github_sync_engine.sync import RetentionSweeper

app = typer.Typer(help="Delete and inspect aged synced data")


@app.command("cleanup")
def cleanup(
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Run every retention sweep.

    Examples:
        ghsync retention cleanup
        ghsync retention cleanup --format json
    """
    result: dict[str, Any] = run_async_command(
        RetentionSweeper().run_full_cleanup(), error_prefix="Cleanup failed"
    )

    if output_format == OutputFormat.JSON:
        print_json(result)
    else:
        table = Table(title="Retention cleanup")
        table.add_column("Entity", style="bold")
        table.add_column("Deleted", justify="right")
        for entry in result["cleanups"]:
            if "error" in entry:
                table.add_row(entry["entity"], f"[red]error: {entry['error']}[/red]")
            else:
                table.add_row(entry["entity"], str(entry["deleted_count"]))
        console.print(table)
        console.print(f"Total deleted: {result['total_deleted']}")

    if not result["success"]:
        raise typer.Exit(1)


@app.command("stats")
def stats(
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show row counts and synced_at ranges per entity."""
    result: dict[str, Any] = run_async_command(
        RetentionSweeper().get_retention_stats(), error_prefix="Failed to read stats"
    )

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    table = Table(title="Retention status")
    table.add_column("Entity", style="bold")
    table.add_column("Rows", justify="right")
    table.add_column("Oldest sync")
    table.add_column("Newest sync")
    table.add_column("Window (days)", justify="right")
    for entity, data in result["entities"].items():
        table.add_row(
            entity,
            str(data["total"]),
            data["oldest_synced_at"] or "-",
            data["newest_synced_at"] or "-",
            str(result["windows"][entity]),
        )
    console.print(table)
