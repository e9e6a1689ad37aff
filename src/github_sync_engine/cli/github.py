"""GitHub API inspection commands."""

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
from github_sync_engine.config import get_settings
from github_sync_engine.db import get_session
from github_sync_engine.db.repositories import IntegrationRepository
from github_sync_engine.github import GitHubClient, RateLimitSnapshot
from github_sync_engine.github.rate_limit import RateLimitStatus

app = typer.Typer(help="GitHub API commands")


def _get_status_style(status: RateLimitStatus) -> str:
    """Get rich style for status."""
    match status:
        case RateLimitStatus.HEALTHY:
            return "[green]HEALTHY[/green]"
        case RateLimitStatus.WARNING:
            return "[yellow]WARNING[/yellow]"
        case RateLimitStatus.CRITICAL:
            return "[red]CRITICAL[/red]"
        case RateLimitStatus.EXHAUSTED:
            return "[bold red]EXHAUSTED[/bold red]"
        case _:
            return str(status)


def _format_time_remaining(seconds: int) -> str:
    """Format seconds as human-readable time."""
    if seconds <= 0:
        return "Now"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


async def _resolve_token(integration_id: int | None) -> str:
    if integration_id is None:
        return get_settings().github_token
    async with get_session() as session:
        integration = await IntegrationRepository(session).get_by_id(integration_id)
    if integration is None or not integration.access_token:
        console.print(f"[red]Error:[/red] Integration {integration_id} has no token")
        raise typer.Exit(1)
    return integration.access_token


@app.command("rate-limit")
def show_rate_limit(
    integration_id: int | None = typer.Option(
        None,
        "--integration",
        "-i",
        help="Use this integration's token instead of GITHUB_TOKEN",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show current GitHub API quota per pool.

    Examples:
        ghsync github rate-limit
        ghsync github rate-limit --integration 1 --format json
    """

    async def _check() -> RateLimitSnapshot:
        token = await _resolve_token(integration_id)
        async with GitHubClient(token) as client:
            return await client.get_rate_limit()

    snapshot = run_async_command(_check(), error_prefix="Failed to read rate limit")

    if output_format == OutputFormat.JSON:
        data: dict[str, Any] = snapshot.model_dump(mode="json")
        print_json(data)
        return

    table = Table(title="GitHub API Rate Limits")
    table.add_column("Pool", style="bold")
    table.add_column("Status")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Resets In", justify="right")

    for pool, limit in snapshot.pools.items():
        table.add_row(
            pool.value,
            _get_status_style(limit.get_status()),
            str(limit.remaining),
            str(limit.limit),
            _format_time_remaining(limit.seconds_until_reset()),
        )

    console.print(table)

    core = snapshot.get_core()
    if core is not None and core.get_status() == RateLimitStatus.EXHAUSTED:
        console.print(
            f"\n[red]Rate limit exhausted![/red] "
            f"Wait {_format_time_remaining(core.seconds_until_reset())} before syncing."
        )
