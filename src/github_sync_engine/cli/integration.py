"""Integration management commands."""

from typing import Any

import typer
from rich.table import Table

from github_sync_engine.cli.common import (
    IntegrationIdArgument,
    OutputFormat,
    OutputFormatOption,
    console,
    print_json,
    run_async_command,
)
from github_sync_engine.config import get_settings
from github_sync_engine.db import get_session
from github_sync_engine.db.repositories import IntegrationRepository
from github_sync_engine.schemas import IntegrationRead

app = typer.Typer(help="Manage connected GitHub accounts")


@app.command("add")
def add_integration(
    login: str = typer.Option(..., "--login", "-l", help="GitHub login of the account"),
    token: str | None = typer.Option(
        None,
        "--token",
        "-t",
        help="Access token (defaults to GITHUB_TOKEN)",
    ),
) -> None:
    """Register an account, or reactivate it with a new token.

    Examples:
        ghsync integration add --login octocat --token ghp_xxx
    """
    access_token = token or get_settings().github_token
    if not access_token:
        console.print("[red]Error:[/red] No token given and GITHUB_TOKEN is not set")
        raise typer.Exit(1)

    async def _add() -> int:
        async with get_session() as session:
            integration = await IntegrationRepository(session).create(login, access_token)
            return integration.id

    integration_id = run_async_command(_add(), error_prefix="Failed to add integration")
    console.print(f"[green]Integration {integration_id} ready for {login}[/green]")


@app.command("list")
def list_integrations(
    stale: bool = typer.Option(
        False,
        "--stale",
        help="Only integrations that never synced or whose last sync is out of date",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """List active integrations and their sync state.

    Examples:
        ghsync integration list
        ghsync integration list --stale --format json
    """
    stale_after = get_settings().sync.stale_after

    async def _list() -> list[dict[str, Any]]:
        async with get_session() as session:
            integrations = IntegrationRepository(session)
            if stale:
                found = await integrations.list_needing_sync(stale_after=stale_after)
            else:
                found = await integrations.get_active()
            return [i.model_dump(mode="json") for i in IntegrationRead.from_orm_list(found)]

    rows = run_async_command(_list(), error_prefix="Failed to list integrations")

    if output_format == OutputFormat.JSON:
        print_json(rows)
        return

    if not rows:
        empty = "No integrations need a sync" if stale else "No active integrations"
        console.print(f"[dim]{empty}[/dim]")
        return

    table = Table(title="Integrations")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Login")
    table.add_column("Status")
    table.add_column("Last sync")
    table.add_column("Repos", justify="right")
    for row in rows:
        table.add_row(
            str(row["id"]),
            row["github_login"],
            row["sync_status"],
            row["last_sync_at"] or "never",
            str(row["sync_metadata"].get("total_repos", "-")),
        )
    console.print(table)


@app.command("deactivate")
def deactivate_integration(integration_id: IntegrationIdArgument) -> None:
    """Drop an integration's credentials while keeping its synced data."""

    async def _deactivate() -> bool:
        async with get_session() as session:
            integrations = IntegrationRepository(session)
            integration = await integrations.get_by_id(integration_id)
            if integration is None:
                return False
            await integrations.deactivate(integration)
            return True

    if not run_async_command(_deactivate(), error_prefix="Failed to deactivate"):
        console.print(f"[red]Error:[/red] Integration {integration_id} not found")
        raise typer.Exit(1)
    console.print(f"Integration {integration_id} deactivated")
