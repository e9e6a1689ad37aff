"""Sync commands: full and single-stage syncs, progress and cancellation."""

from collections.abc import Awaitable
from typing import Any

import typer
from rich.table import Table

from github_sync_engine.cli.common import (
    IntegrationIdArgument,
    OutputFormat,
    OutputFormatOption,
    OwnerArgument,
    QueuedOption,
    RepoNameArgument,
    console,
    print_json,
    run_async_command,
)
from github_sync_engine.jobs import JobType, create_sync_queue
from github_sync_engine.sync import SyncOrchestrator

app = typer.Typer(help="Sync data from GitHub")


def _direct_call(
    orchestrator: SyncOrchestrator,
    job_type: JobType,
    integration_id: int,
    owner: str | None,
    repo: str | None,
) -> Awaitable[dict[str, Any]]:
    match job_type:
        case JobType.FULL_SYNC:
            return orchestrator.sync_all(integration_id)
        case JobType.ORG_SYNC:
            return orchestrator.sync_organizations(integration_id)
        case JobType.REPO_SYNC:
            return orchestrator.sync_repositories(integration_id, owner or "")
        case JobType.COMMIT_SYNC:
            return orchestrator.sync_commits(integration_id, owner or "", repo or "")
        case JobType.PULL_SYNC:
            return orchestrator.sync_pulls(integration_id, owner or "", repo or "")
        case JobType.ISSUE_SYNC:
            return orchestrator.sync_issues(integration_id, owner or "", repo or "")
        case JobType.USER_SYNC:
            return orchestrator.sync_users(integration_id)
    raise ValueError(f"Unsupported job type: {job_type}")


async def _run(
    job_type: JobType,
    integration_id: int,
    owner: str | None = None,
    repo: str | None = None,
    *,
    queued: bool = False,
) -> dict[str, Any]:
    if not queued:
        return await _direct_call(SyncOrchestrator(), job_type, integration_id, owner, repo)

    queue, _ = create_sync_queue()
    await queue.start()
    try:
        job = queue.enqueue(
            job_type, {"integration_id": integration_id, "owner": owner, "repo": repo}
        )
        result: dict[str, Any] = await queue.wait(job)
        return {**result, "job": job.to_dict() | {"result": None}}
    finally:
        await queue.shutdown(wait=False)


def _execute(
    job_type: JobType,
    integration_id: int,
    owner: str | None = None,
    repo: str | None = None,
    *,
    queued: bool,
    output_format: OutputFormat,
) -> None:
    if output_format == OutputFormat.TEXT:
        target = "/".join(p for p in (owner, repo) if p) or f"integration {integration_id}"
        console.print(f"[dim]Running {job_type.value} for {target}...[/dim]")

    result = run_async_command(
        _run(job_type, integration_id, owner, repo, queued=queued),
        error_prefix="Sync failed",
    )

    if output_format == OutputFormat.JSON:
        print_json(result)
    else:
        _print_result(result)

    if not result.get("success"):
        raise typer.Exit(1)


def _print_result(result: dict[str, Any]) -> None:
    style = "green" if result.get("success") else "red"
    console.print(f"[{style}]{result.get('message', '')}[/{style}]")

    failures = result.get("failures") or []
    if failures:
        table = Table(title="Failed stages")
        table.add_column("Stage", style="bold")
        table.add_column("Target")
        table.add_column("Error")
        for failure in failures:
            error = failure.get("error") or {}
            table.add_row(failure["stage"], failure.get("target", "-"), error.get("message", ""))
        console.print(table)


@app.command("all")
def sync_all(
    integration_id: IntegrationIdArgument,
    queued: QueuedOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Run the full pipeline for an integration.

    Examples:
        ghsync sync all 1
        ghsync sync all 1 --queued --format json
    """
    _execute(JobType.FULL_SYNC, integration_id, queued=queued, output_format=output_format)


@app.command("orgs")
def sync_orgs(
    integration_id: IntegrationIdArgument,
    queued: QueuedOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync the account, its organizations and their repositories."""
    _execute(JobType.ORG_SYNC, integration_id, queued=queued, output_format=output_format)


@app.command("repos")
def sync_repos(
    integration_id: IntegrationIdArgument,
    owner: OwnerArgument,
    queued: QueuedOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync repositories of one owner.

    Examples:
        ghsync sync repos 1 acme
    """
    _execute(JobType.REPO_SYNC, integration_id, owner, queued=queued, output_format=output_format)


@app.command("commits")
def sync_commits(
    integration_id: IntegrationIdArgument,
    owner: OwnerArgument,
    repo: RepoNameArgument,
    queued: QueuedOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync recent commits of a stored repository."""
    _execute(
        JobType.COMMIT_SYNC, integration_id, owner, repo, queued=queued, output_format=output_format
    )


@app.command("pulls")
def sync_pulls(
    integration_id: IntegrationIdArgument,
    owner: OwnerArgument,
    repo: RepoNameArgument,
    queued: QueuedOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync pull requests of a stored repository."""
    _execute(
        JobType.PULL_SYNC, integration_id, owner, repo, queued=queued, output_format=output_format
    )


@app.command("issues")
def sync_issues(
    integration_id: IntegrationIdArgument,
    owner: OwnerArgument,
    repo: RepoNameArgument,
    queued: QueuedOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync issues (and their timelines) of a stored repository."""
    _execute(
        JobType.ISSUE_SYNC, integration_id, owner, repo, queued=queued, output_format=output_format
    )


@app.command("users")
def sync_users(
    integration_id: IntegrationIdArgument,
    queued: QueuedOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync members of every stored organization."""
    _execute(JobType.USER_SYNC, integration_id, queued=queued, output_format=output_format)


@app.command("progress")
def show_progress(
    integration_id: IntegrationIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show the latest progress of a running or recently finished sync."""
    progress = run_async_command(
        SyncOrchestrator().get_sync_progress(integration_id),
        error_prefix="Failed to read progress",
    )

    if output_format == OutputFormat.JSON:
        print_json(progress)
        return

    if progress is None:
        console.print(f"[dim]No sync in progress for integration {integration_id}[/dim]")
        return

    console.print(
        f"[bold]{progress['status']}[/bold] {progress['current']}/{progress['total']}: "
        f"{progress['message']} [dim]({progress['timestamp']})[/dim]"
    )


@app.command("cancel")
def cancel(integration_id: IntegrationIdArgument) -> None:
    """Ask a running sync to stop at its next repository boundary."""
    run_async_command(
        SyncOrchestrator().cancel_sync(integration_id), error_prefix="Failed to cancel"
    )
    console.print(f"Cancellation requested for integration {integration_id}")
