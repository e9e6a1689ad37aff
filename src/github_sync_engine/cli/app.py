"""Main CLI application for the GitHub sync engine."""

from pathlib import Path
from typing import Annotated

import typer

from github_sync_engine import __version__
from github_sync_engine.cli import github as github_cmd
from github_sync_engine.cli import integration as integration_cmd
from github_sync_engine.cli import retention as retention_cmd
from github_sync_engine.cli import sync as sync_cmd
from github_sync_engine.cli.common import console
from github_sync_engine.config import get_settings
from github_sync_engine.logging import setup_logging

app = typer.Typer(
    name="ghsync",
    help="Sync GitHub organizations, repositories and activity into a local database.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghsync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """GitHub sync engine."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register subcommands
app.add_typer(integration_cmd.app, name="integration")
app.add_typer(sync_cmd.app, name="sync")
app.add_typer(retention_cmd.app, name="retention")
app.add_typer(github_cmd.app, name="github")


if __name__ == "__main__":
    app()
