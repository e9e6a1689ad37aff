"""Common CLI option types and helpers.

Provides:
- `run_async_command`: runs a coroutine from a sync command with uniform
  error output
- Shared option/argument aliases so Typer's call-in-default pattern lives
  in one place
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from enum import Enum
from typing import Annotated, Any, TypeVar

import typer
from rich.console import Console

from github_sync_engine.redaction import sanitize_message

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from a synchronous CLI command.

    Errors are printed (with credentials scrubbed) and turned into exit
    code 1.

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {sanitize_message(str(e))}")
        raise typer.Exit(1) from None


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

IntegrationIdArgument = Annotated[
    int,
    typer.Argument(help="Integration id (see `ghsync integration list`)", min=1),
]

OwnerArgument = Annotated[
    str,
    typer.Argument(help="Organization or user login that owns the repositories"),
]

RepoNameArgument = Annotated[
    str,
    typer.Argument(help="Repository name (without owner)"),
]

QueuedOption = Annotated[
    bool,
    typer.Option(
        "--queued",
        help="Run through the job queue (attempts, backoff and timeout apply)",
    ),
]
