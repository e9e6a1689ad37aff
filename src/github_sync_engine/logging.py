"""Logging setup built on loguru.

Provides:
- Level selection from Settings with --verbose/--quiet overrides
- Routing of stdlib loggers (SQLAlchemy, httpx) into loguru
- Context binding for integration, repository and job scoped messages
- Optional rotating file sink
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_configured = False

_CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - "
    "<level>{message}</level>"
)

_FALLBACK_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        from types import FrameType

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Skip frames inside the logging module so loguru reports the real caller
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _has_name(record: dict) -> bool:  # type: ignore[type-arg]
    return "name" in record["extra"]


def _lacks_name(record: dict) -> bool:  # type: ignore[type-arg]
    return "name" not in record["extra"]


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure loguru sinks for the process.

    Args:
        level: Base log level from config
        verbose: Use DEBUG regardless of level
        quiet: Use WARNING regardless of level (verbose wins if both set)
        log_file: Optional path for a rotating file sink
        rotation: When to rotate the file sink
        retention: How long rotated files are kept
        serialize: Write JSON records to the file sink

    Returns:
        The configured loguru logger
    """
    global _configured

    effective_level: LogLevel
    if verbose:
        effective_level = "DEBUG"
    elif quiet:
        effective_level = "WARNING"
    else:
        effective_level = level

    logger.remove()

    logger.add(
        sys.stderr,
        level=effective_level,
        format=_CONSOLE_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=_has_name,
    )
    # Records without a bound name come from intercepted stdlib loggers
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_FALLBACK_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=_lacks_name,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[name]}:{function}:{line} | "
                "{extra} | "
                "{message}"
            ),
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            filter=_has_name,
        )

    _intercept_stdlib_logging(effective_level)

    _configured = True
    return logger


def _intercept_stdlib_logging(level: LogLevel) -> None:
    """Route SQLAlchemy, httpx and other stdlib loggers through loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    if level in ("TRACE", "DEBUG"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    # githubkit talks through httpx; keep it quiet unless debugging
    httpx_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    logging.getLogger("httpx").setLevel(httpx_level)
    logging.getLogger("httpcore").setLevel(httpx_level)


def get_logger(name: str) -> Logger:
    """Get a logger with ``name`` bound as context.

    Usage:
        from github_sync_engine.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Synced {} repositories", count)
    """
    return logger.bind(name=name)


def bind_integration(integration_id: int) -> Logger:
    """Bind integration context to the sync logger."""
    return logger.bind(name="sync", integration=integration_id)


def bind_repo(integration_id: int, owner: str, repo: str) -> Logger:
    """Bind integration and repository context to the sync logger."""
    return logger.bind(name="sync", integration=integration_id, repo=f"{owner}/{repo}")


def bind_job(job_id: str, job_type: str) -> Logger:
    """Bind job context to the queue logger."""
    return logger.bind(name="jobs", job=job_id, job_type=job_type)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Reset logging state (primarily for testing)."""
    global _configured
    logger.remove()
    _configured = False
