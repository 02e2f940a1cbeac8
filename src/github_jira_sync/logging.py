"""Centralized logging configuration using loguru.

Provides:
- Configurable log levels from Settings, overridable from the CLI
- Standard library interception (SQLAlchemy, httpx, githubkit)
- Context binding for installation, repository and job tracking
- Optional rotating file output
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

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

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{extra[name]}:{function}:{line} | "
    "{extra} | "
    "{message}"
)


class InterceptHandler(logging.Handler):
    """Route standard library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        from types import FrameType

        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _has_name(record: Any) -> bool:
    return "name" in record["extra"]


def _lacks_name(record: Any) -> bool:
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
    """Configure logging for the worker and the CLI.

    Args:
        level: Base log level from config
        verbose: If True, use DEBUG level (overrides level)
        quiet: If True, use WARNING level (overrides level)
        log_file: Optional path for file logging with rotation
        rotation: When to rotate log file (e.g., "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: If True, write JSON records to the log file

    Returns:
        Configured logger instance

    Note:
        verbose takes precedence over quiet if both are True.
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
        diagnose=True,
        filter=_has_name,
    )
    # Records from intercepted stdlib loggers carry no bound name
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_FALLBACK_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=True,
        filter=_lacks_name,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
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
    """Send SQLAlchemy, httpx and githubkit stdlib logs through loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    if level in ("TRACE", "DEBUG"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    http_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in ("httpx", "httpcore", "githubkit"):
        logging.getLogger(name).setLevel(http_level)


def get_logger(name: str) -> Logger:
    """Get a logger with the given name bound as context.

    Usage:
        from github_jira_sync.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Processing page")
    """
    return logger.bind(name=name)


def bind_installation(jira_host: str, installation_id: int) -> Logger:
    """Bind tenant context to the sync logger.

    Args:
        jira_host: Jira site the installation syncs into
        installation_id: GitHub App installation id

    Returns:
        Logger with installation context bound
    """
    return logger.bind(name="sync", jira_host=jira_host, installation_id=installation_id)


def bind_task(
    jira_host: str,
    installation_id: int,
    repository_id: str,
    task: str,
) -> Logger:
    """Bind tenant, repository and task context to the sync logger."""
    return logger.bind(
        name="sync",
        jira_host=jira_host,
        installation_id=installation_id,
        repository_id=repository_id,
        task=task,
    )


class LogContext:
    """Context manager for temporary log context binding.

    Usage:
        with LogContext(queue="installation", job_id="42"):
            logger.info("Processing")  # Has queue and job_id context
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._token: Any = None

    def __enter__(self) -> Logger:
        self._token = logger.contextualize(**self._context)
        self._token.__enter__()
        return logger

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._token:
            self._token.__exit__(exc_type, exc_val, exc_tb)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Reset logging state (primarily for testing)."""
    global _configured
    logger.remove()
    _configured = False
