"""
observability/logger.py — brew-maintainer Structured Logger

Sets up structlog with:
  - JSON output to a rotating log file under Homebrew's var/log directory
  - Human-readable output to console (TTY) or JSON (launchd / pipe)
  - Consistent fields on every log line: timestamp, level, event, run_id

Usage:
    from brew_maintainer.observability.logger import get_logger, setup_logging

    setup_logging(level="INFO")            # call once at startup
    log = get_logger(__name__)
    log.info("brew.exec.start", args=["update"])
    log.warning("maintenance.upgrade.failed", package="wget", reason="timeout")
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

# Homebrew prefixes: Apple Silicon first, then Intel
_HOMEBREW_LOG_DIRS: tuple[str, ...] = ("/opt/homebrew/var/log", "/usr/local/var/log")

DEFAULT_LOG_FILE = "brew-maintainer.log"


def default_log_dir() -> Path:
    """Return the first Homebrew log directory that exists, else the Intel default."""
    for candidate in _HOMEBREW_LOG_DIRS:
        if Path(candidate).is_dir():
            return Path(candidate)
    return Path(_HOMEBREW_LOG_DIRS[-1])


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path | None = None,
    file_name: str = DEFAULT_LOG_FILE,
    json_format: Optional[bool] = None,  # None = auto-detect from tty
    console_output: bool = True,
    max_bytes: int = 10 * 1024 * 1024,   # 10 MB
    backup_count: int = 5,
) -> Optional[Path]:
    """
    Configure structlog and stdlib logging. Call once at application startup.

    Args:
        level:          Log level string — DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory for the rotating log file. None = Homebrew var/log.
        file_name:      Log file name inside log_dir.
        json_format:    If True, console emits JSON. If False, coloured
                        human-readable output. If None, pretty on a TTY and
                        JSON otherwise (launchd, cron, pipes).
        console_output: Whether to emit logs to stdout at all.
        max_bytes:      Max size of the log file before rotation.
        backup_count:   Number of rotated log files to keep.

    Returns:
        The log file path, or None when the directory could not be created
        and file logging was skipped.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if json_format is None:
        json_format = not sys.stdout.isatty()

    # ── Shared structlog processors ───────────────────────────────────────────
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    # ── File handler (always JSON) ────────────────────────────────────────────
    handlers: list[logging.Handler] = []
    file_renderer_handlers: list[logging.Handler] = []
    log_path: Optional[Path] = None
    file_error: Optional[OSError] = None

    directory = Path(log_dir) if log_dir is not None else default_log_dir()
    try:
        directory.mkdir(parents=True, exist_ok=True)
        log_path = directory / file_name
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        handlers.append(file_handler)
        file_renderer_handlers.append(file_handler)
    except OSError as exc:
        log_path = None
        file_error = exc

    # ── Console handler (JSON or pretty) ─────────────────────────────────────
    console_handler: Optional[logging.Handler] = None
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        handlers.append(console_handler)

    # ── Configure stdlib logging (structlog routes through it) ────────────────
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers or [logging.NullHandler()],
        force=True,
    )

    # ── Configure structlog ───────────────────────────────────────────────────
    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
        return structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )

    for handler in file_renderer_handlers:
        handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))

    if console_handler is not None:
        console_renderer = (
            structlog.processors.JSONRenderer()
            if json_format
            else structlog.dev.ConsoleRenderer(colors=True)
        )
        console_handler.setFormatter(_formatter(console_renderer))

    if file_error is not None:
        _log.warning(
            "logging.file_disabled",
            log_dir=str(directory),
            error=str(file_error),
        )
    else:
        _log.info("logging.initialized", log_file=str(log_path))

    return log_path


def get_logger(name: str = "brew_maintainer", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a bound logger with optional initial context values.

    Args:
        name:           Logger name, typically __name__ of the calling module.
        **initial_values: Key-value pairs permanently bound to this logger instance.

    Example:
        log = get_logger(__name__, component="executor")
        log.info("brew.exec.start", args=["update"])
        # → {"event": "brew.exec.start", "args": ["update"],
        #    "component": "executor", "logger": "brew_maintainer.brew.executor", ...}
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bind_run(run_id: str) -> None:
    """
    Bind the maintenance run id to every subsequent log call in this async
    context, so the lines of one pass can be grepped out of the shared file.
    """
    structlog.contextvars.bind_contextvars(run_id=run_id)


def clear_run() -> None:
    """Clear run context vars at the end of a pass."""
    structlog.contextvars.clear_contextvars()


# ─────────────────────────────────────────────────────────────────────────────
# Module-level logger (for internal use within this module)
# ─────────────────────────────────────────────────────────────────────────────

_log = get_logger(__name__)
