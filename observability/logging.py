"""Logging setup with per-run context.

Every record carries the id of the pipeline run and the video being
analyzed, so interleaved runs in one process can be told apart.

Output:
    - Console (stderr, keeping stdout for reports) at LOG_LEVEL, or DEBUG with --verbose
    - Rotating file log/commentscope.log at DEBUG
    - 'text' or single-line 'json' records (LOG_FORMAT)

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context(run_id="a1b2c3d4", video_id="dQw4w9WgXcQ")
    >>> logger.info("Run started")  # Includes run_id and video_id
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")
video_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("video_id", default="-")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "exc_info", "exc_text",
    "thread", "threadName", "taskName", "message", "run_id", "video_id",
})


def set_run_context(run_id: str, video_id: str = "-") -> None:
    """Tag subsequent log records of this task with run and video ids."""
    run_id_var.set(run_id)
    video_id_var.set(video_id)


def clear_context() -> None:
    """Reset the run context to its defaults."""
    run_id_var.set("-")
    video_id_var.set("-")


class ContextFilter(logging.Filter):
    """Copy the run context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        record.video_id = video_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...",
         "run_id": "...", "video_id": "...", ...extras}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
            "video_id": getattr(record, "video_id", "-"),
        }

        if record.levelno >= logging.WARNING:
            log_data["source"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Format: TIMESTAMP [LEVEL] [run_id video_id] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s %(video_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def _file_handler(config: Any) -> logging.Handler:
    """Build the rotating file handler (size-based when LOG_MAX_BYTES > 0)."""
    log_file = config.log_dir / "commentscope.log"
    if config.log_max_bytes > 0:
        return RotatingFileHandler(
            log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    return TimedRotatingFileHandler(
        log_file,
        when="midnight",
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Configure root logging for console and file output.

    Falls back to console-only logging when the log directory is not
    writable.

    Args:
        config: Application configuration with logging settings
        verbose: Force DEBUG on the console

    Returns:
        True if file logging is enabled, False if console-only
    """
    console_level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    context_filter = ContextFilter()

    if config.log_format == "json":
        console_fmt: logging.Formatter = JsonFormatter()
        file_fmt: logging.Formatter = JsonFormatter()
    else:
        console_fmt = TextFormatter(include_date=False)
        file_fmt = TextFormatter(include_date=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(console_fmt)
    console.addFilter(context_filter)
    root.addHandler(console)

    file_logging_enabled = False
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = _file_handler(config)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_fmt)
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)
        file_logging_enabled = True
    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )

    for lib in ("aiohttp", "asyncio", "urllib3"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return file_logging_enabled
