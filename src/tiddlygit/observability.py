"""Logging helpers and the notification sink for git sync events.

All coordinator outcomes end up here. Each terminal outcome of a queue step is
reported once through a :class:`NotificationSink`; the default sink writes a
single line to the ``tiddlygit`` logger.
"""

from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Protocol


LOGGER_NAME = "tiddlygit"

# Environment variables for configuration
ENV_LOG_DIR = "TIDDLYGIT_LOG_DIR"
ENV_LOG_LEVEL = "TIDDLYGIT_LOG_LEVEL"
ENV_LOG_MAX_BYTES = "TIDDLYGIT_LOG_MAX_BYTES"
ENV_LOG_BACKUP_COUNT = "TIDDLYGIT_LOG_BACKUP_COUNT"
ENV_LOG_DISABLE_FILE = "TIDDLYGIT_LOG_DISABLE_FILE"

# Defaults
DEFAULT_LOG_DIR = Path.home() / ".tiddlygit" / "logs"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
DEFAULT_BACKUP_COUNT = 3

_logger_initialized = False
_session_start = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H%M%S")


def _get_log_level() -> int:
    level_name = os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def _get_log_file_path() -> Optional[Path]:
    """Return the session log file, or None when file logging is disabled."""
    if os.getenv(ENV_LOG_DISABLE_FILE, "").lower() in ("1", "true", "yes"):
        return None

    log_dir = Path(os.getenv(ENV_LOG_DIR, DEFAULT_LOG_DIR))
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"tiddlygit_{_session_start}.log"


def _get_logger() -> logging.Logger:
    """Get or initialize the tiddlygit logger.

    Configuration via environment variables:
    - TIDDLYGIT_LOG_DIR: Directory for log files (default: ~/.tiddlygit/logs/)
    - TIDDLYGIT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - TIDDLYGIT_LOG_MAX_BYTES: Max log file size before rotation (default: 5MB)
    - TIDDLYGIT_LOG_BACKUP_COUNT: Number of rotated files to keep (default: 3)
    - TIDDLYGIT_LOG_DISABLE_FILE: Set to 1 to log to stderr only
    """
    global _logger_initialized
    logger = logging.getLogger(LOGGER_NAME)

    if not _logger_initialized:
        _logger_initialized = True
        logger.handlers.clear()

        log_level = _get_log_level()
        logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(levelname)s %(asctime)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

        log_file = _get_log_file_path()
        if log_file:
            file_handler = RotatingFileHandler(
                str(log_file),
                maxBytes=int(os.getenv(ENV_LOG_MAX_BYTES, DEFAULT_MAX_BYTES)),
                backupCount=int(os.getenv(ENV_LOG_BACKUP_COUNT, DEFAULT_BACKUP_COUNT)),
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level)
            logger.addHandler(file_handler)

        # stderr only shows warnings and above
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler.setLevel(max(log_level, logging.WARNING))
        logger.addHandler(stream_handler)

    return logger


def _with_fields(message: str, fields: Dict[str, Any]) -> str:
    if not fields:
        return message
    return f"{message} " + json.dumps(fields, separators=(",", ":"), sort_keys=True, default=str)


def log_action(
    action: str,
    *,
    outcome: str = "ok",
    duration_ms: Optional[float] = None,
    **fields: Any,
) -> None:
    """Emit a structured JSON log line for an action."""
    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "outcome": outcome,
    }
    if duration_ms is not None:
        payload["duration_ms"] = round(duration_ms, 2)
    if fields:
        payload.update(fields)

    _get_logger().info(json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str))


def log_info(message: str, **fields: Any) -> None:
    _get_logger().info(_with_fields(message, fields))


def log_debug(message: str, **fields: Any) -> None:
    """Log a debug message; only formatted when DEBUG is enabled."""
    logger = _get_logger()
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(_with_fields(message, fields))


def log_warning(message: str, **fields: Any) -> None:
    _get_logger().warning(_with_fields(message, fields))


def log_error(message: str, **fields: Any) -> None:
    _get_logger().error(_with_fields(message, fields))


@contextmanager
def timeit(action: str, **fields: Any):
    """Time a block and emit a structured log on exit.

    On exception, logs outcome="error" and re-raises.
    """
    start = time.perf_counter()
    try:
        yield
    except Exception:
        log_action(action, outcome="error", duration_ms=(time.perf_counter() - start) * 1000.0, **fields)
        raise
    log_action(action, outcome="ok", duration_ms=(time.perf_counter() - start) * 1000.0, **fields)


# ----------------------------------------------------------------------
# Notification sink
# ----------------------------------------------------------------------


class SyncEvent(str, Enum):
    """Terminal outcomes reported by the coordinator."""

    REPOSITORY_DETECTED = "repository-detected"
    REPOSITORY_ABSENT = "repository-absent"
    INITIALIZATION_FAILED = "initialization-failed"
    COMMIT_FAILED = "commit-failed"
    PUSH_SUCCEEDED = "push-succeeded"
    PUSH_FAILED = "push-failed"


_EVENT_MESSAGES = {
    SyncEvent.REPOSITORY_DETECTED: "Git repository detected.",
    SyncEvent.REPOSITORY_ABSENT: "No Git repository detected.",
    SyncEvent.INITIALIZATION_FAILED: "Git initialization failed",
    SyncEvent.COMMIT_FAILED: "Git commit failed",
    SyncEvent.PUSH_SUCCEEDED: "Git repository pushed.",
    SyncEvent.PUSH_FAILED: "Git push failed",
}

_FAILURE_EVENTS = {
    SyncEvent.INITIALIZATION_FAILED,
    SyncEvent.COMMIT_FAILED,
    SyncEvent.PUSH_FAILED,
}


def format_event(event: SyncEvent, reason: Optional[str] = None) -> str:
    """Render an event as the single log line the sink emits."""
    message = _EVENT_MESSAGES[event]
    if reason:
        return f"{message}: {reason}"
    return message


class NotificationSink(Protocol):
    def notify(self, event: SyncEvent, reason: Optional[str] = None) -> None:
        ...


class LoggingSink:
    """Default sink: failures at ERROR, everything else at INFO."""

    def notify(self, event: SyncEvent, reason: Optional[str] = None) -> None:
        line = format_event(event, reason)
        if event in _FAILURE_EVENTS:
            log_error(line)
        else:
            log_info(line)
