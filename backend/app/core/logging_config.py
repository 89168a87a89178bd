"""
Centralized logging configuration for the tutorial backend.

Console output for development, optional daily-rotated JSON files,
and a per-request trace id carried through a context variable.

File: backend/app/core/logging_config.py
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

_trace_id_context: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def get_trace_id() -> str:
    """
    Get or generate a trace ID for the current context.

    Returns:
        str: UUID trace ID for request tracking
    """
    trace_id = _trace_id_context.get()
    if trace_id is None:
        trace_id = set_trace_id()
    return trace_id


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """
    Set a new trace ID for the current context.

    Args:
        trace_id: Optional trace ID to set (generates new if None)

    Returns:
        str: The trace ID that was set
    """
    value = trace_id or str(uuid.uuid4())
    _trace_id_context.set(value)
    return value


def reset_trace_id() -> None:
    """Reset the trace ID context."""
    _trace_id_context.set(None)


class StructuredJSONFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per log record.

    Includes trace_id, timestamps and the ``extra_data`` mapping
    passed to the logger.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "trace_id": _trace_id_context.get(),
            "message": record.getMessage(),
        }

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, dict):
            log_obj.update(extra_data)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        log_obj["location"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_obj, default=str)


class DailyRotatingJSONHandler(logging.handlers.TimedRotatingFileHandler):
    """
    Handler for daily rotating JSON logs.

    Creates new log files each day and keeps them for
    the configured retention period.
    """

    def __init__(
        self,
        filename: Union[str, Path],
        backup_count: int = 90,
        encoding: str = "utf-8",
    ):
        log_path = Path(filename)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            filename=str(log_path),
            when="midnight",
            interval=1,
            backupCount=backup_count,
            encoding=encoding,
            utc=True,
        )
        self.setFormatter(StructuredJSONFormatter())


def setup_logging(
    log_level: str = "INFO",
    console_output: bool = True,
    log_dir: Union[str, Path] = "data/logs",
    log_to_file: bool = False,
    retention_days: int = 90,
) -> None:
    """
    Configure application-wide logging.

    Sets up:
    - Console output with a plain text format
    - Daily rotating JSON log files (when ``log_to_file`` is set)
    - Separate error-only log for quick triage

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        console_output: Whether to log to stdout
        log_dir: Directory for log files
        log_to_file: Whether to write JSON log files
        retention_days: Number of rotated files to keep
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if log_to_file:
        log_path = Path(log_dir)

        main_handler = DailyRotatingJSONHandler(
            log_path / "app.jsonl", backup_count=retention_days
        )
        main_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(main_handler)

        error_handler = DailyRotatingJSONHandler(
            log_path / "errors.jsonl", backup_count=retention_days
        )
        error_handler.setLevel(logging.ERROR)
        root_logger.addHandler(error_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(console_handler)

    # Silence noisy libraries
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging system initialized",
        extra={
            "extra_data": {
                "log_level": log_level,
                "log_to_file": log_to_file,
                "log_dir": str(log_dir),
            }
        },
    )


__all__ = [
    "get_trace_id",
    "set_trace_id",
    "reset_trace_id",
    "StructuredJSONFormatter",
    "DailyRotatingJSONHandler",
    "setup_logging",
]
