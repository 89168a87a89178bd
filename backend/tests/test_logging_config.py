"""
Tests for logging setup and the JSON formatter.
"""

from __future__ import annotations

import json
import logging

import pytest

from app.core.logging_config import (
    StructuredJSONFormatter,
    get_trace_id,
    reset_trace_id,
    set_trace_id,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_trace_id_round_trip():
    assert set_trace_id("abc") == "abc"
    assert get_trace_id() == "abc"

    reset_trace_id()
    generated = get_trace_id()

    assert generated and generated != "abc"
    assert get_trace_id() == generated


def test_json_formatter_includes_trace_and_extra_data():
    set_trace_id("trace-1")

    line = StructuredJSONFormatter().format(
        _record("Connected", extra_data={"database": "tutorial_db"})
    )
    payload = json.loads(line)

    assert payload["message"] == "Connected"
    assert payload["level"] == "INFO"
    assert payload["trace_id"] == "trace-1"
    assert payload["database"] == "tutorial_db"
    assert payload["location"]["line"] == 10


def test_setup_logging_console_only(restore_root_logger):
    setup_logging(log_level="DEBUG", log_to_file=False)

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1


def test_setup_logging_writes_json_files(restore_root_logger, tmp_path):
    setup_logging(log_level="INFO", console_output=False, log_dir=tmp_path, log_to_file=True)

    logging.getLogger("app.test").error("Cannot connect to the database!")
    for handler in restore_root_logger.handlers:
        handler.flush()

    app_lines = (tmp_path / "app.jsonl").read_text().splitlines()
    error_lines = (tmp_path / "errors.jsonl").read_text().splitlines()

    assert json.loads(app_lines[-1])["message"] == "Cannot connect to the database!"
    assert json.loads(error_lines[-1])["level"] == "ERROR"
