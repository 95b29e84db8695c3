# tests/unit/logging/test_unit_logger.py — v3
"""Tests for logging/logger.py and logging/handlers.py."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from sportsync.logging.context import set_phase_context, set_step_context
from sportsync.logging.handlers import create_rotating_handler, parse_size
from sportsync.logging.logger import (
    NOISY_LOGGERS,
    JsonFormatter,
    TextFormatter,
    setup_logging,
)


def _record(msg: str = "hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("sportsync.test", level, __file__, 1, msg, None, None)


class TestFormatters:
    def test_json_includes_context(self):
        set_phase_context("fetch")
        set_step_context("fetch-golf")
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["context"] == {"phase": "fetch", "step": "fetch-golf"}

    def test_json_without_context(self):
        entry = json.loads(JsonFormatter().format(_record()))
        assert "context" not in entry

    def test_json_timestamp_from_record(self):
        record = _record()
        record.created = 0.0
        entry = json.loads(JsonFormatter().format(record))
        assert entry["timestamp"] == "1970-01-01T00:00:00.000+00:00"

    def test_json_extra_data(self):
        record = _record()
        record.data = {"steps": 3}
        assert json.loads(JsonFormatter().format(record))["data"] == {"steps": 3}

    def test_text_shows_phase_and_step(self):
        set_phase_context("build")
        set_step_context("build-events")
        line = TextFormatter().format(_record("done"))
        assert "[build/build-events]" in line
        assert line.endswith("sportsync.test: done")

    def test_text_phase_only(self):
        set_phase_context("fetch")
        assert "[fetch]" in TextFormatter().format(_record())


class TestSetupLogging:
    def test_console_only(self):
        root = setup_logging(level="DEBUG", log_format="json")
        assert root is logging.getLogger("sportsync")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_no_duplicate_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("sportsync").handlers) == 1

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "pipeline.log"
        setup_logging(log_file=str(log_file), rotation="1MB", retention=3)
        handlers = logging.getLogger("sportsync").handlers
        assert len(handlers) == 2
        logging.getLogger("sportsync.test").info("written")
        for handler in handlers:
            handler.flush()
        assert "written" in log_file.read_text()

    def test_noisy_loggers_quieted(self):
        setup_logging(level="DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestHandlers:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [("10MB", 10 * 1024**2), ("512 kb", 512 * 1024), ("100", 100), (2048, 2048), ("1GB", 1024**3)],
    )
    def test_parse_size(self, size, expected):
        assert parse_size(size) == expected

    def test_parse_size_invalid(self):
        with pytest.raises(ValueError, match="Invalid size format"):
            parse_size("ten megs")

    def test_rotating_handler(self, tmp_path: Path):
        handler = create_rotating_handler(tmp_path / "a" / "b.log", rotation="2KB", retention=4)
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 2048
            assert handler.backupCount == 4
            assert (tmp_path / "a").is_dir()
        finally:
            handler.close()
