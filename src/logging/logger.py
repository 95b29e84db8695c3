# src/logging/logger.py — v3
"""Log formatters and one-shot setup for the ``sportsync`` logger tree.

Every record is stamped with the current run/phase/step context so lines
emitted by parallel steps stay attributable.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from sportsync.logging.context import get_context

ROOT_LOGGER = "sportsync"

# HTTP and SDK loggers that flood DEBUG output during LLM calls.
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL [phase/step] logger: message`` for terminals and CI."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        scope = "/".join(part for part in (ctx.phase, ctx.step) if part)

        line = f"{_timestamp(record):%H:%M:%S} {record.levelname:<7}"
        if scope:
            line += f" [{scope}]"
        line += f" {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Logger:
    """(Re)configure the ``sportsync`` logger and return it.

    Handlers from a previous call are closed and replaced. Output goes to
    stdout, plus a size-rotated file when ``log_file`` is given.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        from sportsync.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
