"""Logger setup - JSON lines on stderr or in a file.

Log records carry dict messages ({"event": "policy_decision", ...}). The
formatter merges them with a timestamp, level and logger name into one JSON
object per line. String messages are wrapped as {"message": ...}.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from iam_policy_eval.constants import LOGGER_NAME

__all__ = [
    "JsonLinesFormatter",
    "setup_system_logger",
]


class JsonLinesFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            entry.update(record.msg)
        else:
            entry["message"] = record.getMessage()
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_system_logger(level: str = "WARNING", log_file: Path | None = None) -> logging.Logger:
    """Configure the application logger.

    Replaces any handler installed by a previous call, so the CLI can be
    invoked repeatedly in one process (tests).

    Args:
        level: Logging level name.
        log_file: Append to this file instead of writing to stderr.

    Returns:
        The configured application logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonLinesFormatter())

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
