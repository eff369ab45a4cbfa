"""Logging helpers shared by the services and the CLI."""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional, TextIO

__all__ = ["JsonFormatter", "configure_logging", "redact", "LOGGER_NAME"]

LOGGER_NAME = "guardian_shell"

# LogRecord attributes that are not user supplied ``extra`` fields
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def redact(value: str | None, keep: int = 6) -> str:
    """Mask a secret, leaving a short prefix for correlation."""

    if not value:
        return "-"
    if len(value) <= keep:
        return "*" * len(value)
    return value[:keep] + "..."


def _json_payload(record: logging.LogRecord, timestamp: str | None) -> str:
    base = {
        "level": record.levelname,
        "logger": record.name,
        "msg": record.getMessage(),
    }
    if timestamp:
        base["time"] = timestamp
    for key, value in vars(record).items():
        if key not in _RESERVED and not key.startswith("_"):
            base[key] = value
    if record.exc_info:
        base["exc"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(base, ensure_ascii=False, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per line with ``extra`` fields inlined."""

    def format(self, record: logging.LogRecord) -> str:
        return _json_payload(record, self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"))


def configure_logging(
    level: Optional[str] = None,
    *,
    json_output: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Attach a single stderr handler to the ``guardian_shell`` logger."""

    logger = logging.getLogger(LOGGER_NAME)
    numeric_level = getattr(logging, (level or "WARNING").upper(), logging.WARNING)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    return logger
