# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .correlation import get_correlation_id

# Structured fields services attach via `extra=`; anything else on the record is ignored.
CONTEXT_FIELDS = ("property_id", "reservation_code", "provider", "month", "submission_id")

_QUIET_LOGGERS = {
    "httpx": "HTTP_LOG_LEVEL",
    "httpcore": "HTTP_LOG_LEVEL",
    "sqlalchemy.engine": "SQL_LOG_LEVEL",
}


def _context(record: logging.LogRecord) -> dict[str, Any]:
    out: dict[str, Any] = {}
    cid = get_correlation_id()
    if cid:
        out["correlation_id"] = cid
    for k in CONTEXT_FIELDS:
        v = getattr(record, k, None)
        if v is not None:
            out[k] = v
    return out


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts, level, logger, message, correlation_id when an
    operation scope is active, the context fields above, and exc_info on failures.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines for local runs; context fields trail the message as key=value."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ctx = _context(record)
        if ctx:
            line = f"{line} " + " ".join(f"{k}={v}" for k, v in ctx.items())
        return line


def configure_logging(level: Optional[str] = None, *, json_output: Optional[bool] = None) -> None:
    """
    Root logger -> stdout. JSON unless LOG_FORMAT=console (or json_output=False).
    Replaces existing root handlers so repeated calls don't duplicate output.
    """
    lvl = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    if json_output is None:
        json_output = (os.getenv("LOG_FORMAT") or "json").strip().lower() != "console"

    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(lvl)
    handler.setFormatter(JsonFormatter() if json_output else ConsoleFormatter())
    root.addHandler(handler)

    for name, env in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel((os.getenv(env) or "WARNING").upper())
