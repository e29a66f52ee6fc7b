"""Structured JSON logging."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

SCAN_FIELDS = ("scan_id", "scan_kind", "roots", "exit_code", "elapsed")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; scan context passed via ``extra=`` is kept."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(scan_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def scan_context(record: logging.LogRecord) -> dict[str, Any]:
    """The scan fields set on *record*, skipping unset ones."""
    context = {name: getattr(record, name, None) for name in SCAN_FIELDS}
    if isinstance(context["elapsed"], float):
        context["elapsed"] = round(context["elapsed"], 3)
    return {name: value for name, value in context.items() if value is not None}


def setup_logging(level: str = "INFO", *, json_output: bool = True) -> None:
    """Configure the root logger; JSON lines on stderr by default."""
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # httpx logs every request at INFO
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
