"""
Logging setup for plansync.

One handler on the root logger, two output shapes:

    readable   development and testing, e.g.
               ``12:00:01 INFO     plansync.services.sync_service [sync#3] Sync pass 3 published 41 records``
    json       production, one object per line for the log shipper

Sync passes, write forwards and the request timer hand their context over
with ``extra=``. The keys in EXTRA_FIELDS are lifted into the JSON object;
readable output shows the sync sequence and request duration inline.
LOG_LEVEL overrides the default level (DEBUG readable, INFO json).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
SYNC_FIELDS = ("sync_seq", "trigger", "source", "record_count", "mutation_id")
EXTRA_FIELDS = REQUEST_FIELDS + SYNC_FIELDS

QUIET_LOGGERS = ("urllib3", "werkzeug", "redis")


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in EXTRA_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Single-line console output with the sync sequence up front."""

    LEVEL_COLORS = {"DEBUG": 36, "INFO": 32, "WARNING": 33, "ERROR": 31, "CRITICAL": 35}

    def __init__(self, color: bool = True) -> None:
        super().__init__()
        self.color = color

    def _level(self, levelname: str) -> str:
        padded = f"{levelname:<8}"
        if not self.color:
            return padded
        return f"\033[{self.LEVEL_COLORS.get(levelname, 0)}m{padded}\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
            self._level(record.levelname),
            record.name,
        ]
        seq = getattr(record, "sync_seq", None)
        if seq is not None:
            parts.append(f"[sync#{seq}]")
        parts.append(record.getMessage())
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"({duration:.0f}ms)")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Replace the root handler for ``app``; repeated create_app() calls don't stack."""
    testing = app.config.get("TESTING", False)
    json_output = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if json_output else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ReadableFormatter(color=sys.stderr.isatty()))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging ready: level=%s output=%s", level_name, "json" if json_output else "readable")
