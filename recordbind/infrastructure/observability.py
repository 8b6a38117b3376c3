"""Structured Logging: JSON formatter and setup for host applications.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (record_type, property_name, error_code, cache) surfaced when present
    - JSON by default, human-readable text when fmt="text"
    - Explicit arguments win over settings; settings win over the built-in INFO / json
    - recordbind itself never calls setup_logging; hosts opt in

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control (ADR: library footprint)
    - setup_logging replaces handlers it installed earlier instead of stacking them
"""

import logging
import json
from datetime import datetime, timezone

from recordbind.config import get_settings

_EXTRA_FIELDS = ("record_type", "property_name", "error_code", "cache")


class JSONFormatter(logging.Formatter):
    """Format logs as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str | None = None, fmt: str | None = None) -> logging.Handler:
    """Install one stream handler on the root logger and return it.

    level and fmt default to the RECORDBIND_LOG_LEVEL / RECORDBIND_LOG_FORMAT settings.
    """
    settings = get_settings()
    level = level if level is not None else settings.log_level
    fmt = fmt if fmt is not None else settings.log_format
    handler = logging.StreamHandler()
    handler._recordbind = True
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    for existing in list(logging.root.handlers):
        if getattr(existing, "_recordbind", False):
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
