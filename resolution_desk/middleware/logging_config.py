"""
Logging setup for Resolution Desk.

Two output shapes share one set of record attributes:
  - readable lines on stderr while developing or testing
  - one JSON object per line in production (log shipper friendly)

Every record emitted inside a request is stamped by ``RequestContextFilter``
with the request id, the acting user and whether the store was offline at
that moment, so a transition or permission-denial line can be traced back to
the request and user that caused it.

Level: ``LOG_LEVEL`` (config or env), DEBUG in development, INFO otherwise.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_app_context, has_request_context

# Attributes copied from records into JSON output when present
RECORD_FIELDS = (
    "request_id",
    "user_id",
    "degraded",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)

QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "PIL", "flask_limiter")


class RequestContextFilter(logging.Filter):
    """Attach request id, user id and degraded-mode flag to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "user_id", None) is None:
                user = getattr(g, "current_user", None)
                record.user_id = getattr(user, "id", None)
        if has_app_context() and getattr(record, "degraded", None) is None:
            from flask import current_app

            state = current_app.extensions.get("connectivity")
            record.degraded = True if state is not None and not state.is_online else None
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        for key in RECORD_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    """``12:03:44 WARNING  [a1b2c3 u-7 offline] resolution_desk.x: message (12ms)``"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _context(self, record) -> str:
        parts = [p for p in (getattr(record, "request_id", None),
                             getattr(record, "user_id", None)) if p]
        if getattr(record, "degraded", None):
            parts.append("offline")
        return f" [{' '.join(parts)}]" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"
        line = f"{stamp} {level}{self._context(record)} {record.name}: {record.getMessage()}"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" ({duration:.0f}ms)"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install one stderr handler on the root logger for ``app``'s environment."""
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = (app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL")
                  or ("INFO" if production else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JSONFormatter() if production
                         else ReadableFormatter(use_color=sys.stderr.isatty()))

    # Replaced rather than appended: the test suite builds apps repeatedly.
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging ready (level=%s, format=%s)",
                        level_name, "json" if production else "readable")
