"""
Log output for the service.

``LOG_FORMAT`` picks the formatter: ``json`` (one object per line, with the
request fields the timing and actor middleware attach) or ``readable``.
Unset, debug and testing apps log readable lines and everything else JSON.
``LOG_LEVEL`` overrides the level.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes the middleware passes through ``extra=``
REQUEST_FIELDS = ("request_id", "method", "path", "status", "duration_ms", "remote_addr", "owner_id")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key)) for key in REQUEST_FIELDS if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [12ms] owner=...``, level colored."""

    COLORS = {"DEBUG": "\033[36m", "INFO": "\033[32m", "WARNING": "\033[33m", "ERROR": "\033[31m"}
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "\033[35m")
        line = (
            f"{self.formatTime(record, '%H:%M:%S')} {color}{record.levelname:<8}{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" [{duration:.0f}ms]"
        owner = getattr(record, "owner_id", None)
        if owner:
            line += f" owner={owner}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


_FORMATTERS = {"json": JSONFormatter, "readable": ReadableFormatter}


def configure_logging(app):
    local = app.debug or app.testing
    fmt = (app.config.get("LOG_FORMAT") or ("readable" if local else "json")).lower()
    level_name = os.getenv("LOG_LEVEL", "DEBUG" if local else "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_FORMATTERS.get(fmt, JSONFormatter)())

    # Replace rather than add: tests create one app per session but scripts may build several
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for chatty in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(chatty).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not app.testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
