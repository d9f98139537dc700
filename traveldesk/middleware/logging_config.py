"""
Structured logging configuration.

- Development / testing: one readable line per record, workflow context appended
- Production: one JSON object per record (log aggregator compatible)
- Log level: LOG_LEVEL env variable

Workflow code passes context through ``extra=`` (application_id, actor_id,
action, status, recipient); both formatters pick those keys up.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "request_id",
    "method",
    "path",
    "remote_addr",
    "duration_ms",
    "application_id",
    "actor_id",
    "action",
    "status",
    "recipient",
)

# Keys the readable formatter appends as ``[key=value]``
_READABLE_CONTEXT = ("application_id", "actor_id", "action", "recipient")


def _context(record: logging.LogRecord, keys) -> dict:
    return {key: getattr(record, key) for key in keys if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(_context(record, EXTRA_FIELDS))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tags = "".join(f" [{k.split('_')[0]}={v}]" for k, v in _context(record, _READABLE_CONTEXT).items())
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}{tags}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Install a single stderr handler on the root logger.

    Default level is INFO in production and DEBUG otherwise.  Called once per
    ``create_app``; earlier handlers are dropped so test sessions that build
    several apps do not print every line twice.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)
    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, "JSON" if is_prod else "readable")
