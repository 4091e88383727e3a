"""Structured Logging — one JSON object per log line, tagged with mutation context.

Invariants:
    - Every line carries timestamp (from the record, UTC), level, logger and message
    - Mutation context passed via extra= (CONTEXT_KEYS) is copied through when not None
    - setup_logging is idempotent: calling it twice never duplicates output

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - Audit lines (logger "rulebook.audit") share the formatter; a log shipper splits them
      by logger name
    - SQLAlchemy engine logging pinned to WARNING: SQL echo belongs to debugging sessions
"""

import logging
import json
from datetime import datetime, timezone

CONTEXT_KEYS = (
    "resource_kind", "resource_id", "operation", "outcome", "stage",
    "error_code", "write_count", "path",
)

_HANDLER_NAME = "rulebook"


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update({
            key: record.__dict__[key] for key in CONTEXT_KEYS
            if record.__dict__.get(key) is not None
        })
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the rulebook handler on the root logger, replacing any earlier one."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(resource_kind)s] - %(message)s",
            defaults={"resource_kind": "-"},
        ))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return handler
