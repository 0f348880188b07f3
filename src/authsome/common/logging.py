"""Structured JSON logging for Authsome."""

import logging
import json
import sys
from datetime import datetime, timezone

_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(level: str = "INFO", json_lines: bool = True) -> None:
    """Configure logging for the ``authsome`` logger tree.

    Safe to call more than once; the previous handler is replaced.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_lines else logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger("authsome")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.addHandler(handler)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger scoped under authsome."""
    return logging.getLogger(f"authsome.{name}")


def token_hint(token: str | None) -> str:
    """Short, non-reversible hint of a secret for log lines."""
    if not token:
        return "<empty>"
    return f"{token[:6]}..."
