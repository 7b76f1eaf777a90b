"""
Structured JSON logging. No passwords, tokens or hashes logged.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from devconnector.config import get_settings

# LogRecord attributes that are never copied into the JSON payload
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
))

# Loggers that are too chatty at INFO for normal operation
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            log_obj[key] = value
        return json.dumps(log_obj, default=str)


def setup_logging(level: str | None = None) -> None:
    """Configure root logger once. Level defaults to LOG_LEVEL from config."""
    settings = get_settings()
    name = (level or settings.log_level).upper()
    resolved = getattr(logging, name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(resolved)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(resolved)
        if settings.environment == "production":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
                )
            )
        root.addHandler(handler)
    if resolved > logging.DEBUG:
        for noisy in _NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name."""
    return logging.getLogger(name)
