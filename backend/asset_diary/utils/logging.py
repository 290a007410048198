# backend/asset_diary/utils/logging.py
"""
Logging configuration for Asset Diary.

- Level from LOG_LEVEL, format from LOG_FORMAT ("text" or "json")
- Every record carries the request correlation ID (or a placeholder)
- Chatty HTTP / market-data libraries are held at WARNING

Usage:
    from asset_diary.utils import setup_logging

    setup_logging()          # once, before the FastAPI app is created

Log Levels:
    DEBUG   - Cache hits/misses, provider calls
    INFO    - Valuations, snapshots, rate syncs, breaker transitions
    WARNING - Degradations (price or rate unavailable, fallback used, retries)
    ERROR   - Failures needing attention (provider errors, failed snapshots)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from asset_diary.config import settings
from asset_diary.utils.context import get_correlation_id

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "-"

NOISY_LOGGERS = [
    "yfinance",
    "urllib3",
    "urllib3.connectionpool",
    "requests",
    "httpx",
    "httpcore",
    "peewee",
]

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Attributes every LogRecord has; anything else came from `extra=`
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "correlation_id", "message", "asctime",
}


# =============================================================================
# FILTER & FORMATTER
# =============================================================================

class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, for log aggregation.

    {"timestamp": ..., "level": ..., "logger": ..., "correlation_id": ...,
     "message": ..., "extra": {...}, "exception": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Overrides settings.log_level
        log_format: Overrides settings.log_format ("text" or "json")
        suppress_noisy_loggers: Hold third-party loggers at WARNING

    Raises:
        ValueError: Unknown log level
    """
    level_name = (level or settings.log_level).upper().strip()
    if level_name not in _LEVELS:
        raise ValueError(
            f"Invalid log level: '{level_name}'. Valid levels are: {', '.join(_LEVELS)}"
        )
    format_type = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=DEFAULT_TEXT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(_LEVELS[level_name])
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level_name}, format={format_type}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
