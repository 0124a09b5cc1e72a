# backend/portfolio_engine/utils/logging.py
"""
Log output for the valuation engine.

The engine never configures logging on import; the embedding application
calls setup_logging() once at startup. Every record is stamped with the
render id of the chart build in progress, so the warnings produced while
one chart was drawn (missing FX rates, synthetic prices, clamped windows)
can be grepped together.

Usage:
    from portfolio_engine.utils import setup_logging

    setup_logging(level="DEBUG", log_format="json")

What each level carries:
    DEBUG   - Fallback decisions (synthetic prices, nearest-date FX lookups, cache hits)
    INFO    - Collaborator fetches, series generated
    WARNING - Data quality (rate passthrough, stale cache served, window clamped)
    ERROR   - Upstream failures with nothing cached to fall back on

LOG_LEVEL and LOG_FORMAT ("text" or "json") provide the defaults.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from portfolio_engine.config import settings
from portfolio_engine.utils.context import get_render_context, get_render_id

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | render=%(render_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_RENDER_ID = "-"

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL")

# Chatty dependencies of the fetch collaborators
NOISY_LOGGERS = [
    "yfinance",
    "peewee",
    "requests",
    "urllib3",
    "urllib3.connectionpool",
]

# Attributes every LogRecord has; anything else was passed via extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "render_id", "taskName"}


class RenderIdFilter(logging.Filter):
    """Stamp records with the current render id (%(render_id)s)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.render_id = get_render_id() or NO_RENDER_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    {"timestamp": ..., "level": "WARNING", "logger": "...exchange_rates",
     "render_id": "3f2a9c81d0b4", "message": "...",
     "render": {"currency": "CHF", "time_range": "1Y"},
     "extra": {...}}

    "render" holds the metadata given to render_scope() and is omitted
    outside a render. Values that json cannot encode are reported as str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "render_id": getattr(record, "render_id", NO_RENDER_ID),
            "message": record.getMessage(),
        }
        render = get_render_context()
        if render:
            entry["render"] = render
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Route all logging to stdout with render ids attached.

    Replaces any handlers already on the root logger.

    Args:
        level: Level name; defaults to settings.log_level
        log_format: "text" or "json"; defaults to settings.log_format
        suppress_noisy_loggers: Raise third-party loggers to WARNING

    Raises:
        ValueError: If the level is not a valid log level name
    """
    level_name = level or settings.log_level
    numeric_level = _get_log_level(level_name)
    format_type = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RenderIdFilter())
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, DEFAULT_DATE_FORMAT))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging ready (level=%s, format=%s)", level_name, format_type,
        extra={"config": {"level": level_name, "format": format_type}},
    )


def _get_log_level(level_str: str) -> int:
    """Level number for a case-insensitive level name (WARN is accepted)."""
    name = level_str.strip().upper()
    if name not in VALID_LEVELS:
        raise ValueError(
            f"Invalid log level: '{name}'. Valid levels are: {', '.join(VALID_LEVELS)}"
        )
    return getattr(logging, name)


def get_logger(name: str) -> logging.Logger:
    """Module logger; render ids come from the filter setup_logging() installs."""
    return logging.getLogger(name)
