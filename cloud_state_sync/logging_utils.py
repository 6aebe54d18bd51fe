"""
Logging helpers for the sync engine.

Components log through standard module loggers. SyncContextAdapter stamps
every record with the live sync context (signed-in user, current key,
scheduler state), and SyncJsonFormatter renders records as single-line
JSON for hosts that ship logs to a collector.
"""

import json
import logging
import sys
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, TextIO

LOGGER_NAMESPACE = "cloud_state_sync"

# Record attributes promoted to top-level JSON fields
SYNC_CONTEXT_FIELDS = ("user_id", "current_key", "scheduler_state", "operation")

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}

ContextSource = Callable[[], Mapping[str, Any]]


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class SyncJsonFormatter(logging.Formatter):
    """Single-line JSON formatter.

    Output fields:
    - timestamp, level, logger, message
    - user_id, current_key, scheduler_state, operation when present
    - exception, when the record carries exc_info
    - extra: any other caller-supplied attributes
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in SYNC_CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = _jsonable(value)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
            and key not in SYNC_CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra
        return json.dumps(entry)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str = LOGGER_NAMESPACE,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Route the package's logs through SyncJsonFormatter.

    Calling it again replaces the previously installed handler.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger)
        stream: Output stream (default: stdout)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(SyncJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


class SyncContextAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps records with the current sync context.

    ``context`` is called for every record, so fields such as the
    scheduler state reflect the moment of logging. Keys passed through
    ``extra=`` win over context keys.
    """

    def __init__(self, logger: logging.Logger, context: ContextSource):
        super().__init__(logger, {})
        self._context = context

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self._context(), **kwargs.get("extra", {})}
        return msg, kwargs
