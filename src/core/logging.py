"""Structured logging for hybrid-search-service.

Every record under the ``src`` logger tree is emitted as one JSON object
carrying the request's correlation ID. Call sites attach structured
fields with ``extra={"context": {...}}``; they are merged into the
object under their own keys.

Log level: HYBRID_SEARCH_LOG_LEVEL (default INFO).
Log file: optional, rotated at 10 MiB with five backups.
"""

import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

SERVICE_NAME = "hybrid-search"
ROOT_LOGGER_NAME = "src"
CONTEXT_ATTR = "context"

_NO_CORRELATION_ID = "-"
_RESERVED_KEYS = frozenset(
    {"timestamp", "level", "service", "logger", "correlation_id", "message", "exception"}
)

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


@contextmanager
def correlation_id_scope(correlation_id: str) -> Iterator[str]:
    """Bind ``correlation_id`` to every record logged inside the block."""
    token = _correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id.reset(token)


class JSONFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def __init__(self, service_name: str = SERVICE_NAME, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", _NO_CORRELATION_ID),
            "message": record.getMessage(),
        }

        context = getattr(record, CONTEXT_ATTR, None)
        if isinstance(context, dict):
            for key, value in context.items():
                if key not in _RESERVED_KEYS:
                    log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamp the current correlation ID onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or _NO_CORRELATION_ID
        return True


def get_log_level_from_env(service_prefix: str = "HYBRID_SEARCH") -> int:
    level_name = os.environ.get(f"{service_prefix}_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def _json_handler(handler: logging.Handler, service_name: str) -> logging.Handler:
    handler.setFormatter(JSONFormatter(service_name=service_name))
    handler.addFilter(CorrelationIdFilter())
    return handler


def create_file_handler(
    log_file_path: str,
    service_name: str = SERVICE_NAME,
    max_bytes: int = 10_485_760,
    backup_count: int = 5,
) -> logging.Handler:
    """Rotating JSON file handler; the parent directory is created if needed."""
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=log_file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    return _json_handler(handler, service_name)


def setup_structured_logging(
    service_name: str = SERVICE_NAME,
    log_file_path: str | None = None,
    log_level: int | None = None,
) -> logging.Logger:
    """Route the ``src`` logger tree to JSON handlers on stdout (and a file).

    Module loggers come from ``logging.getLogger(__name__)`` and so sit
    below ``src``. Calling this again replaces the previous handlers.
    """
    level = get_log_level_from_env() if log_level is None else log_level

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_json_handler(logging.StreamHandler(sys.stdout), service_name))

    if log_file_path:
        try:
            file_handler = create_file_handler(log_file_path, service_name)
        except PermissionError:
            logger.warning("Cannot write to %s, file logging disabled", log_file_path)
        else:
            file_handler.setLevel(level)
            logger.addHandler(file_handler)

    logger.propagate = False
    return logger
