"""Logging setup for the reporting service.

Log lines carry the report entity being fetched.  The entity is kept in a
context variable so that every record emitted while a fetch is running is
tagged without threading it through each call::

    with report_context(entity="projects"):
        logger.warning("fetch failed")
"""
from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterator

_current_entity: ContextVar[str | None] = ContextVar("report_entity", default=None)
_configured = False


@contextmanager
def report_context(entity: str | None) -> Iterator[None]:
    token = _current_entity.set(entity)
    try:
        yield
    finally:
        _current_entity.reset(token)


def current_entity() -> str | None:
    return _current_entity.get()


class EntityContextFilter(logging.Filter):
    """Attach ``record.entity`` from the active report context."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "entity", None) is None:
            record.entity = current_entity()
        return True


class HumanReadableFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        entity = getattr(record, "entity", None) or "-"
        message = f"{timestamp} [{record.levelname:5}] {record.name} [{entity}]: {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class StructuredFormatter(logging.Formatter):
    _EXTRA_KEYS = ("entity", "attempt", "table", "status_code")

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self._EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: int | str = logging.INFO, *, json_format: bool = False) -> None:
    """Install the reporting log handler once per process."""

    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())
    handler.addFilter(EntityContextFilter())

    logger = logging.getLogger("reporting")
    logger.setLevel(level)
    logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _configured = True


__all__ = [
    "EntityContextFilter",
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
    "current_entity",
    "report_context",
]
