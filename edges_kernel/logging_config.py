"""
Structured JSON logging for the edges ingestion pipeline.

Every record is one JSON line. Import-scoped fields (which file, which
sheet, which processing record) travel in context variables so the
detector, normalizer and writer do not have to pass them around:

    with LogContext.bind(source_file="export.xlsx", producer="ingestion"):
        with LogContext.bind(sheet_name="新規to業務管理"):
            get_logger("ingestion.converter").info("sheet_converted", extra={"row_count": 3})

    {"ts": "...", "level": "INFO", "logger": "edges_kernel.ingestion.converter",
     "message": "sheet_converted", "source_file": "export.xlsx",
     "producer": "ingestion", "sheet_name": "新規to業務管理", "row_count": 3}

Event names are snake_case; details go in ``extra``. Exceptions logged with
``exc_info`` contribute their type, ``code`` and public attributes as
``exc_*`` fields.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO
from uuid import UUID

__all__ = [
    "LOGGER_NAMESPACE",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

LOGGER_NAMESPACE = "edges_kernel"

# Order here is the order fields appear in the JSON line.
_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"edges_log_{name}", default=None)
    for name in ("correlation_id", "source_file", "sheet_name", "processed_file_id", "producer")
}


class LogContext:
    """Import-scoped log fields, safe across threads and asyncio tasks."""

    fields = tuple(_CONTEXT)

    @staticmethod
    def _var(name: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT[name]
        except KeyError:
            raise KeyError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields for the current context; ``None`` leaves a field unchanged."""
        for name, value in fields.items():
            var = cls._var(name)
            if value is not None:
                var.set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {name: var.get() for name, var in _CONTEXT.items() if var.get() is not None}

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type[LogContext]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (var, var.set(value))
            for var, value in ((cls._var(name), value) for name, value in fields.items())
            if value is not None
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def exception_fields(exc: BaseException) -> dict[str, Any]:
    """``exc_*`` fields for a logged exception, including its error code."""
    fields: dict[str, Any] = {"exc_type": type(exc).__name__, "exc_message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; non-ASCII text (sheet names, headers) kept as is."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default, ensure_ascii=False)


def get_logger(name: str) -> logging.Logger:
    """Logger named ``edges_kernel.<name>``, e.g. ``get_logger("ingestion.writer")``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_state_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``edges_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``. ``level``
    accepts a number or a name such as ``"debug"``.
    """
    global _configured
    with _state_lock:
        if _configured:
            return
        _configured = True

    if isinstance(level, str):
        level = level.upper()
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    namespace.setLevel(level)
    namespace.propagate = False

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    namespace.addHandler(target)


def reset_logging() -> None:
    """Remove handlers and allow ``configure_logging`` again. Test helper."""
    global _configured
    with _state_lock:
        _configured = False
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    namespace.handlers.clear()
    namespace.setLevel(logging.WARNING)
