"""
Structured JSON logging for the payroll core.

Every record under the ``payroll_kernel`` logger namespace is written as
one JSON object per line.  Fields bound through ``LogContext`` (the
preview's correlation id, the employee, the company and the salary
structure being previewed) are merged into each record, followed by the
record's ``extra=`` data.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

_CONTEXT_FIELDS = ("correlation_id", "employee", "company", "salary_structure")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"payroll_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """
    Per-thread / per-task log fields.

    Backed by ``ContextVar``s, so concurrent previews never see each
    other's employee or correlation id.
    """

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Set the given fields for the ``with`` block; ``None`` leaves a field as is."""
        unknown = sorted(set(fields) - set(_context_vars))
        if unknown:
            raise TypeError(f"unknown log context field(s): {', '.join(unknown)}")
        tokens = [
            (_context_vars[name], _context_vars[name].set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @staticmethod
    def get_all() -> dict[str, str]:
        """Bound fields, in declaration order; unset fields are omitted."""
        values = {name: var.get() for name, var in _context_vars.items()}
        return {name: value for name, value in values.items() if value is not None}

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)


# Attributes every LogRecord carries; anything else came in through extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, message, context, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)
        return json.dumps(payload, default=_json_default)


_ROOT_LOGGER = "payroll_kernel"


def get_logger(name: str) -> logging.Logger:
    """Logger ``payroll_kernel.<name>``."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


_configured = False
_configure_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a structured handler to the ``payroll_kernel`` logger.

    Only the first call has an effect until ``reset_logging`` runs.
    Records do not propagate to the root logger.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())

    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``. Used by the test suite."""
    global _configured
    with _configure_lock:
        _configured = False
    root = logging.getLogger(_ROOT_LOGGER)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
