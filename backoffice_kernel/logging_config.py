"""
Structured logging for the back office kernel.

Every record is one JSON object per line.  Event names go in the message
(``stock_adjusted``, ``purchase_created``); the data goes in ``extra=``.
Fields bound with ``LogContext.bind`` (acting user, purchase being written)
are stamped onto every record emitted inside the block, including records
from the ledger and store the coordinator calls.

Usage::

    logger = get_logger("services.stock_ledger")
    with LogContext.bind(purchase_id=str(purchase.id)):
        logger.info("stock_adjusted", extra={"product_id": pid, "delta": 3})
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import IO, Any, Iterator, Mapping
from uuid import UUID

NAMESPACE = "backoffice_kernel"

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "purchase_id", "trace_id")

_context: ContextVar[Mapping[str, str]] = ContextVar("backoffice_log_context", default={})


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    @staticmethod
    def set(**fields: str | None) -> None:
        """Merge fields into the current context.  None values are skipped."""
        _context.set({**_context.get(), **_clean(fields)})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Add fields for the duration of the block, then restore the previous set."""
        token = _context.set({**_context.get(), **_clean(fields)})
        try:
            yield
        finally:
            _context.reset(token)


def _clean(fields: Mapping[str, Any]) -> dict[str, str]:
    unknown = set(fields) - set(_CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
    return {k: str(v) for k, v in fields.items() if v is not None}


# Attributes every LogRecord carries; anything else arrived via ``extra=``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON line per record: envelope, bound context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in entry
        )

        error = record.exc_info[1] if record.exc_info else None
        if error is not None:
            entry["exc_type"] = type(error).__name__
            entry["exc_message"] = str(error)
            code = getattr(error, "code", None)
            if code is not None:
                entry["exc_code"] = code
            # BackofficeError subclasses keep their details as attributes.
            entry.update(
                (f"exc_{name}", value)
                for name, value in vars(error).items()
                if not name.startswith("_") and name != "code"
            )
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger under the kernel namespace, e.g. ``get_logger("services.stock_ledger")``."""
    return logging.getLogger(f"{NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install one JSON handler on the ``backoffice_kernel`` logger.

    Calling again without ``reset_logging`` in between is a no-op.  Level
    names ("DEBUG", "warning") are accepted as well as numbers.
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return
        _installed_handler = handler or logging.StreamHandler(stream or sys.stderr)

    _installed_handler.setFormatter(StructuredFormatter())
    kernel_logger = logging.getLogger(NAMESPACE)
    kernel_logger.setLevel(level.upper() if isinstance(level, str) else level)
    kernel_logger.propagate = False
    kernel_logger.addHandler(_installed_handler)


def reset_logging() -> None:
    """Remove the installed handler.  Used by tests."""
    global _installed_handler
    with _setup_lock:
        handler, _installed_handler = _installed_handler, None
    kernel_logger = logging.getLogger(NAMESPACE)
    if handler is not None:
        kernel_logger.removeHandler(handler)
    kernel_logger.setLevel(logging.WARNING)
