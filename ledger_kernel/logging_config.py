"""
Structured JSON logging for the ledger kernel.

Each record becomes one JSON object:

    ts, level, logger, message    envelope
    tenant_id, company_id, ...    ledger fields bound with LogContext.bind()
    <extra keys>                  the record's ``extra`` dict
    exc_type, exc_code, exc_*     attached exception (LedgerError attributes)

Usage:
    logger = get_logger("services.void_service")
    with LogContext.bind(scope, actor_id=actor_id, reference="1001"):
        logger.info("void_started", extra={"candidates": ["1001", "INV-1001"]})

A bound field wins over an ``extra`` key of the same name.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from ledger_kernel.exceptions import LedgerError, LedgerWarning

if TYPE_CHECKING:
    from ledger_kernel.domain.scope import ScopeContext

__all__ = [
    "LEDGER_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

LOGGER_NAMESPACE = "ledger_kernel"

LEDGER_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "tenant_id",
    "company_id",
    "actor_id",
    "reference",
)

_EMPTY: Mapping[str, str] = {}
_bound_fields: ContextVar[Mapping[str, str]] = ContextVar(
    "ledger_log_fields", default=_EMPTY
)


class LogContext:
    """Ledger fields attached to every record logged inside ``bind()``."""

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_bound_fields.get())

    @staticmethod
    def clear() -> None:
        _bound_fields.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(scope: ScopeContext | None = None, **fields: Any) -> Iterator[None]:
        """
        Bind ledger fields for the duration of the block.

        ``scope`` contributes tenant_id and company_id.  Keyword fields must
        be in LEDGER_FIELDS; None values leave any outer binding in place.
        Nested binds stack and unwind in order.
        """
        unknown = sorted(set(fields) - set(LEDGER_FIELDS))
        if unknown:
            raise TypeError(f"Unknown log context fields: {', '.join(unknown)}")

        merged = dict(_bound_fields.get())
        if scope is not None:
            merged.update(scope.log_fields())
        merged.update({name: str(value) for name, value in fields.items() if value is not None})

        token = _bound_fields.set(merged)
        try:
            yield
        finally:
            _bound_fields.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``.
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
    if isinstance(value, LedgerWarning):
        return {"code": value.code, "message": str(value), **_public_attrs(value)}
    return str(value)


def _public_attrs(obj: BaseException) -> dict[str, Any]:
    return {
        name: value
        for name, value in vars(obj).items()
        if not name.startswith("_") and name not in ("args", "code")
    }


class StructuredFormatter(logging.Formatter):
    """One JSON line per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_bound_fields.get())

        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_to_json)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        if isinstance(exc, LedgerError):
            fields["exc_code"] = exc.code
            fields.update({f"exc_{name}": value for name, value in _public_attrs(exc).items()})
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.journal_poster")`` -> ``ledger_kernel.services.journal_poster``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configure_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``ledger_kernel`` logger.

    Only the first call has an effect; later calls (one per orchestrator
    built from settings) are no-ops until reset_logging().
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

        kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False

        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and allow configure_logging() again.  Used by tests."""
    global _configured
    with _configure_lock:
        _configured = False
        kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
        kernel_logger.handlers.clear()
        kernel_logger.setLevel(logging.WARNING)
