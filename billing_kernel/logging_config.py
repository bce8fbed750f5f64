"""
Structured JSON logging for billing calculations.

Every record under the ``billing_kernel`` logger is written as one JSON
line: ``ts``, ``level``, ``logger`` and ``message``, the enrollment being
quoted (when one is bound), then the record's ``extra`` fields.

Billing errors are rendered from their structured data rather than their
message.  A ``BillingKernelError`` attached either as ``exc_info`` or as
``extra={"error": exc}`` yields ``error_code`` plus the error's
``details()`` (``field``/``value``/``reason`` for a rejected input,
``days`` and the dates for a bad interval), so a rejected due day reads:

    {"message": "billing_input_rejected", "enrollment_id": "7",
     "error_code": "INVALID_CONFIGURATION", "field": "due_day_of_month",
     "value": "31", "reason": "must be between 1 and 28", ...}
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
from enum import Enum
from typing import Any

from billing_kernel.exceptions import BillingKernelError

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """Enrollment being billed, attached to every record logged inside bind()."""

    _enrollment_id: ContextVar[str | None] = ContextVar(
        "billing_enrollment_id", default=None
    )

    @classmethod
    def get_all(cls) -> dict[str, str]:
        enrollment_id = cls._enrollment_id.get()
        return {} if enrollment_id is None else {"enrollment_id": enrollment_id}

    @classmethod
    def clear(cls) -> None:
        cls._enrollment_id.set(None)

    @classmethod
    @contextmanager
    def bind(cls, enrollment_id: object) -> Iterator[None]:
        """Tag records with ``enrollment_id`` until the block exits."""
        token = cls._enrollment_id.set(str(enrollment_id))
        try:
            yield
        finally:
            cls._enrollment_id.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Dates, Decimal amounts and enums as they appear in billing payloads."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return str(obj)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    if isinstance(exc, BillingKernelError):
        return {"error_code": exc.code, **exc.details()}
    return {"error_type": type(exc).__name__, "error_message": str(exc)}


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key in _STDLIB_KEYS or key in payload:
                continue
            if key == "error" and isinstance(val, BaseException):
                payload.update(_error_fields(val))
            else:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_error_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "billing_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the billing_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the billing_kernel logger (idempotent).

    ``level`` accepts a level name so the ``log_level`` setting can be
    passed straight through.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
