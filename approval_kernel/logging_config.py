"""
Structured JSON logging for the approval kernel.

Every record under the ``approval_kernel`` logger is emitted as one JSON
line.  Fields bound with ``LogContext.bind()`` (the registration request,
the approval step and the acting approver) are merged into each line, and
``extra={...}`` keys are copied through verbatim.

    logger = get_logger("services.workflow")
    with LogContext.bind(workflow_id=str(wf_id), actor_id=str(actor)):
        logger.info("workflow_approved", extra={"step_number": 2})
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
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

LOGGER_NAMESPACE = "approval_kernel"

CONTEXT_FIELDS = ("correlation_id", "request_id", "workflow_id", "actor_id")

_context: ContextVar[dict[str, str]] = ContextVar("approval_log_context", default={})


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[dict[str, str]]:
        """Bind context fields for the duration of the block.

        Unknown field names raise ValueError.  None values are ignored so
        callers can pass optional ids unconditionally.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context fields: {sorted(unknown)}")

        merged = dict(_context.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _context.set(merged)
        try:
            yield merged
        finally:
            _context.reset(token)


_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Enum)):
        return str(value.value if isinstance(value, Enum) else value)
    if isinstance(value, (datetime, date)):
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
        }
        base_keys = set(payload)
        payload.update(LogContext.get_all())
        # Explicit extras win over bound context.
        payload.update(
            (key, val)
            for key, val in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in base_keys
        )

        if record.exc_info and record.exc_info[1] is not None:
            self._add_exception(payload, record)

        return json.dumps(payload, default=_to_json)

    def _add_exception(self, payload: dict[str, Any], record: logging.LogRecord) -> None:
        exc = record.exc_info[1]
        payload["exc_type"] = type(exc).__name__
        payload["exc_message"] = str(exc)
        code = getattr(exc, "code", None)
        if code is not None:
            payload["exc_code"] = code
        payload["traceback"] = self.formatException(record.exc_info)


def get_logger(name: str) -> logging.Logger:
    """Logger under the approval_kernel namespace, e.g. ``services.workflow``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configured = False
_configure_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the namespace logger.  Runs once per process."""
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level)
    logger.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    logger.addHandler(target)


def reset_logging() -> None:
    """Undo configure_logging(); used by the test suite."""
    global _configured
    with _configure_lock:
        _configured = False
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
