"""Per-check logging context.

A check for one student runs inside a scope carrying a correlation ID, the
student ID and the operation name. The values travel through contextvars so
both the synchronous parsers and the async Playwright scraper see them.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class LogContext:
    """Contextual fields attached to every log record."""

    correlation_id: str = field(default_factory=_new_correlation_id)
    operation: str | None = None
    student_id: str | None = None
    component: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"correlation_id": self.correlation_id}
        for key in ("operation", "student_id", "component"):
            value = getattr(self, key)
            if value:
                result[key] = value
        result.update(self.extra)
        return result


_log_context: ContextVar[LogContext | None] = ContextVar("attendance_log_context", default=None)


def get_context() -> LogContext:
    """Current context; a fresh one is created on first use."""
    ctx = _log_context.get()
    if ctx is None:
        ctx = LogContext()
        _log_context.set(ctx)
    return ctx


def set_context(context: LogContext) -> None:
    _log_context.set(context)


def clear_context() -> None:
    _log_context.set(None)


def get_correlation_id() -> str:
    return get_context().correlation_id


def update_context(**kwargs: Any) -> None:
    """Add fields to the current context; unknown names go to ``extra``."""
    ctx = get_context()
    for key, value in kwargs.items():
        if key != "extra" and hasattr(ctx, key):
            setattr(ctx, key, value)
        else:
            ctx.extra[key] = value


class ContextScope:
    """Installs a LogContext for the duration of a ``with`` block.

    Works with both ``with`` and ``async with``; the previous context is
    restored on exit.
    """

    def __init__(
        self,
        correlation_id: str | None = None,
        operation: str | None = None,
        student_id: str | None = None,
        component: str | None = None,
        **extra: Any,
    ) -> None:
        self.context = LogContext(
            correlation_id=correlation_id or _new_correlation_id(),
            operation=operation,
            student_id=student_id,
            component=component,
            extra=extra,
        )
        self._token: Token[LogContext | None] | None = None

    def __enter__(self) -> LogContext:
        self._token = _log_context.set(self.context)
        return self.context

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def with_context(
    correlation_id: str | None = None,
    operation: str | None = None,
    student_id: str | None = None,
    component: str | None = None,
    **extra: Any,
) -> ContextScope:
    """Scope log records to one operation.

    Usage:
        with with_context(operation="check", student_id="23691A0501"):
            logger.info("Parsing cached attendance page")
    """
    return ContextScope(
        correlation_id=correlation_id,
        operation=operation,
        student_id=student_id,
        component=component,
        **extra,
    )
