"""Tracing helpers: span decorator and context manager for engine operations."""

import asyncio
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

T = TypeVar("T")

# Only these keyword arguments are copied onto spans; values such as formulas
# or literal update values may hold record data and are never recorded.
_SPAN_ARG_KEYS = frozenset({
    "workflow_id",
    "execution_type",
    "schedule_id",
    "data_model_id",
    "limit",
})


def _record_args(span: trace.Span, kwargs: dict[str, Any]) -> None:
    for key, value in kwargs.items():
        if key in _SPAN_ARG_KEYS and value is not None:
            span.set_attribute(f"arg.{key}", str(value))


def _mark(span: trace.Span, exc: BaseException | None) -> None:
    if exc is None:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, str(exc)))
        span.record_exception(exc)


def traced(operation_name: str | None = None) -> Callable:
    """Decorator that runs the wrapped function (sync or async) inside a span.

    Args:
        operation_name: Span name (defaults to module.funcname).
    """

    def decorator(func: Callable) -> Callable:
        tracer = trace.get_tracer(__name__)
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(span_name) as span:
                _record_args(span, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _mark(span, e)
                    raise
                _mark(span, None)
                return result

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(span_name) as span:
                _record_args(span, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _mark(span, e)
                    raise
                _mark(span, None)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span (no-op when not recording)."""
    span = trace.get_current_span()
    if span and span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)


class TracedOperation:
    """Async context manager that wraps one unit of scheduler work in a span."""

    def __init__(self, operation_name: str, attributes: dict | None = None) -> None:
        self.operation_name = operation_name
        self.attributes = attributes or {}
        self.tracer = trace.get_tracer(__name__)
        self.span: trace.Span | None = None

    async def __aenter__(self) -> "TracedOperation":
        self.span = self.tracer.start_span(self.operation_name)
        for key, value in self.attributes.items():
            self.span.set_attribute(key, value)
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self.span is None:
            return
        _mark(self.span, exc_val)
        self.span.end()
