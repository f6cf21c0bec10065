"""OpenTelemetry tracing decorators."""

import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

# Type variable for generic function signatures
F = TypeVar("F", bound=Callable[..., Any])

# Keyword arguments copied onto the span when present
TRACED_ARGUMENTS = ("order_id", "menu_item_id", "item_id", "quantity", "new_status")


def _start(
    span: Span,
    func: Callable[..., Any],
    span_name: str | None,
    service_name: str,
    kwargs: dict[str, Any],
) -> None:
    span.set_attribute("service.name", service_name)
    if span_name:
        span.set_attribute("function.name", func.__name__)
    for argument in TRACED_ARGUMENTS:
        value = kwargs.get(argument)
        if isinstance(value, str | int):
            span.set_attribute(f"order_service.{argument}", value)


def _fail(span: Span, error: Exception) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)


def traced(span_name: str | None = None, service_name: str = "order-svc") -> Callable[[F], F]:
    """Decorator to add OpenTelemetry tracing to a function.

    Creates a new span for the decorated function with automatic error tracking.
    Identifiers passed by keyword (order_id, menu_item_id, ...) are recorded as
    span attributes. Async functions are supported.

    Args:
        span_name: Name for the span (defaults to function name if not provided)
        service_name: Service name for span attributes

    Returns:
        Decorated function with tracing

    Example:
        @traced("stock.reserve")
        async def reserve(self, menu_item_id: str, quantity: int) -> MenuItem:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                _start(span, func, span_name, service_name, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name) as span:
                _start(span, func, span_name, service_name, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        else:
            return sync_wrapper  # type: ignore

    return decorator
