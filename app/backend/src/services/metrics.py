"""Prometheus metric definitions for invoice operations."""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from prometheus_client import Counter

from app.backend.src.core.errors import AppError

F = TypeVar("F", bound=Callable[..., Any])

invoice_operations_total = Counter(
    "invoice_operations_total",
    "Invoice lifecycle operations by outcome.",
    labelnames=["operation", "outcome"],
)

contractor_operations_total = Counter(
    "contractor_operations_total",
    "Contractor operations by outcome.",
    labelnames=["operation", "outcome"],
)


def track_operation(counter: Counter, operation: str) -> Callable[[F], F]:
    """Count calls of the wrapped service function by outcome.

    Domain errors are labelled with their error code, anything else with
    ``error``.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                result = func(*args, **kwargs)
            except AppError as exc:
                counter.labels(operation=operation, outcome=exc.code.lower()).inc()
                raise
            except Exception:
                counter.labels(operation=operation, outcome="error").inc()
                raise
            counter.labels(operation=operation, outcome="success").inc()
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


__all__ = [
    "contractor_operations_total",
    "invoice_operations_total",
    "track_operation",
]
