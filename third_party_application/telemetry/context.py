"""
Operation Context

Carries the acting identity and correlation id of the current core operation
using contextvars, so concurrent operations never see each other's context.
"""

import uuid
from contextvars import ContextVar
from typing import Any

_operation_context: ContextVar[dict[str, Any]] = ContextVar("operation_context", default={})


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for tracing an operation."""
    return str(uuid.uuid4())


def set_operation_context(
    request_id: str,
    actor_id: str | None = None,
    application_id: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Set the context for the current async task.

    Args:
        request_id: Correlation ID supplied by the calling adapter
        actor_id: Email or user id of whoever triggered the operation
        application_id: Application being operated on
        **kwargs: Additional context properties
    """
    _operation_context.set(
        {
            "request_id": request_id,
            "actor_id": actor_id or "anonymous",
            "application_id": application_id,
            **kwargs,
        }
    )


def get_operation_context() -> dict[str, Any]:
    """Get the context of the current async task."""
    return _operation_context.get()


def clear_operation_context() -> None:
    """Clear the context of the current async task."""
    _operation_context.set({})
