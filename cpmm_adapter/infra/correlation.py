"""
Correlation IDs for operation tracing

Each orchestrated operation runs inside a CorrelationContext so every log
line it produces, across modules and awaits, carries the same id.
"""

import contextvars
import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for operation tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    contextvars are copied per asyncio task, so concurrent operations keep
    separate ids.

    Usage:
        with CorrelationContext("swap") as cid:
            log_operation(logging.INFO, "Starting", "swap_exact_in")
    """

    def __init__(self, prefix: Optional[str] = None):
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def log_operation(level: int, message: str, operation_name: str, **extra):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        **extra
    }

    logger.log(level, " ".join(parts), extra=extra_context)
