"""Request context management utilities for correlation IDs."""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Context variable for storing correlation ID across async boundaries
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class RequestContext:
    """Manages request context using contextvars for async-safe storage.

    Each asyncio task sees its own copy of the context, so concurrent requests
    interleaving on the event loop never observe each other's correlation IDs.
    """

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        """Set the correlation ID for the current context.

        Args:
            correlation_id: The correlation ID to store in the context.
        """
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Get the correlation ID from the current context.

        Returns:
            str | None: The correlation ID if set, None otherwise.
        """
        return _correlation_id_var.get()

    @staticmethod
    def clear() -> None:
        """Clear all context variables."""
        _correlation_id_var.set(None)

    @staticmethod
    @contextmanager
    def scope(correlation_id: str) -> Iterator[str]:
        """Bind a correlation ID for the duration of a ``with`` block.

        The previous value is restored on exit, which is what ends a request's
        correlation context.

        Args:
            correlation_id: The correlation ID to bind.

        Yields:
            str: The bound correlation ID.
        """
        token = _correlation_id_var.set(correlation_id)
        try:
            yield correlation_id
        finally:
            _correlation_id_var.reset(token)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracking.

    Returns:
        str: A string representation of a random 128-bit UUID4.

    Examples:
        >>> correlation_id = generate_correlation_id()
        >>> len(correlation_id)
        36
    """
    return str(uuid.uuid4())
