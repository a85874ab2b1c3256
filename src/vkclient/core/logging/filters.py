"""
Log filters that attach context to records.

The correlation ID lives in a ContextVar, so each asyncio task (and each
thread) sees its own value and concurrent long poll subscriptions do not
mix their IDs.
"""

import logging
from contextvars import ContextVar, Token
from typing import Dict, Any, Optional


_correlation_id: ContextVar[Optional[str]] = ContextVar("vkclient_correlation_id", default=None)


def set_correlation_id(correlation_id: str) -> Token:
    """
    Set correlation ID for the current context.

    Returns:
        Token for reset_correlation_id()

    Example:
        >>> token = set_correlation_id("req-12345")
        >>> logger.info("Calling users.get")  # record carries correlation_id
        >>> reset_correlation_id(token)
    """
    return _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Correlation ID of the current context, or None."""
    return _correlation_id.get()


def reset_correlation_id(token: Token) -> None:
    """Restore the value that was active before set_correlation_id()."""
    _correlation_id.reset(token)


def clear_correlation_id() -> None:
    """Drop the correlation ID in the current context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Adds correlation_id from the current context to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id
        return True


class ExtraFieldsFilter(logging.Filter):
    """
    Adds static fields (service name, environment, ...) to every record.

    Fields passed explicitly with the record win.

    Example:
        >>> handler.addFilter(ExtraFieldsFilter({"service": "bot", "env": "prod"}))
    """

    def __init__(self, extra_fields: Dict[str, Any]):
        super().__init__()
        self.extra_fields = dict(extra_fields)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.extra_fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
