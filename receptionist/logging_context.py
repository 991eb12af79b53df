"""Call-scoped logging context for tracing a caller's turns across modules.

Binds the call and company identifiers in context variables so every log
line emitted while a turn is processed can be attributed to its call, even
when many calls run concurrently on one event loop.

Usage:
    from receptionist.logging_context import bind_call, get_call_logger

    bind_call("CA-abc123", "acme-hvac")
    logger = get_call_logger(__name__)
    logger.info("Processing turn")  # record.call_id == "CA-abc123"
"""

import logging
from contextvars import ContextVar
from typing import Optional

_call_id: ContextVar[str] = ContextVar("call_id", default="NO_CALL_ID")
_company_id: ContextVar[str] = ContextVar("company_id", default="NO_COMPANY")


def bind_call(call_id: str, company_id: Optional[str] = None) -> None:
    """Set the correlation identifiers for the current async context."""
    _call_id.set(call_id)
    if company_id is not None:
        _company_id.set(company_id)


def get_call_id() -> str:
    """Retrieve the current call correlation ID."""
    return _call_id.get()


def get_company_id() -> str:
    """Retrieve the current company ID."""
    return _company_id.get()


class CallContextFilter(logging.Filter):
    """Injects call_id and company_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.call_id = _call_id.get()  # type: ignore[attr-defined]
        record.company_id = _company_id.get()  # type: ignore[attr-defined]
        return True


def get_call_logger(name: str) -> logging.Logger:
    """Return a logger with the CallContextFilter attached.

    The filter adds ``call_id`` and ``company_id`` to each record so
    formatters can include ``%(call_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CallContextFilter) for f in logger.filters):
        logger.addFilter(CallContextFilter())
    return logger
