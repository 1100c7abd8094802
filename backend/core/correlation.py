"""
Correlation ID handling for request tracing.

Every request gets a short ID that is echoed in the `X-Correlation-ID`
response header, attached to log lines and included in error payloads so a
parent calling the front desk can quote it.
"""

import re
import uuid
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Incoming IDs are accepted from the frontend, but only in a safe shape
_INCOMING_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,64}$")


def generate_correlation_id() -> str:
    """
    Generate a short correlation ID.

    Returns:
        8-character hexadecimal string (e.g. "3fa85f64").
    """
    return uuid.uuid4().hex[:8]


def resolve_correlation_id(incoming: str | None) -> str:
    """
    Reuse a caller-provided correlation ID when it is well formed.

    Header values that are empty, too long or contain anything other than
    letters, digits and dashes are replaced with a fresh ID so they never
    reach log output verbatim.

    Args:
        incoming: Raw `X-Correlation-ID` header value, if any.

    Returns:
        The correlation ID to use for this request.
    """
    if incoming and _INCOMING_ID_PATTERN.match(incoming.strip()):
        return incoming.strip()
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Return the current request's correlation ID, or "" outside a request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current request context."""
    correlation_id_var.set(correlation_id)
