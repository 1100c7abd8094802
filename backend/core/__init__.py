"""Core infrastructure: correlation IDs, logging and Sentry."""

from core.correlation import (
    correlation_id_var,
    generate_correlation_id,
    get_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging, mask_email
from core.sentry_config import init_sentry

__all__ = [
    "init_sentry",
    "configure_logging",
    "mask_email",
    "generate_correlation_id",
    "get_correlation_id",
    "resolve_correlation_id",
    "set_correlation_id",
    "correlation_id_var",
]
