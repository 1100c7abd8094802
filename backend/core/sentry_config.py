"""
Sentry SDK configuration.

Form submissions carry parent and child details, so events are scrubbed
before they leave the process:
- user email/username removed, IP anonymized
- cookies dropped (locale cookie included)
- known form fields in request bodies replaced with "[Filtered]"
"""

import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

FILTERED = "[Filtered]"

# Request body keys (camelCase and snake_case) that hold personal data
SENSITIVE_FORM_FIELDS = frozenset(
    {
        "name",
        "email",
        "phone",
        "message",
        "parentName",
        "parent_name",
        "parentEmail",
        "parent_email",
        "alternatePhone",
        "alternate_phone",
        "address",
        "zipCode",
        "zip_code",
        "childName",
        "child_name",
        "childBirthDate",
        "child_birth_date",
        "allergies",
        "medications",
        "specialNeeds",
        "special_needs",
        "emergencyContact",
        "emergency_contact",
        "emergencyPhone",
        "emergency_phone",
        "additionalInfo",
        "additional_info",
        "notes",
        "referrerEmail",
        "referrer_email",
        "referredEmail",
        "referred_email",
    }
)

NOISY_PATHS = ("/health", "/api/health")


def _scrub_form_data(data: Any) -> Any:
    """Replace sensitive values in a (possibly nested) request body."""
    if isinstance(data, dict):
        return {
            key: FILTERED if key in SENSITIVE_FORM_FIELDS else _scrub_form_data(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_scrub_form_data(item) for item in data]
    return data


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Scrub personal data before sending to Sentry.

    Args:
        event: Sentry event.
        hint: Additional context about the event.

    Returns:
        The scrubbed event.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict):
            for header in ("Cookie", "cookie", "Authorization", "authorization"):
                if header in headers:
                    headers[header] = FILTERED
        if "data" in request:
            request["data"] = _scrub_form_data(request["data"])

    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Sample rate per request.

    Form submissions are low volume and worth tracing more often than page
    context lookups; health checks are never traced.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    asgi_scope = sampling_context.get("asgi_scope", {})
    path = asgi_scope.get("path", "")

    if path in NOISY_PATHS:
        return 0.0

    if path.startswith("/api/contact") or path.startswith("/api/enrollment"):
        return 0.5

    return 0.1


def init_sentry() -> None:
    """
    Initialize Sentry when SENTRY_DSN is set.

    Call before the FastAPI app is created.
    """
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("SENTRY_RELEASE", "unknown"),
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )
