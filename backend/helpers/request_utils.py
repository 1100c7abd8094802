"""
Request utilities for extracting client information.

Provides helpers to extract IP addresses and user agent strings from
HTTP requests (handling proxy headers), and to write the locale cookie.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response

from models.config import settings


@dataclass(frozen=True)
class RequestMetadata:
    """Source information recorded alongside a submission."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    locale: Optional[str] = None


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract the client's real IP address from the request.

    Handles common proxy headers in order of precedence:
    1. CF-Connecting-IP (Cloudflare)
    2. X-Real-IP (nginx)
    3. X-Forwarded-For (standard proxy header, first IP)
    4. Direct client.host

    Returns:
        Client IP address or None if not available
    """
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_ip = forwarded_for.split(",")[0].strip()
        if first_ip:
            return first_ip

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request) -> Optional[str]:
    """User agent string, truncated to 500 characters to fit the column."""
    user_agent = request.headers.get("User-Agent")
    if user_agent:
        return user_agent[:500]
    return None


def get_request_metadata(request: Request) -> RequestMetadata:
    """
    Collect submission source metadata from a request.

    The locale comes from the `locale` cookie the locale middleware keeps in
    sync with the page the visitor was on.
    """
    return RequestMetadata(
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        locale=request.cookies.get(settings.LOCALE_COOKIE_NAME),
    )


def set_locale_cookie(
    response: Response,
    locale: str,
    max_age: int | None = None,
    is_production: bool | None = None,
    key: str | None = None,
) -> None:
    """
    Persist the visitor's locale under `key` (defaults to the configured name).

    Security settings:
    - httpOnly=True: not readable from page scripts
    - secure: HTTPS only in production
    - SameSite=Lax: sent on top-level navigations from other sites
    - path=/: available for all pages
    """
    response.set_cookie(
        key=settings.LOCALE_COOKIE_NAME if key is None else key,
        value=locale,
        max_age=settings.LOCALE_COOKIE_MAX_AGE if max_age is None else max_age,
        path="/",
        httponly=True,
        secure=settings.is_production if is_production is None else is_production,
        samesite="lax",
    )
