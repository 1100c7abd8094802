"""
Locale resolution for public pages.

Priority: URL path prefix > `locale` cookie > Accept-Language > default.
Page requests without a supported prefix are redirected to the prefixed
URL; prefixed requests pass through and the cookie follows the URL.
"""

import enum
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from urllib.parse import quote

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from helpers.request_utils import set_locale_cookie

# Display metadata per supported locale
LOCALE_CONFIG: dict[str, dict[str, str]] = {
    "en": {
        "name": "English",
        "native_name": "English",
        "dir": "ltr",
        "date_format": "MM/dd/yyyy",
    },
    "es": {
        "name": "Spanish",
        "native_name": "Español",
        "dir": "ltr",
        "date_format": "dd/MM/yyyy",
    },
    "pl": {
        "name": "Polish",
        "native_name": "Polski",
        "dir": "ltr",
        "date_format": "dd.MM.yyyy",
    },
    "uk": {
        "name": "Ukrainian",
        "native_name": "Українська",
        "dir": "ltr",
        "date_format": "dd.MM.yyyy",
    },
}

# Paths the resolver never touches
BYPASS_PREFIXES = (
    "/api",
    "/static",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
    "/_next",
)


class LocaleSource(str, enum.Enum):
    URL = "url"
    COOKIE = "cookie"
    HEADER = "header"
    DEFAULT = "default"


@dataclass(frozen=True)
class LocalePreference:
    locale: str
    source: LocaleSource


def parse_accept_language(
    accept_language: str | None, supported: Sequence[str]
) -> str | None:
    """
    Pick the best supported locale from an Accept-Language header.

    Entries are ordered by quality (ties keep header order) and reduced to
    their primary subtag. Entries with q=0 or a malformed q are ignored.

    Examples:
        >>> parse_accept_language("es-ES,es;q=0.9,en;q=0.5", ["en", "es"])
        'es'
        >>> parse_accept_language("fr-CA,uk;q=0.4,en;q=0.8", ["en", "uk"])
        'en'
        >>> parse_accept_language("fr", ["en"]) is None
        True
    """
    if not accept_language:
        return None

    weighted: list[tuple[float, int, str]] = []
    for position, entry in enumerate(accept_language.split(",")):
        parts = [part.strip() for part in entry.split(";")]
        tag = parts[0].lower()
        if not tag or tag == "*":
            continue

        quality = 1.0
        for param in parts[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue

        weighted.append((quality, position, tag.split("-")[0]))

    weighted.sort(key=lambda item: (-item[0], item[1]))
    for _, _, language in weighted:
        if language in supported:
            return language
    return None


def locale_from_path(path: str, supported: Sequence[str]) -> str | None:
    """First path segment if it is a supported locale, else None."""
    first_segment = path.lstrip("/").split("/", 1)[0].lower()
    return first_segment if first_segment in supported else None


def resolve_locale(
    path: str,
    cookie_value: str | None,
    accept_language: str | None,
    supported: Sequence[str],
    default: str,
) -> LocalePreference:
    """
    Resolve the locale for a request.

    Unsupported values from any source are treated as absent, so the result
    is always one of `supported` (or `default`).
    """
    url_locale = locale_from_path(path, supported)
    if url_locale:
        return LocalePreference(url_locale, LocaleSource.URL)

    if cookie_value and cookie_value.lower() in supported:
        return LocalePreference(cookie_value.lower(), LocaleSource.COOKIE)

    header_locale = parse_accept_language(accept_language, supported)
    if header_locale:
        return LocalePreference(header_locale, LocaleSource.HEADER)

    return LocalePreference(default, LocaleSource.DEFAULT)


def is_bypassed(path: str) -> bool:
    """API routes, framework assets and anything that looks like a file."""
    if any(path == prefix or path.startswith(prefix + "/") for prefix in BYPASS_PREFIXES):
        return True
    last_segment = path.rsplit("/", 1)[-1]
    return "." in last_segment


def build_localized_url(locale: str, path: str, query: str) -> str:
    """`/about?x=1` -> `/es/about?x=1`; the root maps to `/es`."""
    suffix = "" if path in ("", "/") else path
    url = f"/{locale}{quote(suffix, safe='/')}"
    if query:
        url = f"{url}?{query}"
    return url


class LocaleMiddleware(BaseHTTPMiddleware):
    """Redirect unprefixed page requests and keep the locale cookie in sync."""

    def __init__(
        self,
        app: ASGIApp,
        supported_locales: Sequence[str],
        default_locale: str,
        cookie_name: str = "locale",
        cookie_max_age: int = 60 * 60 * 24 * 365,
        secure_cookie: bool = False,
    ) -> None:
        super().__init__(app)
        self.supported_locales = tuple(supported_locales)
        self.default_locale = default_locale
        self.cookie_name = cookie_name
        self.cookie_max_age = cookie_max_age
        self.secure_cookie = secure_cookie

    def _set_cookie(self, response: Response, locale: str) -> None:
        set_locale_cookie(
            response,
            locale,
            max_age=self.cookie_max_age,
            is_production=self.secure_cookie,
            key=self.cookie_name,
        )

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Resolve the locale, then redirect or pass through."""
        path = request.url.path
        if is_bypassed(path):
            return await call_next(request)

        cookie_value = request.cookies.get(self.cookie_name)
        preference = resolve_locale(
            path,
            cookie_value,
            request.headers.get("Accept-Language"),
            self.supported_locales,
            self.default_locale,
        )

        if preference.source != LocaleSource.URL:
            target = build_localized_url(preference.locale, path, request.url.query)
            logger.debug(
                f"Locale redirect {path} -> {target} (source={preference.source.value})"
            )
            response = RedirectResponse(url=target, status_code=307)
            self._set_cookie(response, preference.locale)
            return response

        request.state.locale = preference
        response = await call_next(request)
        if cookie_value != preference.locale:
            self._set_cookie(response, preference.locale)
        return response
