"""Localized page context.

Serves the locale metadata the page renderer needs for each public page:
display name, text direction, date format and alternate-language URLs.
Mounted at the site root, behind the locale middleware.
"""

from fastapi import APIRouter, Request

from helpers.locale import LOCALE_CONFIG, LocalePreference, LocaleSource
from models.config import settings
from models.exceptions import NotFoundException
from models.schemas import LocaleInfo, PageContextResponse

router = APIRouter(tags=["pages"])

PAGES = ("home", "about", "programs", "enrollment", "contact", "weather")


def _page_path(locale: str, page: str) -> str:
    return f"/{locale}" if page == "home" else f"/{locale}/{page}"


def _page_context(request: Request, locale: str, page: str) -> PageContextResponse:
    if page not in PAGES or locale not in settings.SUPPORTED_LOCALES:
        raise NotFoundException(f"Page '{page}' not found")

    preference = getattr(request.state, "locale", None)
    if not isinstance(preference, LocalePreference):
        preference = LocalePreference(locale, LocaleSource.URL)

    site_url = settings.SITE_URL.rstrip("/")
    alternates = {
        code: f"{site_url}{_page_path(code, page)}"
        for code in settings.SUPPORTED_LOCALES
    }
    alternates["x-default"] = alternates[settings.DEFAULT_LOCALE]

    config = LOCALE_CONFIG[locale]
    return PageContextResponse(
        page=page,
        locale=LocaleInfo(
            code=locale,
            name=config["name"],
            native_name=config["native_name"],
            dir=config["dir"],
            date_format=config["date_format"],
        ),
        locale_source=preference.source.value,
        canonical_url=alternates[locale],
        alternates=alternates,
    )


@router.get("/{locale}", response_model=PageContextResponse)
def get_home_context(request: Request, locale: str) -> PageContextResponse:
    return _page_context(request, locale, "home")


@router.get("/{locale}/{page}", response_model=PageContextResponse)
def get_page_context(request: Request, locale: str, page: str) -> PageContextResponse:
    return _page_context(request, locale, page)
