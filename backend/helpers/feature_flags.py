"""
Feature flags for optional admin features.

Flags are read once, when routers are registered. A disabled feature gets a
stand-in router that answers every request under its prefix with 404, so
its endpoints never execute and never need to re-check the flag.
"""

import enum

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from loguru import logger

from models.config import Settings

FEATURE_DISABLED_DETAIL = "Feature not enabled"

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


class FeatureFlag(str, enum.Enum):
    """Optional features and the settings attribute that enables each."""

    RESOURCE_LIBRARY = "FEATURE_RESOURCE_LIBRARY"
    REFERRAL_TRACKER = "FEATURE_REFERRAL_TRACKER"


def is_feature_enabled(flag: FeatureFlag, app_settings: Settings) -> bool:
    return bool(getattr(app_settings, flag.value, False))


def build_disabled_router(prefix: str, tag: str) -> APIRouter:
    """Router that returns 404 for any method and path under `prefix`."""
    router = APIRouter(prefix=prefix, tags=[tag], include_in_schema=False)

    async def feature_disabled() -> JSONResponse:
        return JSONResponse(
            status_code=404, content={"detail": FEATURE_DISABLED_DETAIL}
        )

    router.add_api_route("", feature_disabled, methods=_ALL_METHODS)
    router.add_api_route("/{path:path}", feature_disabled, methods=_ALL_METHODS)
    return router


def include_feature_router(
    app: FastAPI,
    flag: FeatureFlag,
    router: APIRouter,
    app_settings: Settings,
    prefix: str = "",
) -> bool:
    """
    Register `router` if its feature is enabled, else a 404 stand-in.

    Args:
        app: Application to register on.
        flag: Feature controlling the router.
        router: The real router.
        app_settings: Settings to read the flag from.
        prefix: Extra prefix passed to include_router (e.g. "/api").

    Returns:
        True when the real router was registered.
    """
    if is_feature_enabled(flag, app_settings):
        app.include_router(router, prefix=prefix)
        logger.info(f"Feature {flag.name} enabled")
        return True

    tag = router.tags[0] if router.tags else flag.name.lower()
    app.include_router(build_disabled_router(router.prefix, str(tag)), prefix=prefix)
    logger.info(f"Feature {flag.name} disabled; {prefix}{router.prefix} returns 404")
    return False
