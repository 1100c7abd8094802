# ruff: noqa: E402
# E402 disabled: load_dotenv() must run before other imports for Sentry DSN

import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

import sentry_sdk
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from core.correlation import (
    generate_correlation_id,
    get_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging
from core.sentry_config import init_sentry
from helpers.feature_flags import FeatureFlag, include_feature_router
from helpers.locale import LocaleMiddleware
from helpers.rate_limiter import limiter
from helpers.time_utils import utc_now
from models.config import settings
from models.exceptions import (
    ConflictException,
    DomainException,
    NotFoundException,
    NotificationException,
    TransientStoreException,
    ValidationException,
    WeatherServiceUnavailableException,
)
from repositories.database import Base, engine
from routers import (
    contact_router,
    documents_router,
    enrollment_router,
    notifications_router,
    pages_router,
    referrals_router,
    resources_router,
    weather_router,
)
from services.weather_service import WeatherCache

# Initialize Sentry BEFORE app creation
init_sentry()

# Configure logging with Loguru
configure_logging(settings.ENVIRONMENT, settings.LOG_DIR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Optionally create tables when `AUTO_CREATE_DB` is enabled (development).
    - Own the weather cache: created on startup, cleared on shutdown.
    """
    if settings.AUTO_CREATE_DB:
        logger.info(
            "AUTO_CREATE_DB enabled; creating database tables via SQLAlchemy create_all()"
        )
        Base.metadata.create_all(bind=engine)
    else:
        logger.info("AUTO_CREATE_DB disabled; skipping automatic create_all()")

    app.state.weather_cache = WeatherCache(settings.WEATHER_CACHE_TTL_SECONDS)

    try:
        yield
    finally:
        app.state.weather_cache.clear()
        logger.info("Weather cache cleared")


app = FastAPI(title=f"{settings.BUSINESS_NAME} API", lifespan=lifespan)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Inject correlation ID into request context and Sentry."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request with correlation ID tracking."""
        # Reuse a well-formed incoming ID (from the frontend), else mint one
        correlation_id = resolve_correlation_id(request.headers.get("X-Correlation-ID"))
        set_correlation_id(correlation_id)

        # Add to Sentry context
        sentry_sdk.set_tag("correlation_id", correlation_id)

        response = await call_next(request)

        # Include in response headers
        response.headers["X-Correlation-ID"] = correlation_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests with performance monitoring."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log timing information."""
        start_time = time.perf_counter()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        # Warn on slow requests (configurable threshold)
        if duration > settings.SLOW_REQUEST_THRESHOLD:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {duration:.2f}s (threshold: {settings.SLOW_REQUEST_THRESHOLD}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        return response


# Middleware runs in reverse order of registration: locale resolution is
# innermost so redirects are still logged and carry a correlation ID
app.add_middleware(
    LocaleMiddleware,
    supported_locales=settings.SUPPORTED_LOCALES,
    default_locale=settings.DEFAULT_LOCALE,
    cookie_name=settings.LOCALE_COOKIE_NAME,
    cookie_max_age=settings.LOCALE_COOKIE_MAX_AGE,
    secure_cookie=settings.is_production,
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

# Configure CORS from environment settings
# In development, allow all origins for mobile/network testing
cors_origins = ["*"] if settings.ENVIRONMENT == "development" else settings.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True if settings.ENVIRONMENT != "development" else False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "X-Correlation-ID",
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
        "Retry-After",
    ],
)


def _error_content(exc: DomainException, **extra: object) -> dict:
    return {"detail": exc.message, **extra, "correlation_id": exc.correlation_id}


def _log_domain_exception(label: str, request: Request, exc: DomainException) -> None:
    sentry_sdk.set_tag("correlation_id", exc.correlation_id)
    sentry_sdk.set_tag("exception_type", exc.__class__.__name__)
    logger.warning(
        f"{label}: {exc.message}",
        correlation_id=exc.correlation_id,
        exception_type=exc.__class__.__name__,
        path=str(request.url.path),
    )


# Global unhandled exception handler (returns generic 500 and logs details)
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch all unhandled exceptions with full Sentry capture."""
    correlation_id = get_correlation_id() or generate_correlation_id()

    sentry_sdk.set_tag("correlation_id", correlation_id)
    sentry_sdk.capture_exception(exc)

    # Use repr() to escape curly braces in exception message
    # (loguru's .format() interprets them as placeholders otherwise)
    logger.exception(
        f"Unhandled exception: {exc!r}",
        correlation_id=correlation_id,
        path=str(request.url.path),
        method=request.method,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
        },
    )


# Centralized exception handlers
@app.exception_handler(NotFoundException)
async def not_found_exception_handler(
    request: Request, exc: NotFoundException
) -> JSONResponse:
    """Handle not found exceptions with Sentry integration."""
    _log_domain_exception("Not found", request, exc)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND, content=_error_content(exc)
    )


@app.exception_handler(ValidationException)
async def validation_exception_handler(
    request: Request, exc: ValidationException
) -> JSONResponse:
    """Handle validation exceptions, including per-field messages."""
    _log_domain_exception("Validation error", request, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=_error_content(exc, errors=exc.field_errors),
    )


@app.exception_handler(ConflictException)
async def conflict_exception_handler(
    request: Request, exc: ConflictException
) -> JSONResponse:
    """Handle conflict exceptions with Sentry integration."""
    _log_domain_exception("Conflict", request, exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT, content=_error_content(exc)
    )


@app.exception_handler(WeatherServiceUnavailableException)
async def weather_unavailable_exception_handler(
    request: Request, exc: WeatherServiceUnavailableException
) -> JSONResponse:
    """Weather provider not configured or refusing our key."""
    _log_domain_exception("Weather unavailable", request, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_content(
            exc, error=True, message=exc.message, timestamp=utc_now().isoformat()
        ),
    )


@app.exception_handler(TransientStoreException)
async def transient_store_exception_handler(
    request: Request, exc: TransientStoreException
) -> JSONResponse:
    """Datastore temporarily unavailable."""
    _log_domain_exception("Store unavailable", request, exc)
    sentry_sdk.capture_exception(exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_error_content(exc)
    )


@app.exception_handler(NotificationException)
async def notification_exception_handler(
    request: Request, exc: NotificationException
) -> JSONResponse:
    """Email provider refused or failed to deliver."""
    _log_domain_exception("Notification failed", request, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY, content=_error_content(exc)
    )


@app.exception_handler(DomainException)
async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """Handle generic domain exceptions with Sentry integration."""
    _log_domain_exception("Domain exception", request, exc)
    # Capture unexpected domain exceptions
    sentry_sdk.capture_exception(exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_content(exc, type=exc.__class__.__name__),
    )


app.include_router(contact_router.router, prefix="/api")
app.include_router(enrollment_router.router, prefix="/api")
app.include_router(weather_router.router, prefix="/api")
app.include_router(documents_router.router, prefix="/api")
app.include_router(notifications_router.router, prefix="/api")

# Optional admin features: a disabled feature answers 404 under its prefix
include_feature_router(
    app, FeatureFlag.REFERRAL_TRACKER, referrals_router.router, settings, prefix="/api"
)
include_feature_router(
    app, FeatureFlag.RESOURCE_LIBRARY, resources_router.router, settings, prefix="/api"
)


@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


# Catch-all locale routes go last so they never shadow /api paths
app.include_router(pages_router.router)
