"""Weather widget router."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from helpers.rate_limiter import limiter
from models.schemas import WeatherResponse
from services.weather_service import WeatherService, WeatherSource

router = APIRouter(prefix="/weather", tags=["weather"])

FALLBACK_MAX_AGE = 60


def get_weather_service(request: Request) -> WeatherService:
    """Weather service bound to the application's cache."""
    return WeatherService(request.app.state.weather_cache)


@router.get("", response_model=WeatherResponse, responses={503: {}})
@limiter.limit("20/5 minutes")
async def get_weather(
    request: Request,
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lon: Optional[float] = Query(default=None, ge=-180, le=180),
    units: Literal["imperial", "metric", "standard"] = "imperial",
    service: WeatherService = Depends(get_weather_service),
) -> JSONResponse:
    """Current conditions and a short forecast (defaults to the center's location).

    Upstream failures return fallback data with `X-Fallback: true` rather
    than an error. Rate limited to 20 requests per 5 minutes per IP.

    Raises:
        WeatherServiceUnavailableException: 503 when the API key is missing
            or rejected (handled by global exception handler).
    """
    result = await service.get_weather(lat, lon, units)
    content = result.data.model_dump(mode="json")
    ttl = int(service.cache.ttl_seconds)

    if result.source == WeatherSource.FALLBACK:
        headers = {
            "X-Fallback": "true",
            "Cache-Control": f"public, max-age={FALLBACK_MAX_AGE}",
        }
    elif result.source == WeatherSource.CACHE:
        headers = {
            "X-Cache": "HIT",
            "X-Cache-Age": f"{result.cache_age or 0:.1f}",
            "Cache-Control": f"public, max-age={ttl}",
        }
    else:
        headers = {"X-Cache": "MISS", "Cache-Control": f"public, max-age={ttl}"}

    return JSONResponse(content=content, headers=headers)
