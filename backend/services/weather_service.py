"""
Weather widget data from OpenWeatherMap.

Responses are cached per location and units in a WeatherCache owned by the
application (created in the lifespan, cleared on shutdown). Upstream
failures degrade to fixed fallback data; a missing or rejected API key is
reported as WeatherServiceUnavailableException.
"""

import enum
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from loguru import logger

from helpers.time_utils import utc_now
from models.config import Settings, settings
from models.exceptions import WeatherServiceUnavailableException
from models.schemas import (
    WeatherCurrent,
    WeatherForecastItem,
    WeatherLocation,
    WeatherResponse,
)

FORECAST_SLOTS = 4


class WeatherCache:
    """
    In-memory TTL cache for weather responses.

    Entries older than the TTL are misses; entries older than twice the TTL
    are purged whenever a new entry is written.
    """

    def __init__(
        self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, WeatherResponse]] = {}

    def get(self, key: str) -> Optional[tuple[WeatherResponse, float]]:
        """Return (response, age in seconds) for a fresh entry, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        age = self._clock() - stored_at
        if age >= self.ttl_seconds:
            return None
        return value, age

    def set(self, key: str, value: WeatherResponse) -> None:
        self._entries[key] = (self._clock(), value)
        self.purge_expired()

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [
            key
            for key, (stored_at, _) in self._entries.items()
            if now - stored_at > self.ttl_seconds * 2
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class WeatherSource(str, enum.Enum):
    LIVE = "live"
    CACHE = "cache"
    FALLBACK = "fallback"


@dataclass
class WeatherResult:
    data: WeatherResponse
    source: WeatherSource
    cache_age: Optional[float] = None


def build_cache_key(lat: float, lon: float, units: str) -> str:
    return f"weather:{lat:.4f}:{lon:.4f}:{units}"


class WeatherService:
    """Fetches current conditions and a short forecast."""

    def __init__(
        self,
        cache: WeatherCache,
        app_settings: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cache = cache
        self.api_key = app_settings.OPENWEATHER_API_KEY
        self.base_url = app_settings.OPENWEATHER_BASE_URL.rstrip("/")
        self.timeout = app_settings.WEATHER_TIMEOUT_SECONDS
        self.default_lat = app_settings.WEATHER_DEFAULT_LAT
        self.default_lon = app_settings.WEATHER_DEFAULT_LON
        self.default_city = app_settings.WEATHER_DEFAULT_CITY
        self._transport = transport

    async def get_weather(
        self,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        units: str = "imperial",
    ) -> WeatherResult:
        """
        Get weather for a location, from cache when fresh.

        Raises:
            WeatherServiceUnavailableException: No API key, or the provider
                rejected the key or rate limited us.
        """
        if not self.api_key:
            logger.error("OpenWeatherMap API key not configured")
            raise WeatherServiceUnavailableException()

        lat = self.default_lat if lat is None else lat
        lon = self.default_lon if lon is None else lon
        cache_key = build_cache_key(lat, lon, units)

        cached = self.cache.get(cache_key)
        if cached is not None:
            data, age = cached
            return WeatherResult(
                data=data.model_copy(update={"cached": True}),
                source=WeatherSource.CACHE,
                cache_age=age,
            )

        try:
            data = await self._fetch(lat, lon, units)
        except WeatherServiceUnavailableException:
            raise
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Weather API error, using fallback data: {e!r}")
            return WeatherResult(data=self.fallback_weather(), source=WeatherSource.FALLBACK)

        self.cache.set(cache_key, data)
        return WeatherResult(data=data, source=WeatherSource.LIVE)

    async def _fetch(self, lat: float, lon: float, units: str) -> WeatherResponse:
        params = {"lat": lat, "lon": lon, "units": units, "appid": self.api_key}

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            current_response = await client.get(f"{self.base_url}/weather", params=params)
            if current_response.status_code == 401:
                logger.error("Invalid OpenWeatherMap API key")
                raise WeatherServiceUnavailableException(
                    "Weather service authentication failed"
                )
            if current_response.status_code == 429:
                raise WeatherServiceUnavailableException(
                    "Weather service rate limit exceeded"
                )
            current_response.raise_for_status()
            current = current_response.json()

            forecast: list[dict[str, Any]] = []
            try:
                forecast_response = await client.get(
                    f"{self.base_url}/forecast", params={**params, "cnt": 8}
                )
                if forecast_response.is_success:
                    forecast = forecast_response.json().get("list", [])
            except httpx.HTTPError as e:
                logger.warning(f"Weather forecast unavailable: {e!r}")

        return self._parse(current, forecast)

    def _parse(
        self, current: dict[str, Any], forecast: list[dict[str, Any]]
    ) -> WeatherResponse:
        main = current["main"]
        weather = current["weather"][0]
        wind = current.get("wind", {})
        sys = current.get("sys", {})
        coord = current.get("coord", {})

        return WeatherResponse(
            current=WeatherCurrent(
                temp=round(main["temp"]),
                feels_like=round(main["feels_like"]),
                temp_min=round(main["temp_min"]),
                temp_max=round(main["temp_max"]),
                pressure=main.get("pressure"),
                humidity=main["humidity"],
                description=weather["description"],
                icon=weather["icon"],
                main=weather["main"],
                wind_speed=round(wind.get("speed", 0)),
                wind_deg=wind.get("deg"),
                clouds=current.get("clouds", {}).get("all"),
                visibility=current.get("visibility"),
                sunrise=sys["sunrise"] * 1000 if "sunrise" in sys else None,
                sunset=sys["sunset"] * 1000 if "sunset" in sys else None,
            ),
            location=WeatherLocation(
                name=current.get("name") or self.default_city,
                country=sys.get("country", "US"),
                lat=coord.get("lat"),
                lon=coord.get("lon"),
            ),
            forecast=[
                WeatherForecastItem(
                    dt=item["dt"] * 1000,
                    temp=round(item["main"]["temp"]),
                    description=item["weather"][0]["description"],
                    icon=item["weather"][0]["icon"],
                    pop=round((item.get("pop") or 0) * 100),
                )
                for item in forecast[:FORECAST_SLOTS]
            ],
            timestamp=utc_now(),
        )

    def fallback_weather(self) -> WeatherResponse:
        return WeatherResponse(
            current=WeatherCurrent(
                temp=72,
                feels_like=70,
                temp_min=68,
                temp_max=76,
                humidity=60,
                description="Weather data temporarily unavailable",
                icon="01d",
                main="Clear",
                wind_speed=5,
            ),
            location=WeatherLocation(name=self.default_city, country="US"),
            forecast=[],
            timestamp=utc_now(),
            error=True,
            message="Using fallback weather data",
        )
