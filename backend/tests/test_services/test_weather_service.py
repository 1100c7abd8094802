"""Tests for the weather cache and WeatherService."""

import httpx
import pytest

from models.config import Settings
from models.exceptions import WeatherServiceUnavailableException
from services.weather_service import (
    WeatherCache,
    WeatherService,
    WeatherSource,
    build_cache_key,
)

CURRENT = {
    "coord": {"lat": 41.98, "lon": -88.08},
    "weather": [{"main": "Clouds", "description": "scattered clouds", "icon": "03d"}],
    "main": {
        "temp": 71.6,
        "feels_like": 70.2,
        "temp_min": 68.4,
        "temp_max": 74.5,
        "pressure": 1015,
        "humidity": 55,
    },
    "wind": {"speed": 7.4, "deg": 220},
    "clouds": {"all": 40},
    "visibility": 10000,
    "sys": {"country": "US", "sunrise": 1736946000, "sunset": 1736981000},
    "name": "Roselle",
}

FORECAST = {
    "list": [
        {
            "dt": 1736956800 + i * 10800,
            "main": {"temp": 70 + i},
            "weather": [{"description": "light rain", "icon": "10d"}],
            "pop": 0.35,
        }
        for i in range(8)
    ]
}


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _settings(api_key: str = "owm-test-key") -> Settings:
    return Settings(OPENWEATHER_API_KEY=api_key)


def _service(handler, cache: WeatherCache | None = None, api_key: str = "owm-test-key"):
    return WeatherService(
        cache if cache is not None else WeatherCache(600),
        _settings(api_key),
        transport=httpx.MockTransport(handler),
    )


def _ok_handler(calls: list[str] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url.path)
        if request.url.path.endswith("/forecast"):
            return httpx.Response(200, json=FORECAST)
        return httpx.Response(200, json=CURRENT)

    return handler


class TestWeatherCache:
    """Tests for WeatherCache TTL behavior."""

    def test_hit_within_ttl(self) -> None:
        """Entries younger than the TTL are returned with their age."""
        clock = FakeClock()
        cache = WeatherCache(600, clock=clock)
        cache.set("k", "value")  # type: ignore[arg-type]

        clock.now += 599
        assert cache.get("k") == ("value", 599)

    def test_miss_at_ttl(self) -> None:
        """An entry exactly TTL old is a miss."""
        clock = FakeClock()
        cache = WeatherCache(600, clock=clock)
        cache.set("k", "value")  # type: ignore[arg-type]

        clock.now += 600
        assert cache.get("k") is None

    def test_purges_entries_older_than_twice_ttl(self) -> None:
        """Writing a new entry drops entries past 2x TTL."""
        clock = FakeClock()
        cache = WeatherCache(600, clock=clock)
        cache.set("old", "a")  # type: ignore[arg-type]
        clock.now += 1000
        cache.set("mid", "b")  # type: ignore[arg-type]
        assert len(cache) == 2

        clock.now += 300
        cache.set("new", "c")  # type: ignore[arg-type]

        assert len(cache) == 2
        assert cache.get("old") is None

    def test_clear(self) -> None:
        """clear empties the cache."""
        cache = WeatherCache(600)
        cache.set("k", "value")  # type: ignore[arg-type]
        cache.clear()
        assert len(cache) == 0

    def test_cache_key_rounds_coordinates(self) -> None:
        """Keys use 4 decimal places and include units."""
        assert build_cache_key(41.98481234, -88.0776, "metric") == (
            "weather:41.9848:-88.0776:metric"
        )


class TestWeatherService:
    """Tests for WeatherService.get_weather."""

    @pytest.mark.asyncio
    async def test_live_fetch_parses_and_caches(self) -> None:
        """A live lookup is parsed, rounded and cached."""
        calls: list[str] = []
        cache = WeatherCache(600)
        service = _service(_ok_handler(calls), cache)

        result = await service.get_weather(41.98, -88.08, "imperial")

        assert result.source == WeatherSource.LIVE
        assert result.data.current.temp == 72
        assert result.data.current.description == "scattered clouds"
        assert result.data.current.sunrise == 1736946000 * 1000
        assert result.data.location.name == "Roselle"
        assert len(result.data.forecast) == 4
        assert result.data.forecast[0].pop == 35
        assert calls == ["/data/2.5/weather", "/data/2.5/forecast"]
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self) -> None:
        """A fresh cache entry avoids the upstream call."""
        calls: list[str] = []
        service = _service(_ok_handler(calls))

        await service.get_weather(41.98, -88.08)
        result = await service.get_weather(41.98, -88.08)

        assert result.source == WeatherSource.CACHE
        assert result.data.cached is True
        assert result.cache_age is not None
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_defaults_to_center_location(self) -> None:
        """Without coordinates the configured location is used."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _ok_handler()(request)

        await _service(handler).get_weather()

        assert seen[0].url.params["lat"] == "41.9848"
        assert seen[0].url.params["appid"] == "owm-test-key"

    @pytest.mark.asyncio
    async def test_missing_api_key(self) -> None:
        """No key means the service is unavailable."""
        service = _service(_ok_handler(), api_key="")

        with pytest.raises(WeatherServiceUnavailableException):
            await service.get_weather()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 429])
    async def test_rejected_key_or_rate_limit(self, status_code: int) -> None:
        """401 and 429 from the provider are reported as unavailable."""
        service = _service(lambda request: httpx.Response(status_code))

        with pytest.raises(WeatherServiceUnavailableException):
            await service.get_weather()

    @pytest.mark.asyncio
    async def test_upstream_error_uses_fallback(self) -> None:
        """Server errors degrade to fallback data that is not cached."""
        cache = WeatherCache(600)
        service = _service(lambda request: httpx.Response(500), cache)

        result = await service.get_weather()

        assert result.source == WeatherSource.FALLBACK
        assert result.data.error is True
        assert result.data.message == "Using fallback weather data"
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_network_error_uses_fallback(self) -> None:
        """Connection failures degrade to fallback data."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        result = await _service(handler).get_weather()

        assert result.source == WeatherSource.FALLBACK

    @pytest.mark.asyncio
    async def test_malformed_payload_uses_fallback(self) -> None:
        """Unexpected JSON shapes degrade to fallback data."""
        result = await _service(
            lambda request: httpx.Response(200, json={"unexpected": True})
        ).get_weather()

        assert result.source == WeatherSource.FALLBACK

    @pytest.mark.asyncio
    async def test_forecast_failure_keeps_current(self) -> None:
        """A failing forecast call still returns current conditions."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/forecast"):
                return httpx.Response(503)
            return httpx.Response(200, json=CURRENT)

        result = await _service(handler).get_weather()

        assert result.source == WeatherSource.LIVE
        assert result.data.forecast == []
