"""
Weather orchestration: provider fetch → cache update, with stale fallback.

On success the fresh reading replaces the cached one. On an upstream failure
the last good reading is served flagged ``stale`` with the error attached; with
nothing cached the failure propagates. Configuration errors always propagate.
"""

from __future__ import annotations

from typing import Optional

from app.config import Settings, get_settings
from app.core.errors import UpstreamError
from app.core.logging import get_logger
from app.models.weather_public import WeatherReading, WeatherRequest
from app.services.provider_factory import get_weather_provider
from services.weather_cache import WeatherCache
from services.weather_providers import WeatherProvider

logger = get_logger().bind(module="weather_service")


class WeatherService:
    def __init__(self, provider: WeatherProvider, cache: Optional[WeatherCache] = None) -> None:
        self.provider = provider
        self.cache = cache or WeatherCache()

    async def get_weather(self, request: WeatherRequest) -> WeatherReading:
        try:
            reading = await self.provider.fetch(request)
        except UpstreamError as exc:
            stale = self.cache.stale_copy(exc.message)
            if stale is None:
                logger.warning(
                    "weather_fetch_failed_no_cache",
                    provider=self.provider.name,
                    error=exc.message,
                )
                raise
            logger.warning(
                "weather_served_stale",
                provider=self.provider.name,
                error=exc.message,
                cached_at=stale.updated_at.isoformat(),
            )
            return stale

        fresh = self.cache.put(reading)
        logger.info(
            "weather_fetch_success",
            provider=self.provider.name,
            place=fresh.place,
            condition=fresh.condition,
        )
        return fresh


# Global instance
_weather_service: Optional[WeatherService] = None


def build_weather_service(settings: Settings) -> WeatherService:
    return WeatherService(get_weather_provider(settings))


def get_weather_service() -> WeatherService:
    """Get or create the global weather service (and its cache)."""
    global _weather_service
    if _weather_service is None:
        _weather_service = build_weather_service(get_settings())
    return _weather_service
