"""
Weather providers.

- OpenMeteoProvider: token-free, by coordinates, numeric WMO codes.
- ClimatempoProvider: token-based, by city/state, needs a one-time locale lookup.

Each provider performs the upstream calls and hands the raw payloads to
services.weather_normalizer; caching and stale fallback live in WeatherService.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.config import Settings, require_climatempo_token
from app.core.errors import LocationNotFoundError
from app.core.logging import get_logger
from app.models.weather_public import WeatherReading, WeatherRequest
from services.upstream_client import UpstreamClient
from services.weather_cache import LocationIdCache
from services.weather_normalizer import normalize_climatempo, normalize_open_meteo

logger = get_logger().bind(module="weather_providers")

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
CLIMATEMPO_BASE_URL = "http://apiadvisor.climatempo.com.br/api/v1"
CLIMATEMPO_FORECAST_DAYS = 15


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherProvider:
    name = "base"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _client(self, label: str) -> UpstreamClient:
        return UpstreamClient(
            label=label,
            user_agent=self.settings.USER_AGENT,
            timeout_s=self.settings.WEATHER_TIMEOUT_S,
            max_attempts=self.settings.WEATHER_ATTEMPTS,
            retry_pause_s=self.settings.WEATHER_RETRY_PAUSE_S,
        )

    async def fetch(self, request: WeatherRequest) -> WeatherReading:
        raise NotImplementedError


class OpenMeteoProvider(WeatherProvider):
    name = "open-meteo"

    def _params(self, lat: float, lon: float) -> dict[str, Any]:
        return {
            "latitude": lat,
            "longitude": lon,
            "current": "weather_code,temperature_2m",
            "daily": "temperature_2m_min,temperature_2m_max",
            "timezone": self.settings.WEATHER_TIMEZONE,
        }

    async def fetch(self, request: WeatherRequest) -> WeatherReading:
        lat = request.lat if request.lat is not None else self.settings.WEATHER_DEFAULT_LAT
        lon = request.lon if request.lon is not None else self.settings.WEATHER_DEFAULT_LON
        place = request.place or self.settings.WEATHER_DEFAULT_PLACE

        async with self._client("Open-Meteo") as client:
            payload = await client.fetch_json(OPEN_METEO_URL, params=self._params(lat, lon))

        condition, low, high, temp = normalize_open_meteo(payload)
        return WeatherReading(
            place=place,
            condition=condition,
            min=low,
            max=high,
            temp=temp,
            updated_at=_now(),
        )


class ClimatempoProvider(WeatherProvider):
    name = "climatempo"

    def __init__(self, settings: Settings, locale_ids: Optional[LocationIdCache] = None) -> None:
        super().__init__(settings)
        seed = {}
        if settings.CLIMATEMPO_LOCALE_ID:
            seed[LocationIdCache.key(settings.CLIMATEMPO_CITY, settings.CLIMATEMPO_STATE)] = str(
                settings.CLIMATEMPO_LOCALE_ID
            ).strip()
        self.locale_ids = locale_ids or LocationIdCache(seed)
        # one lock per city|state: a slow lookup never blocks other cities
        self._lookup_locks: Dict[str, asyncio.Lock] = {}

    async def _lookup_locale_id(self, client: UpstreamClient, city: str, state: str, token: str) -> str:
        payload = await client.fetch_json(
            f"{CLIMATEMPO_BASE_URL}/locale/city",
            params={"name": city, "state": state, "token": token},
        )
        candidates = payload if isinstance(payload, list) else [payload]
        for candidate in candidates:
            if isinstance(candidate, dict) and candidate.get("id") not in (None, ""):
                return str(candidate["id"])
        raise LocationNotFoundError(f"Climatempo: local não encontrado ({city}/{state}).")

    async def locale_id(self, client: UpstreamClient, city: str, state: str, token: str) -> str:
        """Cache-first; a given city/state is looked up at most once per process."""
        key = LocationIdCache.key(city, state)
        cached = self.locale_ids.get(key)
        if cached:
            return cached
        async with self._lookup_locks.setdefault(key, asyncio.Lock()):
            cached = self.locale_ids.get(key)
            if cached:
                return cached
            locale_id = await self._lookup_locale_id(client, city, state, token)
            self.locale_ids.put(key, locale_id)
            logger.info("climatempo_locale_resolved", city=city, state=state, locale_id=locale_id)
            return locale_id

    async def fetch(self, request: WeatherRequest) -> WeatherReading:
        token = require_climatempo_token(self.settings)
        city = (request.city or self.settings.CLIMATEMPO_CITY).strip()
        state = (request.state or self.settings.CLIMATEMPO_STATE).strip().upper()

        async with self._client("Climatempo") as client:
            locale_id = await self.locale_id(client, city, state, token)
            current = await client.fetch_json(
                f"{CLIMATEMPO_BASE_URL}/weather/locale/{locale_id}/current",
                params={"token": token},
            )
            forecast = await client.fetch_json(
                f"{CLIMATEMPO_BASE_URL}/forecast/locale/{locale_id}/days/{CLIMATEMPO_FORECAST_DAYS}",
                params={"token": token},
            )

        condition, low, high, temp = normalize_climatempo(current, forecast)
        return WeatherReading(
            place=request.place or f"{city} • {state}",
            condition=condition,
            min=low,
            max=high,
            temp=temp,
            updated_at=_now(),
        )
