# -*- coding: utf-8 -*-
"""
Provider Factory — switch between Open-Meteo and Climatempo weather providers
- Settings-driven provider selection (WEATHER_PROVIDER)
- Open-Meteo is the default: no token, no lookup step
"""

from __future__ import annotations

from app.config import Settings
from services.weather_providers import ClimatempoProvider, OpenMeteoProvider, WeatherProvider


def get_weather_provider(settings: Settings) -> WeatherProvider:
    """
    Get the weather provider configured in ``settings``.

    Returns:
        ClimatempoProvider if WEATHER_PROVIDER=climatempo
        OpenMeteoProvider if WEATHER_PROVIDER=open-meteo (default)

    Raises:
        ValueError: If WEATHER_PROVIDER is set to an unsupported value
    """
    provider = (settings.WEATHER_PROVIDER or "open-meteo").lower().strip()

    if provider == "climatempo":
        # the token itself is checked per request so startup never blocks on it
        return ClimatempoProvider(settings)
    if provider == "open-meteo":
        return OpenMeteoProvider(settings)
    raise ValueError(
        f"Unsupported WEATHER_PROVIDER: {provider}. "
        f"Supported values: 'open-meteo', 'climatempo'"
    )
