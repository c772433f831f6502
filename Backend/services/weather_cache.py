from __future__ import annotations

import threading
from typing import Dict, Optional

from app.models.weather_public import WeatherReading


class WeatherCache:
    """
    Single-slot store for the last successful WeatherReading.

    No TTL and no eviction: the slot only changes on the next successful fetch.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reading: Optional[WeatherReading] = None

    def get(self) -> Optional[WeatherReading]:
        with self._lock:
            return self._reading

    def put(self, reading: WeatherReading) -> WeatherReading:
        fresh = reading.model_copy(update={"stale": False, "error": None})
        with self._lock:
            self._reading = fresh
        return fresh

    def stale_copy(self, error: str) -> Optional[WeatherReading]:
        """The cached reading flagged stale with ``error`` attached, or None."""
        cached = self.get()
        if cached is None:
            return None
        return cached.model_copy(update={"stale": True, "error": error})


class LocationIdCache:
    """
    Resolved provider locale ids, keyed by place. Entries are never invalidated.
    """

    def __init__(self, seed: Optional[Dict[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self._ids: Dict[str, str] = dict(seed or {})

    @staticmethod
    def key(city: str, state: str) -> str:
        return f"{city.strip().lower()}|{state.strip().lower()}"

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._ids.get(key)

    def put(self, key: str, locale_id: str) -> None:
        with self._lock:
            self._ids[key] = locale_id
