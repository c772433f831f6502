"""
Weather payload normalization.

Both providers end up as ``(condition, min, max)``:
- Open-Meteo reports WMO numeric weather codes → fixed label table.
- Climatempo reports free text under one of several keys → first non-empty wins.

Field lookups are expressed as ordered key paths, so the "which provider shape
is this" decision lives in the path tuples below and nowhere else.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Tuple, Union

from app.core.errors import WeatherParseError

UNKNOWN_CONDITION = "—"

# WMO weather interpretation codes, condensed
_CODE_LABELS: Tuple[Tuple[frozenset, str], ...] = (
    (frozenset({0}), "Céu limpo"),
    (frozenset({1, 2}), "Poucas nuvens"),
    (frozenset({3}), "Nublado"),
    (frozenset({45, 48}), "Neblina"),
    (frozenset({51, 53, 55}), "Garoa"),
    (frozenset({56, 57}), "Garoa congelante"),
    (frozenset({61, 63, 65}), "Chuva"),
    (frozenset({66, 67}), "Chuva congelante"),
    (frozenset({71, 73, 75, 77}), "Neve"),
    (frozenset({80, 81, 82}), "Pancadas de chuva"),
    (frozenset({85, 86}), "Pancadas de neve"),
    (frozenset({95, 96, 99}), "Tempestade"),
)

KeyPath = Tuple[Union[str, int], ...]

# ---- Open-Meteo shapes ------------------------------------------------------

OPEN_METEO_CODE_PATHS: Sequence[KeyPath] = (
    ("current", "weather_code"),
    ("current", "weathercode"),
    ("current_weather", "weathercode"),
)
OPEN_METEO_TEMP_PATHS: Sequence[KeyPath] = (
    ("current", "temperature_2m"),
    ("current_weather", "temperature"),
)
OPEN_METEO_MIN_PATHS: Sequence[KeyPath] = (("daily", "temperature_2m_min", 0),)
OPEN_METEO_MAX_PATHS: Sequence[KeyPath] = (("daily", "temperature_2m_max", 0),)

# ---- Climatempo shapes ------------------------------------------------------

CLIMATEMPO_CONDITION_PATHS: Sequence[KeyPath] = (
    ("data", "condition"),
    ("data", "text"),
    ("data", "text_icon", "text", "pt"),
    ("data", "text_icon", "text", "phrase", "reduced"),
    ("condition",),
    ("text",),
)
CLIMATEMPO_TEMP_PATHS: Sequence[KeyPath] = (
    ("data", "temperature"),
    ("temperature",),
)
# Relative to the first forecast day
CLIMATEMPO_DAY_MIN_PATHS: Sequence[KeyPath] = (
    ("temperature", "min"),
    ("temperature_min",),
    ("min",),
)
CLIMATEMPO_DAY_MAX_PATHS: Sequence[KeyPath] = (
    ("temperature", "max"),
    ("temperature_max",),
    ("max",),
)
CLIMATEMPO_DAY_TEXT_PATHS: Sequence[KeyPath] = (
    ("text_icon", "text", "pt"),
    ("text_icon", "text", "phrase", "reduced"),
)


def condition_from_code(code: Any) -> str:
    """Map a WMO weather code to its label; anything unmapped → UNKNOWN_CONDITION."""
    if isinstance(code, bool) or code is None:
        return UNKNOWN_CONDITION
    if isinstance(code, float):
        if not code.is_integer():
            return UNKNOWN_CONDITION
        code = int(code)
    if not isinstance(code, int):
        return UNKNOWN_CONDITION
    for codes, label in _CODE_LABELS:
        if code in codes:
            return label
    return UNKNOWN_CONDITION


def dig(payload: Any, path: KeyPath) -> Any:
    node = payload
    for key in path:
        if isinstance(key, int):
            if not isinstance(node, (list, tuple)) or len(node) <= key:
                return None
            node = node[key]
        else:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        if node is None:
            return None
    return node


def first_value(payload: Any, paths: Iterable[KeyPath]) -> Any:
    """Value at the first path that resolves to something other than None/""."""
    for path in paths:
        value = dig(payload, path)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def first_number(payload: Any, paths: Iterable[KeyPath]) -> Optional[float]:
    for path in paths:
        value = dig(payload, path)
        if isinstance(value, bool) or value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def condition_from_text(payload: Any, paths: Iterable[KeyPath] = CLIMATEMPO_CONDITION_PATHS) -> str:
    value = first_value(payload, paths)
    if isinstance(value, str):
        return " ".join(value.split())
    return UNKNOWN_CONDITION


def require_min_max(
    payload: Any,
    min_paths: Iterable[KeyPath],
    max_paths: Iterable[KeyPath],
    *,
    provider: str,
) -> Tuple[float, float]:
    """Forecast-day low/high; either one missing fails the whole fetch."""
    low = first_number(payload, min_paths)
    high = first_number(payload, max_paths)
    if low is None or high is None:
        raise WeatherParseError(
            f"{provider}: previsão sem mínima/máxima.",
            details=f"min={low} max={high}",
        )
    return low, high


def normalize_open_meteo(payload: Any) -> Tuple[str, float, float, Optional[float]]:
    if not isinstance(payload, dict):
        raise WeatherParseError("Open-Meteo: resposta inesperada.")
    condition = condition_from_code(first_value(payload, OPEN_METEO_CODE_PATHS))
    low, high = require_min_max(payload, OPEN_METEO_MIN_PATHS, OPEN_METEO_MAX_PATHS, provider="Open-Meteo")
    return condition, low, high, first_number(payload, OPEN_METEO_TEMP_PATHS)


def first_forecast_day(forecast: Any) -> Any:
    """Forecast payloads come as {"data": [...]} or as a bare list of days."""
    days = forecast.get("data") if isinstance(forecast, dict) else forecast
    if isinstance(days, list) and days:
        return days[0]
    return None


def normalize_climatempo(current: Any, forecast: Any) -> Tuple[str, float, float, Optional[float]]:
    day = first_forecast_day(forecast)
    if day is None:
        raise WeatherParseError("Climatempo: previsão vazia.")
    condition = condition_from_text(current)
    if condition == UNKNOWN_CONDITION:
        condition = condition_from_text(day, CLIMATEMPO_DAY_TEXT_PATHS)
    low, high = require_min_max(day, CLIMATEMPO_DAY_MIN_PATHS, CLIMATEMPO_DAY_MAX_PATHS, provider="Climatempo")
    return condition, low, high, first_number(current, CLIMATEMPO_TEMP_PATHS)
