from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WeatherReading(BaseModel):
    """
    Normalized conditions for one place.
    Only readings with both min and max resolved are ever cached.
    """

    place: str
    condition: str
    min: float
    max: float
    temp: Optional[float] = None
    updated_at: datetime
    stale: bool = False
    error: Optional[str] = None


class WeatherRequest(BaseModel):
    """What the caller asked for; each provider reads the fields it understands."""

    place: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None


class WeatherResponse(BaseModel):
    """Response for GET /weather."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    place: str
    cond: str
    min: float
    max: float
    temp: Optional[float] = None
    updated_at: datetime
    stale: bool = False
    error: Optional[str] = Field(default=None, description="Why a stale reading was served.")

    @classmethod
    def from_reading(cls, reading: WeatherReading) -> "WeatherResponse":
        return cls(
            place=reading.place,
            cond=reading.condition,
            min=reading.min,
            max=reading.max,
            temp=reading.temp,
            updated_at=reading.updated_at,
            stale=reading.stale,
            error=reading.error,
        )
