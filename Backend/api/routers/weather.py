from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.models.weather_public import WeatherRequest, WeatherResponse
from services.weather_service import WeatherService, get_weather_service

router = APIRouter(tags=["weather"])


@router.get("/weather", response_model=WeatherResponse, response_model_exclude_none=True)
async def weather(
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lon: Optional[float] = Query(default=None, ge=-180, le=180),
    place: Optional[str] = Query(default=None, max_length=120),
    city: Optional[str] = Query(default=None, max_length=120, description="Climatempo only."),
    state: Optional[str] = Query(default=None, max_length=2, description="Climatempo only (UF)."),
    service: WeatherService = Depends(get_weather_service),
) -> WeatherResponse:
    reading = await service.get_weather(
        WeatherRequest(lat=lat, lon=lon, place=place, city=city, state=state)
    )
    return WeatherResponse.from_reading(reading)
