from __future__ import annotations

from fastapi import APIRouter, Depends

from app.config import Settings, clamp_estagio, get_settings

router = APIRouter(prefix="/cor", tags=["cor"])


@router.get("/estagio")
async def get_estagio(settings: Settings = Depends(get_settings)) -> dict:
    """Operational stage (1..5) set through the ESTAGIO environment variable."""
    return {"ok": True, "estagio": clamp_estagio(settings.ESTAGIO)}
