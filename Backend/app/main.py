# Backend/app/main.py
from __future__ import annotations

# --- ensure project root is on sys.path so `api.*`, `app.*` and `services.*` import ---
import sys
from pathlib import Path
THIS_FILE = Path(__file__).resolve()
BACKEND_ROOT = THIS_FILE.parents[1]  # .../Backend
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))
# -------------------------------------------------------------------------

import time
import uuid
from typing import Dict, Optional

from fastapi import FastAPI, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from app.config import get_settings
from app.core.errors import RadarError, truncate_details
from app.core.logging import configure_logging, logger
from app.core.request_id import clear_request_id, set_request_id

from api.routers.cor import router as cor_router
from api.routers.search import router as search_router
from api.routers.weather import router as weather_router

configure_logging(service_name="radar-api")

settings = get_settings()
ALLOWED_ORIGINS = settings.allowed_origins
STARTED_AT = time.monotonic()

app = FastAPI(
    title="Radar Operacional - API",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url=None,
)


def _cors_headers(origin: Optional[str]) -> Dict[str, str]:
    if origin and origin in ALLOWED_ORIGINS:
        return {
            "Access-Control-Allow-Origin": origin,
            "Vary": "Origin",
        }
    return {}


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_request_id(req_id)

        logger.info("request_started", method=request.method, path=str(request.url.path))
        try:
            response: StarletteResponse = await call_next(request)
        except Exception as exc:
            logger.error("request_exception", error=str(exc.__class__.__name__))
            clear_request_id()
            raise
        logger.info("request_ended", status_code=response.status_code)
        response.headers["X-Request-Id"] = req_id
        clear_request_id()
        return response


# --- CORS ---
# Wraps handler errors too; the 500 handler sets its own headers since it runs outside.
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "OPTIONS", "HEAD"],
    allow_headers=["*"],
    expose_headers=["X-Request-Id"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(RadarError)
async def radar_error_handler(request: Request, exc: RadarError) -> JSONResponse:
    origin = request.headers.get("origin")
    logger.warning(
        "request_failed",
        error_type=exc.__class__.__name__,
        error=exc.message,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=_cors_headers(origin))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    origin = request.headers.get("origin")
    return JSONResponse(
        status_code=422,
        content={"ok": False, "error": "Parâmetros inválidos.", "details": truncate_details(exc.errors())},
        headers=_cors_headers(origin),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    origin = request.headers.get("origin")
    logger.exception("unhandled_exception", exc_info=True)
    return JSONResponse(status_code=500, content={"ok": False, "error": "Erro interno."}, headers=_cors_headers(origin))


# --- Health endpoints ---
@app.get("/health")
async def health():
    return {"ok": True, "uptime": round(time.monotonic() - STARTED_AT, 1)}

@app.head("/health")
async def health_head():
    return Response(status_code=200)

# --- Universal preflight ---
@app.options("/{rest_of_path:path}")
async def any_preflight(rest_of_path: str) -> Response:
    return Response(status_code=204)


app.include_router(cor_router)
app.include_router(search_router)
app.include_router(weather_router)

logger.info("routers_registered", routers=["cor", "search", "weather"])


if __name__ == "__main__":
    import uvicorn

    logger.info("api_started", port=settings.PORT, weather_provider=settings.WEATHER_PROVIDER)
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
