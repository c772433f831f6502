# app/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.errors import ConfigError

# Backend/.env, resolved from this file so the cwd does not matter
ENV_FILE = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_FILE, override=False)

DEFAULT_ALLOWED_ORIGINS = ",".join(
    [
        "https://lbarbosadeveloper.github.io",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5500",
        "http://127.0.0.1:5500",
    ]
)

ESTAGIO_MIN = 1
ESTAGIO_MAX = 5
ESTAGIO_DEFAULT = 2


class Settings(BaseSettings):
    # ---- App / Infra ----
    APP_VERSION: str = "1.0.0"
    PORT: int = 3000
    USER_AGENT: str = "radar-operacional/1.0"
    # Comma separated; kept as text so plain env values work
    ALLOWED_ORIGINS: str = DEFAULT_ALLOWED_ORIGINS

    # ---- Cor / estágio (1..5) ----
    ESTAGIO: Optional[str] = None

    # ---- Google News RSS ----
    SEARCH_MAX_ITEMS: int = Field(default=50, ge=1, le=100)
    SEARCH_RESOLVE_PUBLISHERS: bool = True
    SEARCH_LANGUAGE: str = "pt-BR"
    SEARCH_COUNTRY: str = "BR"
    SEARCH_EDITION: str = "BR:pt-419"
    SEARCH_DEFAULT_QUERY: str = "trânsito RJ"
    FEED_TIMEOUT_S: float = 10.0
    RESOLVER_TIMEOUT_S: float = 4.5
    RESOLVER_CONCURRENCY: int = Field(default=3, ge=1)

    # ---- Weather ----
    WEATHER_PROVIDER: Literal["open-meteo", "climatempo"] = "open-meteo"
    WEATHER_TIMEOUT_S: float = 8.0
    WEATHER_ATTEMPTS: int = Field(default=2, ge=1)
    WEATHER_RETRY_PAUSE_S: float = 0.25
    WEATHER_DEFAULT_PLACE: str = "Água Santa • RJ"
    WEATHER_DEFAULT_LAT: float = -22.8776
    WEATHER_DEFAULT_LON: float = -43.3043
    WEATHER_TIMEZONE: str = "America/Sao_Paulo"

    # ---- Climatempo (token provider) ----
    # Not required at class level; the climatempo path validates at runtime.
    CLIMATEMPO_TOKEN: Optional[str] = None
    CLIMATEMPO_LOCALE_ID: Optional[str] = None
    CLIMATEMPO_CITY: str = "Rio de Janeiro"
    CLIMATEMPO_STATE: str = "RJ"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clamp_estagio(raw: Optional[str]) -> int:
    """
    Parse the configured stage indicator and clamp it to 1..5.
    Missing or non-numeric values fall back to the default stage.
    """
    try:
        value = int(float(str(raw).strip())) if raw is not None and str(raw).strip() else ESTAGIO_DEFAULT
    except (ValueError, OverflowError):
        value = ESTAGIO_DEFAULT
    return max(ESTAGIO_MIN, min(ESTAGIO_MAX, value))


def require_climatempo_token(settings: Settings) -> str:
    """
    Runtime check with a clear message when the Climatempo token is missing.
    """
    token = (settings.CLIMATEMPO_TOKEN or "").strip()
    if not token:
        raise ConfigError(
            "CLIMATEMPO_TOKEN ausente. Configure o token no ambiente "
            f"(ou em {ENV_FILE}) para usar o provedor climatempo."
        )
    return token
