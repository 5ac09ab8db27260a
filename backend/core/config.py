"""
core/config.py
──────────────
Centralised application settings via ``pydantic-settings``.

All configuration is driven by environment variables (or a ``.env`` file
in the ``backend/`` directory).  ``pydantic-settings`` validates types at
startup, so bad values fail fast with a clear error message.

Usage
-----
    from core.config import get_settings

    settings = get_settings()
    print(settings.INDICES_TTL_SECONDS)
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the backend/ directory so relative .env paths work from any cwd.
_BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables / ``.env`` file.

    Attributes:
        APP_TITLE:               Human-readable API name shown in OpenAPI docs.
        APP_VERSION:             Semantic version string.
        APP_DESCRIPTION:         Short description shown in the OpenAPI UI.
        DEBUG:                   Verbose logging.
        LOG_LEVEL:               Root log level when ``DEBUG`` is off.
        FRONTEND_URL:            Optional deployed frontend origin for CORS.
        INDICES_TTL_SECONDS:     Cache freshness window for indices.
        COMMODITIES_TTL_SECONDS: Cache freshness window for commodities.
        PER_FETCH_TIMEOUT_MS:    Deadline for one upstream quote call.
        MAX_CONCURRENT_FETCHES:  Fan-out cap; unset means one per symbol.
        FETCH_RETRIES:           Extra attempts for transient failures.
        CACHE_WARM_TOKEN:        Bearer token guarding the cache-warm route.
    """

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        # Extra env vars are ignored — don't raise on unexpected keys.
        extra="ignore",
    )

    # ── API metadata ──────────────────────────────────────────────────────
    APP_TITLE: str = "Market Snapshot API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = (
        "Cached market indices and commodities quotes aggregated from "
        "Yahoo Finance."
    )

    # ── Logging ───────────────────────────────────────────────────────────
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── CORS ──────────────────────────────────────────────────────────────
    FRONTEND_URL: str = ""

    # ── Quote cache ───────────────────────────────────────────────────────
    INDICES_TTL_SECONDS: float = Field(default=60.0, gt=0)
    COMMODITIES_TTL_SECONDS: float = Field(default=60.0, gt=0)
    PER_FETCH_TIMEOUT_MS: int = Field(default=5000, gt=0)
    MAX_CONCURRENT_FETCHES: Optional[int] = Field(default=None, ge=1)
    FETCH_RETRIES: int = Field(default=0, ge=0, le=5)

    # ── Cache warming ─────────────────────────────────────────────────────
    CACHE_WARM_TOKEN: Optional[str] = None

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Local dev origins plus the optional ``FRONTEND_URL``."""
        origins: List[str] = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
        if self.FRONTEND_URL:
            origins.append(self.FRONTEND_URL)
        return origins

    @property
    def PER_FETCH_TIMEOUT_SECONDS(self) -> float:
        return self.PER_FETCH_TIMEOUT_MS / 1000.0

    @property
    def EFFECTIVE_LOG_LEVEL(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return a cached ``Settings`` singleton.

    The instance is created (and the ``.env`` file parsed) only once per
    process lifetime, courtesy of ``functools.lru_cache``.

    Returns:
        Settings: Validated application configuration.
    """
    return Settings()
