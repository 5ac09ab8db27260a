"""
app/main.py
────────────
FastAPI application factory.

All business logic lives in ``market_data/`` and ``app/api/v1/endpoints/``.
This file is intentionally slim — it wires together logging, middleware,
routers, and lifecycle events only.

API Layout
----------
GET  /                                Health check
GET  /api/v1/market/indices           Major indices (cached)
GET  /api/v1/market/commodities       Commodity futures (cached)
GET  /api/v1/market/overview          Indices + US session status
POST /api/v1/market/cache/warm        Force-refresh both datasets

OpenAPI docs
------------
- Swagger UI:  http://localhost:8000/docs
- ReDoc:       http://localhost:8000/redoc
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.dependencies import get_commodities_service, get_indices_service
from app.api.v1.router import api_router
from core.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.EFFECTIVE_LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application startup and shutdown logic.

    Startup:  Build both dataset services so a misconfigured catalog fails
              here rather than on the first request.
    Shutdown: Nothing to close — the quote cache is in-memory only.
    """
    logger.info(
        "Starting %s v%s (debug=%s)",
        settings.APP_TITLE,
        settings.APP_VERSION,
        settings.DEBUG,
    )
    try:
        indices = get_indices_service()
        commodities = get_commodities_service()
    except Exception as exc:
        logger.error("Dataset service initialisation failed: %s", exc)
        raise
    logger.info(
        "Serving %d indices (ttl=%gs) and %d commodities (ttl=%gs)",
        len(indices.catalog),
        indices.ttl_seconds,
        len(commodities.catalog),
        commodities.ttl_seconds,
    )

    yield  # ← application runs here

    logger.info("Shutting down %s", settings.APP_TITLE)


# ── App factory ───────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(api_router, prefix="/api/v1")

# ── Root health-check ─────────────────────────────────────────────────────────


@app.get("/", tags=["health"], summary="Health check")
def health_check() -> dict:
    """
    Lightweight liveness probe.

    Returns:
        Status and current API version.
    """
    return {"status": "ok", "version": settings.APP_VERSION}
