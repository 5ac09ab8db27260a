"""
app/api/dependencies.py
───────────────────────
FastAPI dependency functions shared across all endpoints.

This is the composition root for the quote layer: one ``CacheStore`` and one
``AggregationEngine`` per process, handed to both dataset services at
construction.  Each factory is memoised with ``functools.lru_cache``.

Usage
-----
    from app.api.dependencies import get_indices_service

    @router.get("/foo")
    async def my_route(service = Depends(get_indices_service)):
        ...

Tests swap the services through ``app.dependency_overrides``.
"""

from functools import lru_cache

from core.config import get_settings
from market_data import (
    AggregationEngine,
    CacheStore,
    CommoditiesService,
    IndicesService,
    QuoteClient,
    YFinanceQuoteFetcher,
)
from market_data.client import DEFAULT_MAX_WORKERS


@lru_cache(maxsize=1)
def get_cache_store() -> CacheStore:
    """Return the process-wide cache store."""
    return CacheStore()


@lru_cache(maxsize=1)
def get_quote_client() -> QuoteClient:
    """Return the Yahoo Finance quote client with the configured deadline."""
    settings = get_settings()
    return QuoteClient(
        YFinanceQuoteFetcher(),
        timeout_seconds=settings.PER_FETCH_TIMEOUT_SECONDS,
        max_workers=settings.MAX_CONCURRENT_FETCHES or DEFAULT_MAX_WORKERS,
    )


@lru_cache(maxsize=1)
def get_aggregation_engine() -> AggregationEngine:
    settings = get_settings()
    return AggregationEngine(
        get_quote_client(),
        max_concurrency=settings.MAX_CONCURRENT_FETCHES,
        retries=settings.FETCH_RETRIES,
    )


@lru_cache(maxsize=1)
def get_indices_service() -> IndicesService:
    """
    Return the indices dataset service.

    Raises:
        EmptyCatalogError: Misconfigured catalog (surfaces at startup).
    """
    return IndicesService(
        get_cache_store(),
        get_aggregation_engine(),
        ttl_seconds=get_settings().INDICES_TTL_SECONDS,
    )


@lru_cache(maxsize=1)
def get_commodities_service() -> CommoditiesService:
    """
    Return the commodities dataset service.

    Raises:
        EmptyCatalogError: Misconfigured catalog (surfaces at startup).
    """
    return CommoditiesService(
        get_cache_store(),
        get_aggregation_engine(),
        ttl_seconds=get_settings().COMMODITIES_TTL_SECONDS,
    )
