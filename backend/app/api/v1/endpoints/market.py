"""
app/api/v1/endpoints/market.py
────────────────────────────────
Market snapshot endpoints.

Routes
------
GET  /api/v1/market/indices       Major US indices (placeholder rows kept).
GET  /api/v1/market/commodities   Futures commodities (price > 0 only).
GET  /api/v1/market/overview      Available indices + US session status.
POST /api/v1/market/cache/warm    Force-refresh both datasets.

Total upstream failure is reported with HTTP 500 and a generic message;
provider details only go to the logs.
"""

import asyncio
import hmac
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from app.api.dependencies import get_commodities_service, get_indices_service
from core.config import Settings, get_settings
from market_data import CommoditiesService, IndicesService, MarketDataError
from market_data.market_hours import market_status
from schemas.market import (
    CacheWarmResponse,
    CacheWarmResults,
    CommoditiesResponse,
    IndicesErrorResponse,
    IndicesResponse,
    MarketQuoteOut,
    MarketStatusOut,
    OverviewResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()

_INDICES_ERROR = "Failed to fetch market indices"
_COMMODITIES_ERROR = "Failed to fetch commodities data"
_OVERVIEW_ERROR = "Failed to fetch market data"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _error_json(model, status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


# ── endpoints ─────────────────────────────────────────────────────────────────


@router.get(
    "/indices",
    response_model=IndicesResponse,
    responses={500: {"model": IndicesErrorResponse}},
    summary="Major market indices",
)
async def get_indices(service: IndicesService = Depends(get_indices_service)):
    """
    Return the S&P 500, Dow Jones, NASDAQ, Russell 2000 and VIX.

    One row per index in catalog order; an index whose quote failed is a
    zero-valued row with ``available: false``.

    Returns:
        Rows plus ``cached`` / ``stale`` flags and the upstream fetch time.
    """
    try:
        result = await service.get_dataset()
    except MarketDataError as exc:
        logger.error("Indices unavailable: %s", exc)
        return _error_json(IndicesErrorResponse(error=_INDICES_ERROR, timestamp=_now()))
    except Exception:
        logger.exception("Unexpected error while serving indices")
        return _error_json(IndicesErrorResponse(error=_INDICES_ERROR, timestamp=_now()))

    return IndicesResponse(
        data=[MarketQuoteOut.from_row(row) for row in result.data],
        cached=result.cached,
        stale=result.stale,
        fetched_at=result.fetched_at,
        timestamp=_now(),
    )


@router.get(
    "/commodities",
    response_model=CommoditiesResponse,
    response_model_exclude_none=True,
    summary="Commodity futures quotes",
)
async def get_commodities(
    service: CommoditiesService = Depends(get_commodities_service),
):
    """
    Return gold, silver, crude, natural gas, copper, platinum, wheat and corn.

    Commodities without a positive price are left out rather than zeroed.
    """
    try:
        result = await service.get_dataset()
    except MarketDataError as exc:
        logger.error("Commodities unavailable: %s", exc)
        return _error_json(
            CommoditiesResponse(commodities=[], error=_COMMODITIES_ERROR, timestamp=_now())
        )
    except Exception:
        logger.exception("Unexpected error while serving commodities")
        return _error_json(
            CommoditiesResponse(commodities=[], error=_COMMODITIES_ERROR, timestamp=_now())
        )

    return CommoditiesResponse(
        commodities=[MarketQuoteOut.from_row(row) for row in result.data if row.price > 0],
        cached=result.cached,
        timestamp=_now(),
    )


@router.get(
    "/overview",
    response_model=OverviewResponse,
    summary="Indices with US market session status",
)
async def get_overview(service: IndicesService = Depends(get_indices_service)):
    """
    Return the indices that currently have a quote, plus whether the US
    regular session is open and when that changes next.
    """
    try:
        result = await service.get_dataset()
    except Exception:
        logger.exception("Error fetching market overview")
        return JSONResponse(status_code=500, content={"error": _OVERVIEW_ERROR})

    return OverviewResponse(
        indices=[MarketQuoteOut.from_row(row) for row in result.data if row.available],
        market_status=MarketStatusOut.from_status(market_status()),
    )


@router.post(
    "/cache/warm",
    response_model=CacheWarmResponse,
    summary="Refresh cached datasets ahead of traffic",
)
async def warm_cache(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    indices: IndicesService = Depends(get_indices_service),
    commodities: CommoditiesService = Depends(get_commodities_service),
) -> CacheWarmResponse:
    """
    Force a refresh of both datasets, e.g. from a scheduler.

    When ``CACHE_WARM_TOKEN`` is configured the request must carry
    ``Authorization: Bearer <token>``.

    Raises:
        HTTPException 401: Missing or wrong bearer token.
    """
    token = settings.CACHE_WARM_TOKEN
    if token and not hmac.compare_digest(
        (authorization or "").encode(), f"Bearer {token}".encode()
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")

    indices_result, commodities_result = await asyncio.gather(
        indices.get_dataset(force=True),
        commodities.get_dataset(force=True),
        return_exceptions=True,
    )

    errors = []
    updated = {}
    for name, outcome in (("indices", indices_result), ("commodities", commodities_result)):
        if isinstance(outcome, BaseException):
            logger.warning("Cache warm failed for %s: %s", name, outcome)
            errors.append(f"Failed to refresh {name}")
            updated[name] = False
        elif outcome.stale:
            errors.append(f"Failed to refresh {name}; previous data kept")
            updated[name] = False
        else:
            updated[name] = True

    logger.info("Cache warm finished: %s", updated)
    return CacheWarmResponse(
        success=not errors,
        message="Cache warming completed",
        results=CacheWarmResults(
            indices_updated=updated["indices"],
            commodities_updated=updated["commodities"],
        ),
        errors=errors,
        timestamp=_now(),
    )
