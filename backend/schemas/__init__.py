"""
Pydantic schemas for request/response serialization.

Separate from the market_data value types and routes (HTTP layer).
"""

from schemas.market import (
    CacheWarmResponse,
    CommoditiesResponse,
    IndicesErrorResponse,
    IndicesResponse,
    MarketQuoteOut,
    OverviewResponse,
)

__all__ = [
    "CacheWarmResponse",
    "CommoditiesResponse",
    "IndicesErrorResponse",
    "IndicesResponse",
    "MarketQuoteOut",
    "OverviewResponse",
]
