"""
Pydantic schemas for the market snapshot endpoints.

Field names are snake_case in Python and camelCase on the wire
(``changePercent``, ``previousClose``) to match the dashboard widgets.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from market_data.market_hours import MarketStatus
from market_data.models import MarketQuote


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MarketQuoteOut(_CamelModel):
    """One display row (index or commodity)."""

    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    previous_close: Optional[float] = None
    timestamp: datetime
    available: bool = True

    @classmethod
    def from_row(cls, row: MarketQuote) -> "MarketQuoteOut":
        return cls(
            symbol=row.symbol,
            name=row.name,
            price=row.price,
            change=row.change,
            change_percent=row.change_percent,
            previous_close=row.previous_close,
            timestamp=row.timestamp,
            available=row.available,
        )


class IndicesResponse(_CamelModel):
    success: bool = True
    data: List[MarketQuoteOut]
    cached: bool
    stale: bool = False
    fetched_at: datetime
    timestamp: datetime


class IndicesErrorResponse(_CamelModel):
    success: bool = False
    error: str
    timestamp: datetime


class CommoditiesResponse(_CamelModel):
    commodities: List[MarketQuoteOut]
    cached: bool = False
    error: Optional[str] = None
    timestamp: datetime


class MarketStatusOut(_CamelModel):
    status: str
    next_change: str
    timestamp: datetime

    @classmethod
    def from_status(cls, status: MarketStatus) -> "MarketStatusOut":
        return cls(
            status=status.status,
            next_change=status.next_change,
            timestamp=status.timestamp,
        )


class OverviewResponse(_CamelModel):
    indices: List[MarketQuoteOut]
    market_status: MarketStatusOut


class CacheWarmResults(_CamelModel):
    indices_updated: bool
    commodities_updated: bool


class CacheWarmResponse(_CamelModel):
    success: bool
    message: str
    results: CacheWarmResults
    errors: List[str] = Field(default_factory=list)
    timestamp: datetime
