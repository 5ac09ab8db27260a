"""
market_data/models.py
──────────────────────
Immutable value types passed between the fetcher, the aggregation engine,
the cache store and the dataset services.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from market_data.errors import UpstreamError, UpstreamErrorKind


@dataclass(frozen=True)
class Symbol:
    """
    One instrument tracked by a catalog.

    Attributes:
        ticker: Upstream identifier (e.g. ``"^GSPC"``, ``"GC=F"``).
        name:   Human-readable name (``"S&P 500"``).
        code:   Short display code (``"SPX"``, ``"GC"``).
    """

    ticker: str
    name: str
    code: str


@dataclass(frozen=True)
class Quote:
    """A normalized quote for one ticker, as of ``fetched_at``."""

    ticker: str
    price: float
    change: float
    change_percent: float
    fetched_at: datetime
    previous_close: Optional[float] = None


@dataclass(frozen=True)
class QuoteOk:
    symbol: Symbol
    quote: Quote

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class QuoteFailed:
    symbol: Symbol
    error: UpstreamError
    failed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> UpstreamErrorKind:
        return self.error.kind


QuoteFetchOutcome = Union[QuoteOk, QuoteFailed]


@dataclass(frozen=True)
class CacheEntry:
    """
    A populated cache slot.

    ``stored_at`` is read from the store's monotonic clock and drives
    freshness; ``fetched_at`` is the wall-clock time reported to clients.
    """

    payload: Any
    fetched_at: datetime
    stored_at: float
    ttl: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_fresh(self, now: float) -> bool:
        return self.age(now) < self.ttl


@dataclass(frozen=True)
class CacheResult:
    payload: Any
    cached: bool
    fetched_at: datetime


@dataclass(frozen=True)
class MarketQuote:
    """
    Display record for one catalog row.

    Placeholder rows (failed fetches under the placeholder policy) carry
    zero values and ``available=False``.
    """

    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    timestamp: datetime
    previous_close: Optional[float] = None
    available: bool = True


@dataclass(frozen=True)
class DatasetResult:
    """
    What a dataset service hands back to the HTTP layer.

    Attributes:
        data:       Ordered display rows.
        cached:     ``True`` when this caller did not trigger the fetch.
        fetched_at: When the served payload was fetched upstream.
        stale:      ``True`` when a refresh failed and the last-known-good
                    payload (older than its TTL) was served instead.
    """

    data: List[MarketQuote]
    cached: bool
    fetched_at: datetime
    stale: bool = False
