"""
market_data/datasets.py
────────────────────────
Dataset services — the single entry point the HTTP layer uses for market
snapshots.

Workflow (per ``get_dataset`` call)
-----------------------------------
1. Ask the shared :class:`CacheStore` for the dataset key.
2. On a miss, fan out over the catalog with the :class:`AggregationEngine`.
3. Map outcomes to display rows according to the dataset's
   :class:`FailurePolicy`.
4. If the refresh fails outright, serve the last-known-good payload (marked
   ``stale``) when there is one; otherwise re-raise.

Failure policies
----------------
- Indices keep one row per catalog symbol.  A failed symbol becomes a
  zero-valued placeholder with ``available=False`` so the UI layout never
  shifts.
- Commodities drop failed symbols and any row whose price is not positive.
  A round with nothing left is treated as a total failure.
"""

import logging
from enum import Enum
from typing import ClassVar, List, Sequence, Tuple

from market_data.aggregator import AggregationEngine
from market_data.cache import CacheStore
from market_data.catalogs import COMMODITIES, INDICES
from market_data.errors import AllFailedError, EmptyCatalogError
from market_data.models import (
    DatasetResult,
    MarketQuote,
    QuoteFailed,
    QuoteFetchOutcome,
    QuoteOk,
    Symbol,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


class FailurePolicy(str, Enum):
    """What happens to a catalog row whose fetch failed."""

    PLACEHOLDER = "placeholder"
    DROP = "drop"


class DatasetService:
    """
    Cached snapshot of one catalog.

    Subclasses set ``name``, ``cache_key``, ``catalog``, ``failure_policy``
    and ``display_field`` (``"ticker"`` or ``"code"``).

    Args:
        cache:       Store shared by all dataset services.
        engine:      Aggregation engine used on cache misses.
        ttl_seconds: Freshness window for this dataset.

    Raises:
        EmptyCatalogError: The catalog has no symbols.
    """

    name: ClassVar[str]
    cache_key: ClassVar[str]
    catalog: ClassVar[Tuple[Symbol, ...]] = ()
    failure_policy: ClassVar[FailurePolicy]
    display_field: ClassVar[str] = "ticker"

    def __init__(
        self,
        cache: CacheStore,
        engine: AggregationEngine,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ) -> None:
        if not self.catalog:
            raise EmptyCatalogError(f"{type(self).__name__} has an empty catalog")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._cache = cache
        self._engine = engine
        self.ttl_seconds = ttl_seconds

    # ── public API ────────────────────────────────────────────────────────

    async def get_dataset(self, *, force: bool = False) -> DatasetResult:
        """
        Return the dataset, from cache when fresh.

        Args:
            force: Refresh even if the cached entry is still fresh.

        Returns:
            :class:`DatasetResult` with ordered rows and cache flags.

        Raises:
            AllFailedError: The refresh failed and nothing was cached before.
        """
        try:
            result = await self._cache.get_or_populate(
                self.cache_key, self.ttl_seconds, self._populate, force=force
            )
        except AllFailedError:
            previous = self._cache.peek(self.cache_key)
            if previous is None:
                logger.error("No %s data available and nothing cached", self.name)
                raise
            logger.warning(
                "Serving stale %s data fetched at %s",
                self.name,
                previous.fetched_at.isoformat(),
            )
            return DatasetResult(
                data=previous.payload,
                cached=True,
                fetched_at=previous.fetched_at,
                stale=True,
            )

        return DatasetResult(
            data=result.payload, cached=result.cached, fetched_at=result.fetched_at
        )

    # ── private helpers ───────────────────────────────────────────────────

    async def _populate(self) -> List[MarketQuote]:
        outcomes = await self._engine.fetch_all(self.catalog)
        rows = self.to_rows(outcomes)
        if not rows:
            raise AllFailedError(f"no usable {self.name} quotes", outcomes)
        return rows

    def to_rows(self, outcomes: Sequence[QuoteFetchOutcome]) -> List[MarketQuote]:
        """Map engine outcomes to display rows under this dataset's policy."""
        rows: List[MarketQuote] = []
        for outcome in outcomes:
            if isinstance(outcome, QuoteOk):
                row = self._row(outcome)
                if self.failure_policy is FailurePolicy.DROP and row.price <= 0:
                    continue
                rows.append(row)
            elif self.failure_policy is FailurePolicy.PLACEHOLDER:
                rows.append(self._placeholder(outcome))
        return rows

    def _display_symbol(self, symbol: Symbol) -> str:
        return getattr(symbol, self.display_field)

    def _row(self, outcome: QuoteOk) -> MarketQuote:
        quote = outcome.quote
        return MarketQuote(
            symbol=self._display_symbol(outcome.symbol),
            name=outcome.symbol.name,
            price=quote.price,
            change=quote.change,
            change_percent=quote.change_percent,
            previous_close=quote.previous_close,
            timestamp=quote.fetched_at,
        )

    def _placeholder(self, outcome: QuoteFailed) -> MarketQuote:
        return MarketQuote(
            symbol=self._display_symbol(outcome.symbol),
            name=outcome.symbol.name,
            price=0.0,
            change=0.0,
            change_percent=0.0,
            previous_close=None,
            timestamp=outcome.failed_at,
            available=False,
        )


class IndicesService(DatasetService):
    """Major US indices; failed symbols stay as placeholder rows."""

    name = "indices"
    cache_key = "indices:major"
    catalog = INDICES
    failure_policy = FailurePolicy.PLACEHOLDER
    display_field = "ticker"


class CommoditiesService(DatasetService):
    """Futures commodities; failed and non-positive rows are dropped."""

    name = "commodities"
    cache_key = "commodities"
    catalog = COMMODITIES
    failure_policy = FailurePolicy.DROP
    display_field = "code"
