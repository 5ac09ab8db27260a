"""
market_data/aggregator.py
──────────────────────────
Concurrent fan-out over a symbol catalog with per-symbol failure isolation.

Workflow (per ``fetch_all`` call)
---------------------------------
1. Reject an empty catalog (``EmptyCatalogError``).
2. Start one fetch per symbol, at most ``max_concurrency`` in flight.
3. Turn every ``UpstreamError`` into a ``QuoteFailed`` for that position;
   sibling fetches keep going.
4. Return outcomes in catalog order, or raise ``AllFailedError`` when not a
   single symbol succeeded.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from market_data.client import QuoteClient
from market_data.errors import AllFailedError, EmptyCatalogError, UpstreamError
from market_data.models import QuoteFailed, QuoteFetchOutcome, QuoteOk, Symbol

logger = logging.getLogger(__name__)


class AggregationEngine:
    """
    Fetch a whole catalog, one outcome per symbol.

    Args:
        client:          Single-symbol quote client.
        max_concurrency: Cap on in-flight fetches.  ``None`` means one slot
                         per catalog symbol.
        retries:         Extra attempts per symbol per round for transient
                         failures (timeout, rate limit, unknown).

    Example:
        >>> engine = AggregationEngine(QuoteClient(YFinanceQuoteFetcher()))
        >>> outcomes = await engine.fetch_all(INDICES)
        >>> [o.ok for o in outcomes]
        [True, True, False, True, True]
    """

    def __init__(
        self,
        client: QuoteClient,
        max_concurrency: Optional[int] = None,
        retries: int = 0,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if retries < 0:
            raise ValueError("retries must not be negative")
        self._client = client
        self._max_concurrency = max_concurrency
        self._retries = retries

    # ── public API ────────────────────────────────────────────────────────

    async def fetch_all(self, symbols: Sequence[Symbol]) -> List[QuoteFetchOutcome]:
        """
        Fetch every symbol concurrently.

        Args:
            symbols: Ordered catalog.

        Returns:
            ``QuoteOk`` / ``QuoteFailed`` per input symbol, in input order.

        Raises:
            EmptyCatalogError: ``symbols`` is empty.
            AllFailedError:    Every fetch failed.
        """
        if not symbols:
            raise EmptyCatalogError("cannot aggregate an empty symbol list")

        semaphore = asyncio.Semaphore(self._max_concurrency or len(symbols))

        async def _bounded(symbol: Symbol) -> QuoteFetchOutcome:
            async with semaphore:
                return await self._fetch_one(symbol)

        # gather() keeps positional order whatever the completion order.
        outcomes = list(await asyncio.gather(*(_bounded(s) for s in symbols)))

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if failed == len(outcomes):
            logger.error("All %d quote fetches failed", failed)
            raise AllFailedError(f"all {failed} quote fetches failed", outcomes)
        if failed:
            logger.info("Aggregated %d/%d quotes", len(outcomes) - failed, len(outcomes))
        return outcomes

    # ── private helpers ───────────────────────────────────────────────────

    async def _fetch_one(self, symbol: Symbol) -> QuoteFetchOutcome:
        attempt = 0
        while True:
            try:
                quote = await self._client.fetch_quote(symbol)
            except UpstreamError as exc:
                if attempt < self._retries and exc.kind.transient:
                    attempt += 1
                    logger.info(
                        "Retrying %s after %s (attempt %d/%d)",
                        symbol.ticker, exc.kind.value, attempt, self._retries,
                    )
                    continue
                logger.warning("Quote fetch failed for %s: %s", symbol.ticker, exc)
                return QuoteFailed(symbol=symbol, error=exc)
            return QuoteOk(symbol=symbol, quote=quote)
