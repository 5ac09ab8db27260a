"""
market_data/client.py
──────────────────────
Single-symbol quote client.

``yfinance`` is blocking, so every fetch is offloaded to a thread pool and
awaited under its own deadline.  A fetch that overruns the deadline is
reported as a ``TIMEOUT`` failure; the worker thread is left to finish on
its own and the client moves later fetches to a fresh pool.
"""

import asyncio
import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Set

from market_data.errors import (
    MalformedResponse,
    ProviderError,
    TransportError,
    UpstreamError,
    UpstreamErrorKind,
)
from market_data.fetcher import QuoteFetcher
from market_data.models import Quote, Symbol

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0

# Quote fetches are I/O-bound; one pool covers a full catalog round.
DEFAULT_MAX_WORKERS = 16

# Raw-mapping keys tried in order for each normalized field.
_PRICE_KEYS = ("regularMarketPrice", "currentPrice")
_CHANGE_KEYS = ("regularMarketChange",)
_CHANGE_PERCENT_KEYS = ("regularMarketChangePercent",)
_PREVIOUS_CLOSE_KEYS = ("regularMarketPreviousClose", "previousClose")
_IDENTITY_KEYS = ("quoteType", "symbol", *_PRICE_KEYS)


def _number(raw: Mapping[str, Any], keys: tuple) -> Optional[float]:
    """Return the first finite numeric value found under ``keys``."""
    for key in keys:
        value = raw.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if math.isfinite(value):
            return float(value)
    return None


def normalize_quote(ticker: str, raw: Mapping[str, Any]) -> Quote:
    """
    Turn a raw provider mapping into a :class:`Quote`.

    ``change`` and ``change_percent`` are derived from the previous close
    when the provider omits them.

    Raises:
        ProviderError:     ``NOT_FOUND`` when the mapping has no quote at all.
        MalformedResponse: A required numeric field is missing or invalid.
    """
    if not raw or all(raw.get(key) in (None, "", "NONE") for key in _IDENTITY_KEYS):
        raise ProviderError(ticker, UpstreamErrorKind.NOT_FOUND, "no quote returned")

    price = _number(raw, _PRICE_KEYS)
    if price is None:
        raise MalformedResponse(ticker, "missing price")

    previous_close = _number(raw, _PREVIOUS_CLOSE_KEYS)
    change = _number(raw, _CHANGE_KEYS)
    change_percent = _number(raw, _CHANGE_PERCENT_KEYS)

    if change is None and previous_close is not None:
        change = price - previous_close
    if change_percent is None and previous_close:
        change_percent = (price - previous_close) / previous_close * 100.0

    if change is None:
        raise MalformedResponse(ticker, "missing change")
    if change_percent is None:
        raise MalformedResponse(ticker, "missing change percent")

    return Quote(
        ticker=ticker,
        price=price,
        change=change,
        change_percent=change_percent,
        previous_close=previous_close,
        fetched_at=datetime.now(timezone.utc),
    )


class QuoteClient:
    """
    Fetch and normalize one quote per call.

    No retries: retry policy belongs to the aggregation engine.

    A fetch that times out while already running keeps its worker thread
    until ``yfinance`` gives up on its own.  Those threads are counted as
    stuck, and the next fetch moves to a fresh pool instead of queueing
    behind them.  The old pool is shut down without waiting, so its threads
    exit once their calls return.  At most ``max_stuck`` stuck threads are
    tolerated across pools; past that, fetches queue on the current pool.

    Args:
        fetcher:         Upstream capability (``YFinanceQuoteFetcher`` in
                         production, a fake in tests).
        timeout_seconds: Per-fetch deadline.
        max_workers:     Threads per pool.
        max_stuck:       Cap on timed-out threads still running; defaults to
                         four pools' worth.
    """

    def __init__(
        self,
        fetcher: QuoteFetcher,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_stuck: Optional[int] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._fetcher = fetcher
        self._timeout = timeout_seconds
        self._max_workers = max_workers
        self._max_stuck = max_stuck if max_stuck is not None else 4 * max_workers
        self._executor = self._new_executor()
        # Futures abandoned on timeout, per pool, cleared by worker threads.
        self._stuck: Dict[ThreadPoolExecutor, Set[Future]] = {}
        self._lock = threading.Lock()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    @property
    def stuck_count(self) -> int:
        """Timed-out fetches whose worker thread has not returned yet."""
        with self._lock:
            return sum(len(futures) for futures in self._stuck.values())

    async def fetch_quote(self, symbol: Symbol) -> Quote:
        """
        Fetch ``symbol`` from the provider.

        Raises:
            UpstreamError: Always this family — unexpected exceptions from
                           the fetcher are wrapped as ``UNKNOWN``.
        """
        ticker = symbol.ticker
        executor = self._current_executor()
        future = executor.submit(self._fetcher.fetch_one, ticker)
        try:
            raw = await asyncio.wait_for(asyncio.wrap_future(future), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            self._abandon(executor, future)
            raise TransportError(
                ticker,
                UpstreamErrorKind.TIMEOUT,
                f"no answer within {self._timeout:g}s",
            ) from exc
        except UpstreamError:
            raise
        except Exception as exc:
            logger.exception("Unexpected fetcher error for %s", ticker)
            raise TransportError(ticker, UpstreamErrorKind.UNKNOWN, str(exc)) from exc

        quote = normalize_quote(ticker, raw)
        logger.debug("Quote %s price=%s change=%s", ticker, quote.price, quote.change)
        return quote

    # ── thread pool ───────────────────────────────────────────────────────

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="quotes")

    def _current_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            stuck_here = len(self._stuck.get(self._executor, ()))
            stuck_total = sum(len(futures) for futures in self._stuck.values())
            if stuck_here == 0:
                return self._executor
            if stuck_total >= self._max_stuck:
                logger.warning(
                    "%d quote fetches still stuck; queueing on the current pool",
                    stuck_total,
                )
                return self._executor
            old = self._executor
            self._executor = self._new_executor()
        logger.warning(
            "Replacing quote pool: %d worker(s) stuck on timed-out fetches", stuck_here
        )
        old.shutdown(wait=False)
        return self._executor

    def _abandon(self, executor: ThreadPoolExecutor, future: Future) -> None:
        # A queued fetch is simply dropped; only a running one holds a thread.
        if future.cancel():
            return
        with self._lock:
            if future.done():
                return
            self._stuck.setdefault(executor, set()).add(future)
        future.add_done_callback(lambda done: self._release(executor, done))

    def _release(self, executor: ThreadPoolExecutor, future: Future) -> None:
        with self._lock:
            futures = self._stuck.get(executor)
            if futures is None:
                return
            futures.discard(future)
            if not futures:
                del self._stuck[executor]
