"""
tests/conftest.py
──────────────────
Shared pytest fixtures for the backend test suite.

Fixtures
--------
fake_fetcher
    ``FakeFetcher`` standing in for Yahoo Finance, pre-loaded with a valid
    quote for every catalog symbol.  Tests override individual tickers.

cache_store / indices_service / commodities_service
    Real quote-layer objects wired to ``fake_fetcher`` with a fresh cache
    per test.

app_client
    ``httpx.AsyncClient`` wired to the FastAPI app with both dataset
    services overridden, so tests never hit the network.

Usage
-----
    async def test_indices(app_client, fake_fetcher):
        fake_fetcher.fail("^VIX", ProviderError("^VIX"))
        resp = await app_client.get("/api/v1/market/indices")
        assert resp.status_code == 200
"""

import threading
import time
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_commodities_service, get_indices_service
from app.main import app
from market_data import (
    AggregationEngine,
    CacheStore,
    CommoditiesService,
    IndicesService,
    QuoteClient,
)
from market_data.catalogs import COMMODITIES, INDICES


def raw_quote(
    ticker: str,
    price: float,
    change: Optional[float] = 1.0,
    change_percent: Optional[float] = 0.5,
    previous_close: Optional[float] = None,
) -> Dict[str, Any]:
    """Build a mapping shaped like ``yfinance.Ticker.info``."""
    raw: Dict[str, Any] = {
        "symbol": ticker,
        "quoteType": "INDEX" if ticker.startswith("^") else "FUTURE",
        "regularMarketPrice": price,
    }
    if change is not None:
        raw["regularMarketChange"] = change
    if change_percent is not None:
        raw["regularMarketChangePercent"] = change_percent
    if previous_close is not None:
        raw["regularMarketPreviousClose"] = previous_close
    return raw


class FakeFetcher:
    """
    Thread-safe stand-in for :class:`YFinanceQuoteFetcher`.

    Each ticker answers with its configured quote, after an optional delay.
    ``fail`` queues exceptions: a single exception fails every call, a list
    is consumed one call at a time before falling back to the quote.
    """

    def __init__(self, quotes: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.quotes: Dict[str, Dict[str, Any]] = dict(quotes or {})
        self.delays: Dict[str, float] = {}
        self._errors: Dict[str, Any] = {}
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def fail(self, ticker: str, error) -> None:
        self._errors[ticker] = error

    def fail_all(self, error_factory) -> None:
        for ticker in list(self.quotes):
            self._errors[ticker] = error_factory(ticker)

    def recover(self) -> None:
        self._errors.clear()

    def fetch_one(self, ticker: str) -> Dict[str, Any]:
        with self._lock:
            self.calls.append(ticker)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            delay = self.delays.get(ticker)
            if delay:
                time.sleep(delay)
            with self._lock:
                error = self._errors.get(ticker)
                if isinstance(error, list):
                    error = error.pop(0) if error else None
            if error is not None:
                raise error
            return self.quotes.get(ticker, {})
        finally:
            with self._lock:
                self.active -= 1


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── Quote layer ───────────────────────────────────────────────────────────────


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    quotes = {
        symbol.ticker: raw_quote(symbol.ticker, price=100.0 + i)
        for i, symbol in enumerate(INDICES + COMMODITIES)
    }
    return FakeFetcher(quotes)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store(clock: FakeClock) -> CacheStore:
    return CacheStore(clock=clock)


@pytest.fixture
def engine(fake_fetcher: FakeFetcher) -> AggregationEngine:
    return AggregationEngine(QuoteClient(fake_fetcher, timeout_seconds=1.0))


@pytest.fixture
def indices_service(cache_store: CacheStore, engine: AggregationEngine) -> IndicesService:
    return IndicesService(cache_store, engine, ttl_seconds=60)


@pytest.fixture
def commodities_service(
    cache_store: CacheStore, engine: AggregationEngine
) -> CommoditiesService:
    return CommoditiesService(cache_store, engine, ttl_seconds=60)


# ── Test client ───────────────────────────────────────────────────────────────


@pytest.fixture
async def app_client(
    indices_service: IndicesService, commodities_service: CommoditiesService
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTPX client with both dataset services overridden.

    Startup lifespan is skipped by ``ASGITransport``.
    """
    app.dependency_overrides[get_indices_service] = lambda: indices_service
    app.dependency_overrides[get_commodities_service] = lambda: commodities_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
