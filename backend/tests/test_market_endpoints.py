"""
tests/test_market_endpoints.py
───────────────────────────────
HTTP-level tests for the market snapshot endpoints:

  GET  /api/v1/market/indices
  GET  /api/v1/market/commodities
  GET  /api/v1/market/overview
  POST /api/v1/market/cache/warm

Yahoo Finance is replaced by ``FakeFetcher`` — no network is used.

Run with::

    pytest backend/tests/test_market_endpoints.py -v
"""

from conftest import FakeFetcher, raw_quote
from app.main import app
from core.config import Settings, get_settings
from market_data.errors import ProviderError, TransportError, UpstreamErrorKind

# ── URL constants ─────────────────────────────────────────────────────────────

_INDICES_URL = "/api/v1/market/indices"
_COMMODITIES_URL = "/api/v1/market/commodities"
_OVERVIEW_URL = "/api/v1/market/overview"
_WARM_URL = "/api/v1/market/cache/warm"


def _unreachable(ticker: str) -> TransportError:
    return TransportError(ticker, UpstreamErrorKind.UNKNOWN, "Connection refused by 10.0.0.7")


# ── GET / ─────────────────────────────────────────────────────────────────────


async def test_health(app_client) -> None:
    resp = await app_client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── GET /api/v1/market/indices ────────────────────────────────────────────────


class TestIndices:
    """Tests for the indices endpoint."""

    async def test_200_shape(self, app_client) -> None:
        """Successful response carries rows, cache flags and timestamps."""
        resp = await app_client.get(_INDICES_URL)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["cached"] is False
        assert body["stale"] is False
        assert "timestamp" in body and "fetchedAt" in body
        assert len(body["data"]) == 5
        first = body["data"][0]
        assert first["symbol"] == "^GSPC"
        assert set(first) >= {"symbol", "name", "price", "change", "changePercent", "timestamp"}

    async def test_second_request_is_cached(self, app_client, fake_fetcher: FakeFetcher) -> None:
        await app_client.get(_INDICES_URL)
        resp = await app_client.get(_INDICES_URL)
        assert resp.json()["cached"] is True
        assert len(fake_fetcher.calls) == 5

    async def test_200_partial_failure_keeps_placeholder(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.fail("^VIX", ProviderError("^VIX", UpstreamErrorKind.NOT_FOUND))
        resp = await app_client.get(_INDICES_URL)
        assert resp.status_code == 200
        vix = resp.json()["data"][4]
        assert vix["symbol"] == "^VIX"
        assert vix["price"] == 0
        assert vix["available"] is False

    async def test_500_when_upstream_unreachable(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        """Total failure is tagged, generic, and carries no data key."""
        fake_fetcher.fail_all(_unreachable)
        resp = await app_client.get(_INDICES_URL)
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Failed to fetch market indices"
        assert "timestamp" in body
        assert "data" not in body
        assert "10.0.0.7" not in resp.text


# ── GET /api/v1/market/commodities ────────────────────────────────────────────


class TestCommodities:
    """Tests for the commodities endpoint."""

    async def test_200_all_commodities(self, app_client) -> None:
        resp = await app_client.get(_COMMODITIES_URL)
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["commodities"]) == 8
        assert body["commodities"][0]["symbol"] == "GC"
        assert body["commodities"][0]["name"] == "Gold"
        assert "timestamp" in body

    async def test_zero_price_natural_gas_excluded(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.quotes["NG=F"] = raw_quote("NG=F", 0.0)
        resp = await app_client.get(_COMMODITIES_URL)
        symbols = [c["symbol"] for c in resp.json()["commodities"]]
        assert "NG" not in symbols
        assert len(symbols) == 7
        assert all(c["price"] > 0 for c in resp.json()["commodities"])

    async def test_failing_natural_gas_excluded(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.fail("NG=F", _unreachable("NG=F"))
        resp = await app_client.get(_COMMODITIES_URL)
        assert resp.status_code == 200
        symbols = [c["symbol"] for c in resp.json()["commodities"]]
        assert symbols == ["GC", "SI", "CL", "HG", "PL", "ZW", "ZC"]

    async def test_500_when_upstream_unreachable(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.fail_all(_unreachable)
        resp = await app_client.get(_COMMODITIES_URL)
        assert resp.status_code == 500
        body = resp.json()
        assert body["commodities"] == []
        assert body["error"] == "Failed to fetch commodities data"
        assert "timestamp" in body


# ── GET /api/v1/market/overview ───────────────────────────────────────────────


class TestOverview:
    """Tests for the overview endpoint."""

    async def test_200_only_available_indices(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.fail("^RUT", _unreachable("^RUT"))
        resp = await app_client.get(_OVERVIEW_URL)
        assert resp.status_code == 200
        body = resp.json()
        assert [i["symbol"] for i in body["indices"]] == ["^GSPC", "^DJI", "^IXIC", "^VIX"]
        assert body["marketStatus"]["status"] in ("open", "closed")
        assert body["marketStatus"]["nextChange"].startswith(("Opens", "Closes"))

    async def test_500_when_upstream_unreachable(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.fail_all(_unreachable)
        resp = await app_client.get(_OVERVIEW_URL)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch market data"}


# ── POST /api/v1/market/cache/warm ────────────────────────────────────────────


class TestCacheWarm:
    """Tests for the cache-warm endpoint."""

    async def test_200_refreshes_both_datasets(
        self, app_client, fake_fetcher: FakeFetcher
    ) -> None:
        await app_client.get(_INDICES_URL)
        resp = await app_client.post(_WARM_URL)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["results"] == {"indicesUpdated": True, "commoditiesUpdated": True}
        # 5 indices on the first read, then a forced 5 + 8.
        assert len(fake_fetcher.calls) == 18

    async def test_reports_failed_refresh(self, app_client, fake_fetcher: FakeFetcher) -> None:
        fake_fetcher.fail_all(_unreachable)
        resp = await app_client.post(_WARM_URL)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["results"] == {"indicesUpdated": False, "commoditiesUpdated": False}
        assert len(body["errors"]) == 2

    async def test_401_without_token(self, app_client) -> None:
        app.dependency_overrides[get_settings] = lambda: Settings(CACHE_WARM_TOKEN="s3cret")
        resp = await app_client.post(_WARM_URL)
        assert resp.status_code == 401

    async def test_200_with_token(self, app_client) -> None:
        app.dependency_overrides[get_settings] = lambda: Settings(CACHE_WARM_TOKEN="s3cret")
        resp = await app_client.post(_WARM_URL, headers={"Authorization": "Bearer s3cret"})
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    async def test_401_with_wrong_token(self, app_client, fake_fetcher: FakeFetcher) -> None:
        app.dependency_overrides[get_settings] = lambda: Settings(CACHE_WARM_TOKEN="s3cret")
        resp = await app_client.post(_WARM_URL, headers={"Authorization": "Bearer s3cre"})
        assert resp.status_code == 401
        assert fake_fetcher.calls == []
