"""
market_data/fetcher.py
───────────────────────
Thin wrapper around ``yfinance`` — the ONLY place in the codebase that
calls Yahoo Finance directly.

Everything else talks to the upstream through :class:`QuoteFetcher`, so
tests can swap in a fake without patching ``yfinance``.
"""

import logging
from typing import Any, Mapping, Protocol

import yfinance as yf
from yfinance.exceptions import YFException, YFRateLimitError

from market_data.errors import ProviderError, TransportError, UpstreamErrorKind

logger = logging.getLogger(__name__)


class QuoteFetcher(Protocol):
    """
    Upstream capability: one blocking call per ticker.

    Implementations return the provider's raw quote mapping or raise an
    ``UpstreamError`` subclass.
    """

    def fetch_one(self, ticker: str) -> Mapping[str, Any]:
        ...


def _kind_from_message(message: str) -> UpstreamErrorKind:
    lowered = message.lower()
    if "429" in lowered or "too many requests" in lowered or "rate limit" in lowered:
        return UpstreamErrorKind.RATE_LIMITED
    if "404" in lowered or "not found" in lowered:
        return UpstreamErrorKind.NOT_FOUND
    return UpstreamErrorKind.UNKNOWN


class YFinanceQuoteFetcher:
    """
    Fetch the latest quote snapshot for a single ticker from Yahoo Finance.

    The returned mapping is ``Ticker.info`` as-is; field selection and
    validation happen in :class:`~market_data.client.QuoteClient`.

    Example:
        >>> fetcher = YFinanceQuoteFetcher()
        >>> raw = fetcher.fetch_one("^GSPC")
        >>> raw["regularMarketPrice"]
        5123.41
    """

    # ── public API ────────────────────────────────────────────────────────

    def fetch_one(self, ticker: str) -> Mapping[str, Any]:
        """
        Download the quote snapshot for ``ticker``.

        Args:
            ticker: Yahoo symbol (e.g. ``"^GSPC"``, ``"GC=F"``).

        Returns:
            Raw ``info`` mapping.  May be empty for unknown tickers.

        Raises:
            ProviderError:  Yahoo rejected the request (rate limit, 404…).
            TransportError: The request never got a usable answer.
        """
        try:
            info = yf.Ticker(ticker).info
        except YFRateLimitError as exc:
            raise ProviderError(ticker, UpstreamErrorKind.RATE_LIMITED, str(exc)) from exc
        except YFException as exc:
            raise ProviderError(ticker, _kind_from_message(str(exc)), str(exc)) from exc
        except TimeoutError as exc:
            raise TransportError(ticker, UpstreamErrorKind.TIMEOUT, str(exc)) from exc
        except OSError as exc:
            raise TransportError(ticker, UpstreamErrorKind.UNKNOWN, str(exc)) from exc
        except Exception as exc:
            # yfinance surfaces HTTP failures from its session library as
            # plain exceptions; the status code only shows up in the text.
            logger.debug("yfinance raised %r for %s", exc, ticker)
            kind = _kind_from_message(str(exc))
            if kind is UpstreamErrorKind.UNKNOWN:
                raise TransportError(ticker, kind, str(exc)) from exc
            raise ProviderError(ticker, kind, str(exc)) from exc

        return info or {}
