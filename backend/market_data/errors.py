"""
market_data/errors.py
──────────────────────
Error taxonomy for the quote aggregation layer.

Per-symbol errors (``TransportError``, ``ProviderError``,
``MalformedResponse``) never escape the aggregation engine — they are turned
into ``QuoteFailed`` outcomes.  Only ``AllFailedError`` and
``EmptyCatalogError`` reach the dataset services.
"""

from enum import Enum
from typing import Optional, Sequence


class UpstreamErrorKind(str, Enum):
    """Why a single-symbol fetch failed."""

    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    UNKNOWN = "unknown"

    @property
    def transient(self) -> bool:
        """Whether retrying within the same round can help."""
        return self in (
            UpstreamErrorKind.TIMEOUT,
            UpstreamErrorKind.RATE_LIMITED,
            UpstreamErrorKind.UNKNOWN,
        )


class MarketDataError(Exception):
    """Base class for every error raised by ``market_data``."""


class UpstreamError(MarketDataError):
    """
    A single-symbol fetch failed.

    Attributes:
        symbol:  Upstream ticker the fetch was for.
        kind:    Failure category.
        message: Short human-readable reason (for logs, not for clients).
    """

    def __init__(
        self,
        symbol: str,
        kind: UpstreamErrorKind = UpstreamErrorKind.UNKNOWN,
        message: str = "",
    ) -> None:
        self.symbol = symbol
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{symbol}: {self.message} ({kind.value})")


class TransportError(UpstreamError):
    """Network, DNS or timeout failure talking to the provider."""


class ProviderError(UpstreamError):
    """The provider answered with an error, a rate limit or no such symbol."""


class MalformedResponse(UpstreamError):
    """The provider answered but required numeric fields are missing."""

    def __init__(self, symbol: str, message: str = "") -> None:
        super().__init__(symbol, UpstreamErrorKind.MALFORMED, message)


class AllFailedError(MarketDataError):
    """
    No usable quote came back for a whole aggregation round.

    Attributes:
        outcomes: The per-symbol outcomes of the round (may be empty when
                  the failure was decided after filtering).
    """

    def __init__(self, message: str, outcomes: Optional[Sequence] = None) -> None:
        self.outcomes = list(outcomes or [])
        super().__init__(message)


class EmptyCatalogError(MarketDataError, ValueError):
    """A dataset or aggregation round was configured with no symbols."""
