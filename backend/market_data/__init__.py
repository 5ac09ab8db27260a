"""
market_data — Quote aggregation and read-through cache layer.

Public API
----------
    from market_data import (
        CacheStore, AggregationEngine, QuoteClient, YFinanceQuoteFetcher,
        IndicesService, CommoditiesService,
    )
"""

from market_data.aggregator import AggregationEngine
from market_data.cache import CacheStore
from market_data.client import QuoteClient
from market_data.datasets import (
    CommoditiesService,
    DatasetService,
    FailurePolicy,
    IndicesService,
)
from market_data.errors import (
    AllFailedError,
    EmptyCatalogError,
    MarketDataError,
    UpstreamError,
    UpstreamErrorKind,
)
from market_data.fetcher import QuoteFetcher, YFinanceQuoteFetcher

__all__ = [
    "AggregationEngine",
    "AllFailedError",
    "CacheStore",
    "CommoditiesService",
    "DatasetService",
    "EmptyCatalogError",
    "FailurePolicy",
    "IndicesService",
    "MarketDataError",
    "QuoteClient",
    "QuoteFetcher",
    "UpstreamError",
    "UpstreamErrorKind",
    "YFinanceQuoteFetcher",
]
