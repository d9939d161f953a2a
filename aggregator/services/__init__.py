"""
Service layer - downstream calls, retries, caching and aggregation.

Provides:
- DownstreamClient: HTTP client returning CallOutcome values
- RetryPolicy: Bounded exponential backoff for transient failures
- ResultCache: In-memory cache with TTL
- Aggregator: Cached fan-out over downstream sources
- AnalyticsAggregator / FeedAggregator: The concrete aggregations
"""

from aggregator.services.errors import (
    ServiceError,
    CacheError,
    UnknownEndpointError,
)
from aggregator.services.outcome import (
    CallOutcome,
    Failure,
    FailureKind,
    Success,
)
from aggregator.services.retry import RetryPolicy
from aggregator.services.client import DownstreamClient, ServiceEndpoint
from aggregator.services.cache import ResultCache, CacheEntry, CacheStats
from aggregator.services.aggregator import Aggregator, SourceFetch

__all__ = [
    # Errors
    "ServiceError",
    "CacheError",
    "UnknownEndpointError",
    # Outcomes
    "CallOutcome",
    "Failure",
    "FailureKind",
    "Success",
    # Retry
    "RetryPolicy",
    # Client
    "DownstreamClient",
    "ServiceEndpoint",
    # Cache
    "ResultCache",
    "CacheEntry",
    "CacheStats",
    # Aggregation
    "Aggregator",
    "SourceFetch",
]
