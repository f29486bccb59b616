"""
Resilient multi-source ingestion for Newsdesk.

This module provides:
- Per-source rate limiting and circuit breaking
- Retries with backoff keyed by failure kind
- Aggregation into a URL-keyed article store
- Observers notified after each persisted batch
"""

from newsdesk.services.ingestion.aggregator import Aggregator
from newsdesk.services.ingestion.circuit_breaker import CircuitBreaker
from newsdesk.services.ingestion.client import SourceClient
from newsdesk.services.ingestion.errors import (
    FailureKind,
    IngestionError,
    SourceCallError,
    StorageUnavailableError,
    classify_failure,
)
from newsdesk.services.ingestion.observers import (
    ArticleObserver,
    LatestArticlesCacheObserver,
    LoggingObserver,
)
from newsdesk.services.ingestion.rate_gate import RateGate
from newsdesk.services.ingestion.repository import ArticleRepository
from newsdesk.services.ingestion.retry import DEFAULT_RETRY_TABLE, RetryExecutor, RetryRule
from newsdesk.services.ingestion.state_store import (
    InMemoryStateStore,
    RedisStateStore,
    StateStore,
    create_state_store,
)

__all__ = [
    "Aggregator",
    "ArticleObserver",
    "ArticleRepository",
    "CircuitBreaker",
    "DEFAULT_RETRY_TABLE",
    "FailureKind",
    "InMemoryStateStore",
    "IngestionError",
    "LatestArticlesCacheObserver",
    "LoggingObserver",
    "RateGate",
    "RedisStateStore",
    "RetryExecutor",
    "RetryRule",
    "SourceCallError",
    "SourceClient",
    "StateStore",
    "StorageUnavailableError",
    "classify_failure",
    "create_state_store",
]
