"""
Wiring of the ingestion pipeline from settings.
"""

from datetime import timedelta
from typing import Optional

import httpx
import structlog

from newsdesk.config import Settings
from newsdesk.core.clock import Clock, utc_now
from newsdesk.services.ingestion.aggregator import Aggregator
from newsdesk.services.ingestion.circuit_breaker import CircuitBreaker
from newsdesk.services.ingestion.client import SourceClient
from newsdesk.services.ingestion.observers import LatestArticlesCacheObserver, LoggingObserver
from newsdesk.services.ingestion.rate_gate import RateGate
from newsdesk.services.ingestion.repository import ArticleRepository
from newsdesk.services.ingestion.retry import RetryExecutor
from newsdesk.services.ingestion.state_store import StateStore
from newsdesk.sources import PROVIDERS

logger = structlog.get_logger(__name__)


def build_source_clients(
    settings: Settings,
    store: StateStore,
    http_client: httpx.AsyncClient,
    clock: Clock = utc_now,
) -> list[SourceClient]:
    """One SourceClient per enabled provider that has a credential."""
    rate_gate = RateGate(store, clock=clock)
    clients = []

    for name, provider_cls in PROVIDERS.items():
        source_settings = settings.source(name)
        if not source_settings.enabled:
            logger.info("Source disabled", source=name)
            continue
        if not source_settings.api_key:
            logger.warning("No API key configured, source not registered", source=name)
            continue

        clients.append(SourceClient(
            provider=provider_cls(),
            credential=source_settings.api_key,
            http_client=http_client,
            rate_gate=rate_gate,
            circuit_breaker=CircuitBreaker(
                name,
                store,
                failure_threshold=settings.circuit_failure_threshold,
                reset_timeout=timedelta(seconds=settings.circuit_reset_timeout_seconds),
                clock=clock,
            ),
            retry_executor=RetryExecutor(name=name),
            rate_limit=source_settings.rate_limit,
            timeout=settings.request_timeout_seconds,
        ))

    return clients


def build_aggregator(
    settings: Settings,
    repository: ArticleRepository,
    store: StateStore,
    http_client: httpx.AsyncClient,
    clients: Optional[list[SourceClient]] = None,
    clock: Clock = utc_now,
) -> Aggregator:
    """Aggregator with every configured source and the standard observers."""
    aggregator = Aggregator(
        repository,
        minimum_sources_required=settings.minimum_sources_required,
        concurrent=settings.concurrent_fetch,
        max_concurrency=settings.max_concurrent_sources,
        clock=clock,
    )

    if clients is None:
        clients = build_source_clients(settings, store, http_client, clock=clock)
    for client in clients:
        aggregator.add_source(client)

    aggregator.add_observer(LatestArticlesCacheObserver(
        store,
        limit=settings.latest_articles_count,
        ttl=timedelta(seconds=settings.latest_articles_ttl_seconds),
    ))
    aggregator.add_observer(LoggingObserver())

    logger.info("Initialized aggregator", sources=[s.name for s in aggregator.sources])
    return aggregator
