"""
News Aggregator - Orchestrates ingestion from all sources.

This module fetches from every registered source, upserts the results into
the article store by URL, checks that enough sources delivered, and hands
the persisted batch to observers.
"""

import asyncio
from typing import Optional, Protocol

import structlog
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from newsdesk.core.clock import Clock, utc_now
from newsdesk.models.domain import ArticleRecord, IngestionReport, SourceOutcome, StoredArticle
from newsdesk.services.ingestion.errors import StorageUnavailableError
from newsdesk.services.ingestion.observers import ArticleObserver
from newsdesk.services.ingestion.repository import ArticleRepository

logger = structlog.get_logger(__name__)


class ArticleSource(Protocol):
    """What the aggregator needs from a source (normally a SourceClient)."""

    @property
    def name(self) -> str:
        ...

    async def fetch_articles(self) -> list[ArticleRecord]:
        ...


class Aggregator:
    """
    Aggregates articles from multiple sources into the article store.

    Features:
    - Sequential or bounded-concurrent fetching
    - One failing source never aborts the run
    - URL-keyed upserts, one transaction per article
    - Health check against a minimum number of delivering sources
    """

    def __init__(
        self,
        repository: ArticleRepository,
        minimum_sources_required: int = 1,
        concurrent: bool = False,
        max_concurrency: int = 4,
        clock: Clock = utc_now,
    ):
        self.repository = repository
        self.minimum_sources_required = minimum_sources_required
        self.concurrent = concurrent
        self.max_concurrency = max_concurrency
        self._clock = clock

        self.sources: list[ArticleSource] = []
        self.observers: list[ArticleObserver] = []

    def add_source(self, source: ArticleSource) -> "Aggregator":
        self.sources.append(source)
        return self

    def add_observer(self, observer: ArticleObserver) -> "Aggregator":
        self.observers.append(observer)
        return self

    async def run(self, minimum_sources_required: Optional[int] = None) -> IngestionReport:
        """
        Execute one ingestion run.

        Args:
            minimum_sources_required: Sources that must deliver articles for
                the run to count as healthy (defaults to the configured value)

        Returns:
            IngestionReport for the run

        Raises:
            StorageUnavailableError: if the article store cannot be reached
        """
        minimum = (
            self.minimum_sources_required
            if minimum_sources_required is None
            else minimum_sources_required
        )
        started_at = self._clock()
        logger.info(
            "Starting ingestion run",
            sources=[s.name for s in self.sources],
            concurrent=self.concurrent,
        )

        outcomes: list[SourceOutcome] = []
        persisted: list[StoredArticle] = []

        if self.concurrent:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def bounded(source: ArticleSource):
                async with semaphore:
                    return await self._collect(source)

            # Fetch in parallel, persist in registration order
            collected = await asyncio.gather(*(bounded(s) for s in self.sources))
            for source, (records, error) in zip(self.sources, collected):
                outcomes.append(await self._ingest(source, records, error, persisted))
        else:
            for source in self.sources:
                records, error = await self._collect(source)
                outcomes.append(await self._ingest(source, records, error, persisted))

        successful_sources = sum(1 for o in outcomes if o.success)

        if successful_sources < minimum:
            logger.critical(
                "Insufficient news sources available",
                successful_sources=successful_sources,
                minimum_sources_required=minimum,
            )

        if persisted:
            await self._notify_observers(persisted)

        report = IngestionReport(
            started_at=started_at,
            finished_at=self._clock(),
            minimum_sources_required=minimum,
            successful_sources=successful_sources,
            outcomes=outcomes,
            articles=persisted,
        )
        logger.info(
            "Ingestion run completed",
            successful_sources=successful_sources,
            articles=len(persisted),
            duration_seconds=report.duration_seconds,
        )
        return report

    async def _collect(self, source: ArticleSource) -> tuple[list[ArticleRecord], Optional[str]]:
        """Fetch from one source; anything it raises is logged, not propagated."""
        try:
            return await source.fetch_articles(), None
        except Exception as e:
            logger.error(
                "Source raised during fetch",
                source=source.name,
                error=str(e),
                exception_type=type(e).__name__,
                exc_info=True,
            )
            return [], str(e)

    async def _ingest(
        self,
        source: ArticleSource,
        records: list[ArticleRecord],
        error: Optional[str],
        persisted: list[StoredArticle],
    ) -> SourceOutcome:
        outcome = SourceOutcome(
            source_name=source.name,
            articles_fetched=len(records),
            error=error,
        )

        for record in records:
            stored = await self._persist(source, record)
            if stored is None:
                outcome.articles_failed += 1
            else:
                outcome.articles_persisted += 1
                persisted.append(stored)

        logger.info(str(outcome))
        return outcome

    async def _persist(self, source: ArticleSource, record: ArticleRecord) -> Optional[StoredArticle]:
        try:
            return await self.repository.upsert(record)
        except (OperationalError, InterfaceError) as e:
            logger.critical("Article store unavailable", error=str(e))
            raise StorageUnavailableError(str(e)) from e
        except SQLAlchemyError as e:
            logger.error(
                "Failed to persist article",
                source=source.name,
                url=record.url,
                error=str(e),
            )
            return None

    async def _notify_observers(self, articles: list[StoredArticle]) -> None:
        for observer in self.observers:
            try:
                await observer.on_articles_persisted(articles)
            except Exception as e:
                logger.error(
                    "Observer failed",
                    observer=type(observer).__name__,
                    error=str(e),
                    exc_info=True,
                )
