"""
Consumers notified after an ingestion run persists articles.
"""

from datetime import timedelta
from typing import Protocol, runtime_checkable

import structlog

from newsdesk.models.domain import StoredArticle
from newsdesk.services.ingestion.state_store import StateStore

logger = structlog.get_logger(__name__)

LATEST_ARTICLES_KEY = "latest_articles"
ARTICLES_CACHE_VERSION_KEY = "articles_cache_version"


@runtime_checkable
class ArticleObserver(Protocol):
    """Anything that wants the batch of articles persisted by a run."""

    async def on_articles_persisted(self, articles: list[StoredArticle]) -> None:
        ...


class LatestArticlesCacheObserver:
    """
    Warms the latest-articles cache.

    Also bumps the article list cache version so cached list pages built
    before this batch are no longer served.
    """

    def __init__(
        self,
        store: StateStore,
        limit: int = 10,
        ttl: timedelta = timedelta(hours=1),
    ):
        self.store = store
        self.limit = limit
        self.ttl = ttl

    async def on_articles_persisted(self, articles: list[StoredArticle]) -> None:
        async with self.store.lock(ARTICLES_CACHE_VERSION_KEY):
            version = await self.store.get(ARTICLES_CACHE_VERSION_KEY, 0)
            await self.store.put(ARTICLES_CACHE_VERSION_KEY, version + 1)

        latest = articles[: self.limit]
        await self.store.put(
            LATEST_ARTICLES_KEY,
            [a.model_dump(mode="json") for a in latest],
            ttl=self.ttl,
        )
        logger.info("Latest articles cache warmed", count=len(latest))


class LoggingObserver:
    """Logs a summary of each persisted batch."""

    async def on_articles_persisted(self, articles: list[StoredArticle]) -> None:
        sources: dict[str, int] = {}
        for article in articles:
            sources[article.source] = sources.get(article.source, 0) + 1
        logger.info("Articles persisted", count=len(articles), sources=sources)
