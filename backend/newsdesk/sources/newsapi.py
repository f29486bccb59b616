"""
NewsAPI provider for top headlines.
API docs: https://newsapi.org/docs
"""
from typing import Any, Optional

from newsdesk.models.domain import ArticleRecord, parse_author_names
from newsdesk.sources.base import NewsProvider, parse_timestamp

# NewsAPI replaces content of deleted articles with this marker
REMOVED = "[Removed]"


class NewsAPIProvider(NewsProvider):
    """Provider for NewsAPI's top-headlines endpoint."""

    credential_param = "apiKey"

    @property
    def name(self) -> str:
        return "newsapi"

    @property
    def base_url(self) -> str:
        return "https://newsapi.org/v2/"

    @property
    def endpoint(self) -> str:
        return "top-headlines"

    def default_params(self) -> dict[str, Any]:
        return {"language": "en"}

    def extract_items(self, payload: dict) -> list[dict]:
        items = payload.get("articles")
        return items if isinstance(items, list) else []

    def parse_item(self, item: dict) -> Optional[ArticleRecord]:
        title = item.get("title")
        url = item.get("url")
        if not title or title == REMOVED or not url:
            return None

        description = item.get("description")
        if description == REMOVED:
            description = None

        source = item.get("source") or {}

        return ArticleRecord(
            url=url,
            title=title,
            description=description,
            content=item.get("content"),
            source_label=f"NewsAPI - {source.get('name') or 'Unknown'}",
            image_url=item.get("urlToImage"),
            published_at=parse_timestamp(item.get("publishedAt")),
            author_names=parse_author_names(item.get("author")),
        )
