"""
The Guardian Open Platform provider.
API docs: https://open-platform.theguardian.com/documentation/
"""
from typing import Any, Optional

from newsdesk.models.domain import ArticleRecord, parse_author_names
from newsdesk.sources.base import NewsProvider, parse_timestamp


class GuardianProvider(NewsProvider):
    """Provider for the Guardian content search endpoint."""

    @property
    def name(self) -> str:
        return "guardian"

    @property
    def base_url(self) -> str:
        return "https://content.guardianapis.com/"

    @property
    def endpoint(self) -> str:
        return "search"

    def default_params(self) -> dict[str, Any]:
        return {"show-fields": "all"}

    def extract_items(self, payload: dict) -> list[dict]:
        response = payload.get("response")
        if not isinstance(response, dict):
            return []
        items = response.get("results")
        return items if isinstance(items, list) else []

    def parse_item(self, item: dict) -> Optional[ArticleRecord]:
        fields = item.get("fields") or {}
        publication = fields.get("publication")

        return ArticleRecord(
            url=item["webUrl"],
            title=item["webTitle"],
            description=fields.get("trailText"),
            content=fields.get("bodyText"),
            source_label=f"The Guardian - {publication}" if publication else "The Guardian",
            image_url=fields.get("thumbnail"),
            published_at=parse_timestamp(item.get("webPublicationDate")),
            author_names=parse_author_names(fields.get("byline")),
            category_name=item.get("sectionName"),
        )
