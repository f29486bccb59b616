"""
New York Times Article Search provider.
API docs: https://developer.nytimes.com/docs/articlesearch-product/1/overview
"""
import re
from typing import Any, Optional

from newsdesk.models.domain import ArticleRecord, parse_author_names
from newsdesk.sources.base import NewsProvider, parse_timestamp

NYTIMES_WEB_ROOT = "https://www.nytimes.com/"

# "2025-02-14T09:00:00+0000" -> "2025-02-14T09:00:00+00:00"
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


class NewYorkTimesProvider(NewsProvider):
    """Provider for the NYT article search endpoint."""

    @property
    def name(self) -> str:
        return "new_york_times"

    @property
    def base_url(self) -> str:
        return "https://api.nytimes.com/svc/search/v2/"

    @property
    def endpoint(self) -> str:
        return "articlesearch.json"

    def default_params(self) -> dict[str, Any]:
        return {"q": "news"}

    def extract_items(self, payload: dict) -> list[dict]:
        response = payload.get("response")
        if not isinstance(response, dict):
            return []
        items = response.get("docs")
        return items if isinstance(items, list) else []

    def parse_item(self, item: dict) -> Optional[ArticleRecord]:
        url = item.get("web_url")
        if not url:
            return None

        byline = (item.get("byline") or {}).get("original") or ""
        byline = re.sub(r"^By\s+", "", byline.strip())
        # "By Jane Doe and John Roe" lists the last author with "and"
        byline = re.sub(r"\s+and\s+", ", ", byline)

        pub_date = item.get("pub_date")
        if pub_date:
            pub_date = _COMPACT_OFFSET.sub(r"\1:\2", pub_date)

        return ArticleRecord(
            url=url,
            title=item["headline"]["main"],
            description=item.get("abstract"),
            content=item.get("lead_paragraph"),
            source_label="The New York Times",
            image_url=self._extract_image_url(item),
            published_at=parse_timestamp(pub_date),
            author_names=parse_author_names(byline),
            category_name=item.get("news_desk") or item.get("section_name") or "Uncategorized",
        )

    def _extract_image_url(self, item: dict) -> Optional[str]:
        for media in item.get("multimedia") or []:
            if isinstance(media, dict) and media.get("url"):
                url = media["url"]
                if url.startswith("http"):
                    return url
                return NYTIMES_WEB_ROOT + url.lstrip("/")
        return None
