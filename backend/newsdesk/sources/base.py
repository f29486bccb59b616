"""
Base interface for news providers.
All providers (NewsAPI, The Guardian, The New York Times) implement this interface.

A provider only knows its upstream API: where to call and how to turn the
payload into ArticleRecords. Rate limiting, circuit breaking and retries are
added around it by SourceClient.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import structlog

from newsdesk.models.domain import ArticleRecord

logger = structlog.get_logger(__name__)


class NewsProvider(ABC):
    """Abstract base class for upstream news APIs."""

    # Query parameter carrying the credential
    credential_param: str = "api-key"

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier, used for config, rate windows and circuit state."""
        pass

    @property
    @abstractmethod
    def base_url(self) -> str:
        pass

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Endpoint fetched on every ingestion run."""
        pass

    def default_params(self) -> dict[str, Any]:
        """Query parameters sent with the ingestion request."""
        return {}

    @abstractmethod
    def parse_item(self, item: dict) -> Optional[ArticleRecord]:
        """
        Map one raw item to an ArticleRecord.

        Returns None for items that should be dropped.
        """
        pass

    @abstractmethod
    def extract_items(self, payload: dict) -> list[dict]:
        """Pull the list of raw items out of a response payload."""
        pass

    def normalize(self, payload: dict) -> list[ArticleRecord]:
        """Map a whole payload, skipping items that cannot be parsed."""
        if not isinstance(payload, dict):
            return []

        records = []
        for item in self.extract_items(payload):
            if not isinstance(item, dict):
                logger.warning(
                    "Skipping malformed item",
                    source=self.name,
                    item_type=type(item).__name__,
                )
                continue
            try:
                record = self.parse_item(item)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "Skipping malformed item",
                    source=self.name,
                    error=str(e),
                    exception_type=type(e).__name__,
                )
                continue
            if record is not None:
                records.append(record)
        return records


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse an ISO-8601 timestamp as sent by the news APIs."""
    if not value:
        raise ValueError("missing publication date")
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
