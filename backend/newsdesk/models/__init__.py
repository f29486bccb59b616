"""
Domain and database models.
"""
from newsdesk.models.domain import (
    ArticleRecord,
    CircuitState,
    CircuitStatus,
    IngestionReport,
    RateWindowCounter,
    SourceOutcome,
    StoredArticle,
    parse_author_names,
)

__all__ = [
    "ArticleRecord",
    "CircuitState",
    "CircuitStatus",
    "IngestionReport",
    "RateWindowCounter",
    "SourceOutcome",
    "StoredArticle",
    "parse_author_names",
]
