"""
Domain models for Newsdesk.
These are the core business entities, independent of database/API representation.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator

from newsdesk.core.clock import as_utc


# =============================================================================
# Articles
# =============================================================================

def parse_author_names(raw: Optional[str]) -> list[str]:
    """
    Split a raw, possibly comma-joined author field into clean names.

    "  John Doe  ,  Jane Smith " -> ["John Doe", "Jane Smith"]
    """
    if not raw:
        return []
    names = []
    for name in raw.split(","):
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return names


class ArticleRecord(BaseModel):
    """Normalized article as produced by a source on every fetch."""
    url: str
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    source_label: str
    image_url: Optional[str] = None
    published_at: datetime
    author_names: list[str] = Field(default_factory=list)
    category_name: Optional[str] = None

    @field_validator("published_at")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return as_utc(v)


class StoredArticle(BaseModel):
    """Persisted article, keyed by URL."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    source: str
    image_url: Optional[str] = None
    published_at: datetime
    authors: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Per-source resilience state
# =============================================================================

class CircuitStatus(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitState(BaseModel):
    """Circuit breaker state for one source, kept in the state store."""
    status: CircuitStatus = CircuitStatus.CLOSED
    consecutive_failures: NonNegativeInt = 0
    last_transition_at: datetime


class RateWindowCounter(BaseModel):
    """Request count inside the current fixed window of one source."""
    count: NonNegativeInt = 0
    window_expires_at: datetime


# =============================================================================
# Ingestion
# =============================================================================

class SourceOutcome(BaseModel):
    """What a single source contributed to an ingestion run."""
    source_name: str
    articles_fetched: int = 0
    articles_persisted: int = 0
    articles_failed: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.articles_fetched > 0

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return (
            f"{status} {self.source_name}: "
            f"fetched={self.articles_fetched}, persisted={self.articles_persisted}, "
            f"failed={self.articles_failed}"
            + (f", error={self.error}" if self.error else "")
        )


class IngestionReport(BaseModel):
    """Summary of one ingestion run."""
    started_at: datetime
    finished_at: datetime
    minimum_sources_required: int
    successful_sources: int
    outcomes: list[SourceOutcome] = Field(default_factory=list)
    articles: list[StoredArticle] = Field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return self.successful_sources >= self.minimum_sources_required

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
