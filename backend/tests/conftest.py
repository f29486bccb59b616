"""
Shared fixtures for Newsdesk tests.

Time is driven by a manual clock, backoff sleeps are recorded instead of
awaited, upstream APIs are served by httpx.MockTransport and the article
store is an in-memory SQLite database.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from newsdesk.models.database import Database
from newsdesk.models.domain import ArticleRecord
from newsdesk.services.ingestion.repository import ArticleRepository
from newsdesk.services.ingestion.state_store import InMemoryStateStore


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 2, 14, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers requested delays (seconds)."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def delays_ms(self) -> list[int]:
        return [round(d * 1000) for d in self.delays]


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def store(clock):
    return InMemoryStateStore(clock=clock)


@pytest.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_tables()
    yield db
    await db.drop_tables()
    await db.dispose()


@pytest.fixture
def repository(database):
    return ArticleRepository(database)


def make_record(url: str = "https://example.com/test", **overrides) -> ArticleRecord:
    fields = {
        "url": url,
        "title": "Test Article",
        "description": "Test description",
        "content": "Test content",
        "source_label": "Test Source",
        "published_at": datetime(2025, 2, 14, 9, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return ArticleRecord(**fields)


def mock_http_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by handler(request)."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
