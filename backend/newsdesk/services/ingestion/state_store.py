"""
Keyed state shared by ingestion components.

Circuit breaker state, rate windows and cached article lists live here rather
than in module globals, so several runners can share them when backed by Redis.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Optional

import structlog
from redis import asyncio as aioredis

from newsdesk.core.clock import Clock, utc_now

logger = structlog.get_logger(__name__)


class StateStore(ABC):
    """
    Async key/value store with optional expiry.

    Values must be JSON-compatible. Callers that read, modify and write a key
    hold ``lock(key)`` for the whole sequence.
    """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value for key, or default if absent or expired."""
        pass

    @abstractmethod
    async def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        """Unconditionally store value, expiring after ttl when given."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def lock(self, key: str) -> Any:
        """Async context manager giving exclusive access to key."""
        pass

    async def close(self) -> None:
        pass


class InMemoryStateStore(StateStore):
    """
    Process-local store.

    Features:
    - Per-key asyncio locks
    - Expiry measured against an injectable clock
    """

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._values: dict[str, tuple[str, Optional[datetime]]] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get(self, key: str, default: Any = None) -> Any:
        entry = self._values.get(key)
        if entry is None:
            return default

        encoded, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._values[key]
            return default

        return json.loads(encoded)

    async def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        # Stored encoded so callers never share mutable state with the store
        self._values[key] = (json.dumps(value), expires_at)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        async with self._locks[key]:
            yield


class RedisStateStore(StateStore):
    """Redis-backed store shared across processes."""

    LOCK_TIMEOUT_SECONDS = 10

    def __init__(self, client: aioredis.Redis, prefix: str = "newsdesk:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "newsdesk:") -> "RedisStateStore":
        return cls(aioredis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str, default: Any = None) -> Any:
        raw = await self.client.get(self._key(key))
        if raw is None:
            return default
        return json.loads(raw)

    async def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        px = max(int(ttl.total_seconds() * 1000), 1) if ttl is not None else None
        await self.client.set(self._key(key), json.dumps(value), px=px)

    async def delete(self, key: str) -> None:
        await self.client.delete(self._key(key))

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        async with self.client.lock(
            self._key(f"lock:{key}"), timeout=self.LOCK_TIMEOUT_SECONDS
        ):
            yield

    async def close(self) -> None:
        await self.client.aclose()


def create_state_store(backend: str, redis_url: Optional[str] = None) -> StateStore:
    """Build the configured store backend."""
    if backend == "redis":
        logger.info("Using Redis state store", url=redis_url)
        return RedisStateStore.from_url(redis_url)
    return InMemoryStateStore()
