"""
Rate limiting for API requests.

Fixed-window admission control, one window per source.
"""

from datetime import timedelta
from typing import Optional

import structlog

from newsdesk.core.clock import Clock, as_utc, utc_now
from newsdesk.models.domain import RateWindowCounter
from newsdesk.services.ingestion.state_store import StateStore

logger = structlog.get_logger(__name__)


class RateGate:
    """
    Fixed-window rate limiter with per-source tracking.

    A window starts with the first admitted request and lasts ``window``.
    Requests beyond ``max_requests`` inside the window are refused rather
    than delayed, so a run simply skips the source.
    """

    def __init__(self, store: StateStore, clock: Clock = utc_now):
        self.store = store
        self._clock = clock

    @staticmethod
    def key_for(source_name: str) -> str:
        return f"rate_limit:{source_name}"

    async def allow(
        self,
        source_name: str,
        max_requests: Optional[int],
        window: Optional[timedelta],
    ) -> bool:
        """
        Try to admit one request for a source.

        Args:
            source_name: Source the request is made for
            max_requests: Requests allowed per window (None = unlimited)
            window: Window length (None = unlimited)

        Returns:
            True if admitted (and counted), False if the window is full
        """
        if max_requests is None or window is None:
            return True

        key = self.key_for(source_name)

        async with self.store.lock(key):
            now = self._clock()
            counter = await self._load(key)

            if counter is None or now >= as_utc(counter.window_expires_at):
                counter = RateWindowCounter(count=0, window_expires_at=now + window)

            if counter.count >= max_requests:
                logger.debug(
                    "Rate window full",
                    source=source_name,
                    count=counter.count,
                    max_requests=max_requests,
                )
                return False

            counter.count += 1
            remaining = as_utc(counter.window_expires_at) - now
            await self.store.put(key, counter.model_dump(mode="json"), ttl=remaining)
            return True

    async def status(self, source_name: str) -> Optional[RateWindowCounter]:
        """Current window for a source, if one is open."""
        counter = await self._load(self.key_for(source_name))
        if counter is None or self._clock() >= as_utc(counter.window_expires_at):
            return None
        return counter

    async def reset(self, source_name: str) -> None:
        await self.store.delete(self.key_for(source_name))

    async def _load(self, key: str) -> Optional[RateWindowCounter]:
        raw = await self.store.get(key)
        if raw is None:
            return None
        return RateWindowCounter.model_validate(raw)
