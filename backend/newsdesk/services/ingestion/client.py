"""
Resilient client for one upstream news API.

Wraps a NewsProvider with rate limiting, a circuit breaker and retries. A
failing source never raises out of this module: it just produces no articles.
"""

from datetime import timedelta
from typing import Any, Optional

import httpx
import structlog

from newsdesk.config import RateLimit
from newsdesk.models.domain import ArticleRecord
from newsdesk.services.ingestion.circuit_breaker import CircuitBreaker
from newsdesk.services.ingestion.errors import SourceCallError
from newsdesk.services.ingestion.rate_gate import RateGate
from newsdesk.services.ingestion.retry import DEFAULT_RETRY_TABLE, RetryExecutor, RetryTable
from newsdesk.sources.base import NewsProvider

logger = structlog.get_logger(__name__)


class SourceClient:
    """
    Fetch-and-normalize unit for a single provider.

    Every fetch:
    1. asks the RateGate for a slot (skip if refused)
    2. asks the CircuitBreaker whether the source is available (skip if not)
    3. makes the call through the RetryExecutor
    4. reports the overall outcome back to the CircuitBreaker
    """

    def __init__(
        self,
        provider: NewsProvider,
        credential: str,
        http_client: httpx.AsyncClient,
        rate_gate: RateGate,
        circuit_breaker: CircuitBreaker,
        retry_executor: Optional[RetryExecutor] = None,
        rate_limit: Optional[RateLimit] = None,
        retry_table: RetryTable = DEFAULT_RETRY_TABLE,
        timeout: float = 5.0,
    ):
        self.provider = provider
        self.credential = credential
        self.http_client = http_client
        self.rate_gate = rate_gate
        self.circuit_breaker = circuit_breaker
        self.retry_executor = retry_executor or RetryExecutor(name=provider.name)
        self.rate_limit = rate_limit
        self.retry_table = retry_table
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.provider.name

    async def fetch(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> dict:
        """
        Call an endpoint of the source.

        Returns:
            The decoded JSON payload, or an empty dict if the call was
            skipped or failed
        """
        max_requests, window = self._rate_window()
        if not await self.rate_gate.allow(self.name, max_requests, window):
            logger.warning("Rate limit exceeded, skipping source", source=self.name)
            return {}

        if not await self.circuit_breaker.is_available():
            logger.warning("Circuit breaker is open, skipping source", source=self.name)
            return {}

        query = dict(params or {})
        query[self.provider.credential_param] = self.credential
        url = self.provider.base_url + endpoint

        async def call() -> dict:
            return await self._get(url, query)

        try:
            payload = await self.retry_executor.execute(call, self.retry_table)
        except Exception as e:
            await self.circuit_breaker.record_failure()
            logger.error(
                "Failed to fetch from source",
                source=self.name,
                endpoint=endpoint,
                error=str(e),
                exception_type=type(e).__name__,
            )
            return {}

        await self.circuit_breaker.record_success()
        return payload

    async def fetch_articles(self) -> list[ArticleRecord]:
        """Fetch the provider's endpoint and normalize the payload."""
        payload = await self.fetch(self.provider.endpoint, self.provider.default_params())
        if not payload:
            return []

        records = self.provider.normalize(payload)
        logger.info("Fetched articles", source=self.name, count=len(records))
        return records

    async def _get(self, url: str, params: dict[str, Any]) -> dict:
        """One outbound attempt, with failures mapped onto FailureKind."""
        try:
            response = await self.http_client.get(url, params=params, timeout=self.timeout)
        except httpx.TransportError as e:
            raise SourceCallError.connectivity(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise SourceCallError.bad_response(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise SourceCallError.invalid_payload(f"Response is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise SourceCallError.invalid_payload("Response is not a JSON object")

        return data

    def _rate_window(self) -> tuple[Optional[int], Optional[timedelta]]:
        if self.rate_limit is None:
            return None, None
        return self.rate_limit.max_requests, timedelta(minutes=self.rate_limit.window_minutes)
