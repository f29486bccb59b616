"""
Bounded retry with per-failure-kind backoff.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState

from newsdesk.services.ingestion.errors import FailureKind, classify_failure

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryRule:
    """Retry budget and backoff for one failure kind."""
    max_attempts: int
    delay_ms: int
    exponential_backoff: bool = False

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must not be negative")

    def delay_for(self, attempt: int) -> int:
        """Delay in milliseconds after the given (1-based) failed attempt."""
        if self.exponential_backoff:
            return self.delay_ms * 2 ** (attempt - 1)
        return self.delay_ms


RetryTable = Mapping[FailureKind, RetryRule]

# Connection trouble usually clears up slowly; bad responses are retried less
DEFAULT_RETRY_TABLE: RetryTable = {
    FailureKind.CONNECTIVITY: RetryRule(max_attempts=5, delay_ms=2000, exponential_backoff=True),
    FailureKind.BAD_RESPONSE: RetryRule(max_attempts=3, delay_ms=1000, exponential_backoff=False),
}


class _KindBudget:
    """Failure counts per kind for a single execute() call."""

    def __init__(self, table: RetryTable, operation_name: str):
        self.table = table
        self.operation_name = operation_name
        self.failures: Counter[FailureKind] = Counter()
        self.last_kind: Optional[FailureKind] = None

    def is_retryable(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return False
        return classify_failure(outcome.exception()) in self.table

    def record(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        kind = classify_failure(exc)
        self.failures[kind] += 1
        self.last_kind = kind

        log = logger.warning if kind == FailureKind.CONNECTIVITY else logger.error
        log(
            "Attempt failed",
            operation=self.operation_name,
            kind=kind.value,
            attempt=self.failures[kind],
            max_attempts=self.table[kind].max_attempts,
            error=str(exc),
            exception_type=type(exc).__name__,
        )

    def exhausted(self, retry_state: RetryCallState) -> bool:
        kind = self.last_kind
        return self.failures[kind] >= self.table[kind].max_attempts

    def next_delay(self, retry_state: RetryCallState) -> float:
        kind = self.last_kind
        return self.table[kind].delay_for(self.failures[kind]) / 1000


class RetryExecutor:
    """
    Runs an async operation, retrying failures whose kind is in a retry table.

    Each kind has its own attempt budget within one execute() call. Failures
    of a kind missing from the table propagate immediately, and the last
    failure propagates once a kind's budget is spent. Backoff suspends only
    the calling task.
    """

    def __init__(
        self,
        name: str = "operation",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.name = name
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        retry_table: Optional[RetryTable] = None,
    ) -> T:
        """
        Run operation under the retry table.

        Args:
            operation: Zero-argument coroutine function making one attempt
            retry_table: Failure kind -> rule (defaults to DEFAULT_RETRY_TABLE)

        Returns:
            The operation's result from the first successful attempt
        """
        budget = _KindBudget(
            DEFAULT_RETRY_TABLE if retry_table is None else retry_table,
            self.name,
        )
        retrying = AsyncRetrying(
            retry=budget.is_retryable,
            after=budget.record,
            stop=budget.exhausted,
            wait=budget.next_delay,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(operation)
