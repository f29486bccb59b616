"""
Per-source circuit breaker.

Stops calling a source after repeated failures and lets traffic through
again once the reset timeout has passed.
"""

from datetime import timedelta

import structlog

from newsdesk.core.clock import Clock, as_utc, utc_now
from newsdesk.models.domain import CircuitState, CircuitStatus
from newsdesk.services.ingestion.state_store import StateStore

logger = structlog.get_logger(__name__)


class CircuitBreaker:
    """
    Failure-tripped availability gate for a single source.

    State machine:
    - CLOSED: calls flow; failures are counted
    - OPEN: entered when failures reach the threshold; calls are refused
    - HALF_OPEN: entered from OPEN once reset_timeout has passed; calls flow,
      one success closes the circuit, enough failures reopen it

    Every caller that sees HALF_OPEN is admitted, there is no single probe.
    """

    def __init__(
        self,
        source_name: str,
        store: StateStore,
        failure_threshold: int = 3,
        reset_timeout: timedelta = timedelta(seconds=60),
        clock: Clock = utc_now,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")

        self.source_name = source_name
        self.store = store
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock

    @property
    def key(self) -> str:
        return f"circuit_breaker:{self.source_name}"

    async def is_available(self) -> bool:
        """Whether a call may be made now; may move OPEN to HALF_OPEN."""
        async with self.store.lock(self.key):
            state = await self._get_state()

            if state.status != CircuitStatus.OPEN:
                return True

            now = self._clock()
            if now - as_utc(state.last_transition_at) > self.reset_timeout:
                await self._put_state(CircuitState(
                    status=CircuitStatus.HALF_OPEN,
                    consecutive_failures=0,
                    last_transition_at=now,
                ))
                logger.info("Circuit half-open", source=self.source_name)
                return True

            return False

    async def record_success(self) -> None:
        async with self.store.lock(self.key):
            previous = await self._get_state()
            if previous.status == CircuitStatus.OPEN:
                # A call admitted before the circuit opened; OPEN only leaves via HALF_OPEN
                logger.debug("Ignoring success while open", source=self.source_name)
                return
            await self._put_state(CircuitState(
                status=CircuitStatus.CLOSED,
                consecutive_failures=0,
                last_transition_at=self._clock(),
            ))

        if previous.status != CircuitStatus.CLOSED:
            logger.info("Circuit closed", source=self.source_name)

    async def record_failure(self) -> None:
        async with self.store.lock(self.key):
            state = await self._get_state()
            failures = state.consecutive_failures + 1

            if failures >= self.failure_threshold:
                status = CircuitStatus.OPEN
            else:
                status = state.status

            await self._put_state(CircuitState(
                status=status,
                consecutive_failures=failures,
                last_transition_at=self._clock(),
            ))

        if status == CircuitStatus.OPEN and state.status != CircuitStatus.OPEN:
            logger.warning(
                "Circuit opened",
                source=self.source_name,
                failures=failures,
                reset_timeout_seconds=self.reset_timeout.total_seconds(),
            )

    async def state(self) -> CircuitState:
        return await self._get_state()

    async def _get_state(self) -> CircuitState:
        raw = await self.store.get(self.key)
        if raw is None:
            return CircuitState(last_transition_at=self._clock())
        return CircuitState.model_validate(raw)

    async def _put_state(self, state: CircuitState) -> None:
        await self.store.put(self.key, state.model_dump(mode="json"))
