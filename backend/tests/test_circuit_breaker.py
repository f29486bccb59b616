"""
Tests for the per-source circuit breaker.
"""

from datetime import timedelta

import pytest

from newsdesk.models.domain import CircuitStatus
from newsdesk.services.ingestion.circuit_breaker import CircuitBreaker


@pytest.fixture
def breaker(store, clock):
    return CircuitBreaker(
        "newsapi",
        store,
        failure_threshold=3,
        reset_timeout=timedelta(seconds=60),
        clock=clock,
    )


class TestCircuitBreaker:
    """Tests for circuit state transitions."""

    async def test_starts_closed_and_available(self, breaker):
        assert await breaker.is_available() is True
        state = await breaker.state()
        assert state.status == CircuitStatus.CLOSED
        assert state.consecutive_failures == 0

    async def test_failures_below_threshold_keep_circuit_closed(self, breaker):
        await breaker.record_failure()
        await breaker.record_failure()

        state = await breaker.state()
        assert state.status == CircuitStatus.CLOSED
        assert state.consecutive_failures == 2
        assert await breaker.is_available() is True

    async def test_opens_at_threshold(self, breaker):
        for _ in range(3):
            await breaker.record_failure()

        state = await breaker.state()
        assert state.status == CircuitStatus.OPEN
        assert await breaker.is_available() is False

    async def test_stays_unavailable_until_reset_timeout_passes(self, breaker, clock):
        for _ in range(4):
            await breaker.record_failure()

        clock.advance(seconds=30)
        assert await breaker.is_available() is False

        # Exactly reset_timeout is not enough, it must be exceeded
        clock.advance(seconds=30)
        assert await breaker.is_available() is False

        clock.advance(seconds=1)
        assert await breaker.is_available() is True

    async def test_single_call_moves_open_to_half_open(self, breaker, clock):
        for _ in range(3):
            await breaker.record_failure()
        clock.advance(seconds=61)

        assert await breaker.is_available() is True
        state = await breaker.state()
        assert state.status == CircuitStatus.HALF_OPEN
        assert state.consecutive_failures == 0
        assert state.last_transition_at == clock.now

        # Later calls see HALF_OPEN and are admitted without another transition
        clock.advance(seconds=5)
        assert await breaker.is_available() is True
        assert (await breaker.state()).last_transition_at == clock.now - timedelta(seconds=5)

    async def test_success_while_half_open_closes_circuit(self, breaker, clock):
        for _ in range(3):
            await breaker.record_failure()
        clock.advance(seconds=61)
        await breaker.is_available()

        await breaker.record_success()

        state = await breaker.state()
        assert state.status == CircuitStatus.CLOSED
        assert state.consecutive_failures == 0

    async def test_failures_while_half_open_reopen_circuit(self, breaker, clock):
        for _ in range(3):
            await breaker.record_failure()
        clock.advance(seconds=61)
        await breaker.is_available()

        await breaker.record_failure()
        assert (await breaker.state()).status == CircuitStatus.HALF_OPEN

        await breaker.record_failure()
        await breaker.record_failure()
        assert (await breaker.state()).status == CircuitStatus.OPEN
        assert await breaker.is_available() is False

    async def test_success_resets_failure_count_while_closed(self, breaker):
        await breaker.record_failure()
        await breaker.record_failure()
        await breaker.record_success()
        await breaker.record_failure()

        state = await breaker.state()
        assert state.status == CircuitStatus.CLOSED
        assert state.consecutive_failures == 1

    async def test_success_never_closes_an_open_circuit(self, breaker):
        for _ in range(3):
            await breaker.record_failure()

        await breaker.record_success()

        assert (await breaker.state()).status == CircuitStatus.OPEN

    async def test_state_is_shared_through_the_store(self, store, clock):
        first = CircuitBreaker("guardian", store, clock=clock)
        second = CircuitBreaker("guardian", store, clock=clock)
        other = CircuitBreaker("newsapi", store, clock=clock)

        for _ in range(3):
            await first.record_failure()

        assert await second.is_available() is False
        assert await other.is_available() is True

    def test_rejects_non_positive_threshold(self, store):
        with pytest.raises(ValueError):
            CircuitBreaker("newsapi", store, failure_threshold=0)
