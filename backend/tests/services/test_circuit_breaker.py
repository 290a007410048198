# tests/services/test_circuit_breaker.py
"""
Tests for the circuit breaker implementation.
"""

import pytest

from asset_diary.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
)
from asset_diary.services.exceptions import InvalidSymbolError


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


def fail(breaker: CircuitBreaker, times: int = 1, error: Exception | None = None) -> None:
    for _ in range(times):
        with pytest.raises(type(error) if error else RuntimeError):
            with breaker:
                raise error or RuntimeError("boom")


@pytest.fixture
def clock() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(name="test", failure_threshold=3, recovery_timeout=30.0, clock=clock)


class TestCircuitBreakerInit:
    """Tests for circuit breaker initialization."""

    def test_default_values(self):
        breaker = CircuitBreaker(name="test")

        assert breaker.failure_threshold == 5
        assert breaker.recovery_timeout == 60.0
        assert breaker.state == CircuitState.CLOSED

    def test_invalid_failure_threshold(self):
        with pytest.raises(ValueError, match="failure_threshold must be at least 1"):
            CircuitBreaker(name="test", failure_threshold=0)

    def test_invalid_recovery_timeout(self):
        with pytest.raises(ValueError, match="recovery_timeout cannot be negative"):
            CircuitBreaker(name="test", recovery_timeout=-1)


class TestCircuitBreakerClosedState:
    """Tests for circuit breaker in closed state."""

    def test_allows_calls_when_closed(self, breaker):
        calls = 0
        for _ in range(10):
            with breaker:
                calls += 1

        assert calls == 10
        assert breaker.state == CircuitState.CLOSED

    def test_opens_after_consecutive_failures(self, breaker):
        fail(breaker, times=2)
        assert breaker.state == CircuitState.CLOSED

        fail(breaker)
        assert breaker.state == CircuitState.OPEN

    def test_success_resets_failure_count(self, breaker):
        fail(breaker, times=2)
        with breaker:
            pass
        fail(breaker, times=2)

        assert breaker.failure_count == 2
        assert breaker.state == CircuitState.CLOSED

    def test_excluded_exceptions_do_not_count(self, clock):
        breaker = CircuitBreaker(
            name="test",
            failure_threshold=1,
            excluded_exceptions=(InvalidSymbolError,),
            clock=clock,
        )

        fail(breaker, times=3, error=InvalidSymbolError("stock", "NOPE"))

        assert breaker.state == CircuitState.CLOSED

    def test_exceptions_propagate(self, breaker):
        with pytest.raises(KeyError):
            with breaker:
                raise KeyError("x")


class TestCircuitBreakerOpenState:
    """Tests for the open and half-open states."""

    def test_rejects_calls_when_open(self, breaker, clock):
        fail(breaker, times=3)
        clock.value += 10

        with pytest.raises(CircuitBreakerOpen) as exc_info:
            with breaker:
                pytest.fail("call should not run")

        assert exc_info.value.breaker_name == "test"
        assert exc_info.value.time_remaining == pytest.approx(20.0)

    def test_half_open_after_recovery_timeout(self, breaker, clock):
        fail(breaker, times=3)
        clock.value += 30

        assert breaker.state == CircuitState.HALF_OPEN

    def test_successful_probe_closes(self, breaker, clock):
        fail(breaker, times=3)
        clock.value += 30

        with breaker:
            pass

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    def test_failed_probe_reopens(self, breaker, clock):
        fail(breaker, times=3)
        clock.value += 30

        fail(breaker)

        assert breaker.state == CircuitState.OPEN

    def test_only_one_probe_at_a_time(self, breaker, clock):
        fail(breaker, times=3)
        clock.value += 30

        with breaker:
            with pytest.raises(CircuitBreakerOpen):
                with breaker:
                    pass

    def test_reset_closes(self, breaker):
        fail(breaker, times=3)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
