# backend/asset_diary/services/circuit_breaker.py
"""
Circuit breaker guarding live price providers.

After `failure_threshold` consecutive failures the breaker opens and rejects
calls without touching the provider. Once `recovery_timeout` seconds pass it
lets a single probe through (half-open); the probe's outcome closes or
re-opens it.

    CLOSED --threshold--> OPEN --timeout--> HALF_OPEN --success--> CLOSED
                                              └──────failure─────> OPEN

Usage:
    breaker = CircuitBreaker(
        name="yahoo",
        failure_threshold=5,
        recovery_timeout=60,
        excluded_exceptions=(InvalidSymbolError,),
    )

    with breaker:
        quote = fetch()
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised when the breaker is open and the call was not attempted.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until a probe call is allowed
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreaker:
    """
    Thread-safe consecutive-failure circuit breaker.

    Attributes:
        name: Identifier used in logs and CircuitBreakerOpen messages
        failure_threshold: Consecutive failures that open the circuit
        recovery_timeout: Seconds the circuit stays open before a probe
        excluded_exceptions: Exceptions that mean "the provider answered"
            (e.g. an unknown symbol) and so do not count as failures
        clock: Monotonic time source, replaceable in tests
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    excluded_exceptions: tuple[type[BaseException], ...] = field(default_factory=tuple)
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _probe_in_flight: bool = field(default=False, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def _maybe_half_open(self) -> None:
        # Caller holds the lock
        if self._state == CircuitState.OPEN and self.clock() - self._opened_at >= self.recovery_timeout:
            self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state

        if new_state == CircuitState.OPEN:
            self._opened_at = self.clock()
        elif new_state == CircuitState.CLOSED:
            self._failure_count = 0
        self._probe_in_flight = False

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"CircuitBreaker '{self.name}' state change: {old_state.value} -> {new_state.value}")

    def __enter__(self) -> "CircuitBreaker":
        with self._lock:
            self._maybe_half_open()

            if self._state == CircuitState.CLOSED:
                return self

            if self._state == CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return self

            remaining = max(0.0, self.recovery_timeout - (self.clock() - self._opened_at))
            raise CircuitBreakerOpen(self.name, remaining)

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        with self._lock:
            succeeded = exc_val is None or isinstance(exc_val, self.excluded_exceptions)

            if succeeded:
                if self._state == CircuitState.HALF_OPEN:
                    self._transition_to(CircuitState.CLOSED)
                else:
                    self._failure_count = 0
            elif self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
            else:
                self._failure_count += 1
                if self._failure_count >= self.failure_threshold:
                    self._transition_to(CircuitState.OPEN)

        return False

    def reset(self) -> None:
        """Force the breaker closed."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)
