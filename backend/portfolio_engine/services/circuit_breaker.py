# backend/portfolio_engine/services/circuit_breaker.py
"""
Circuit breaker guarding the fetch collaborators' upstream calls.

When Yahoo Finance or an exchange rate API starts failing, repeatedly
hammering it only slows every render down while the collaborator waits on
timeouts. After a run of consecutive failures the breaker opens and calls
are rejected immediately, which the collaborators treat exactly like a
failed fetch: they serve the stale cache.

States:
    CLOSED    - Calls pass through
    OPEN      - Calls rejected with CircuitBreakerOpen until the cooldown expires
    HALF_OPEN - One trial call at a time; success closes, failure re-opens

Usage:
    from portfolio_engine.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen

    breaker = CircuitBreaker(name="yahoo-benchmarks", failure_threshold=3)

    try:
        with breaker:
            frame = fetch()
    except CircuitBreakerOpen:
        frame = None
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised instead of calling the upstream while the breaker is open.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until a trial call is allowed again
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
        name: Identifier used in logs and errors
        failure_threshold: Consecutive failures that open the circuit
        recovery_timeout: Seconds the circuit stays open before a trial call
        excluded_exceptions: Exception types that say nothing about upstream
            health (e.g. an unknown ticker) and never count as failures
        clock: Monotonic time source, injectable for tests
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    excluded_exceptions: tuple[type[Exception], ...] = field(default_factory=tuple)
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _consecutive_failures: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _trial_in_flight: bool = field(default=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh()
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _refresh(self) -> None:
        """Move OPEN to HALF_OPEN once the cooldown has elapsed. Caller holds the lock."""
        if self._state == CircuitState.OPEN and self._remaining() <= 0:
            self._set_state(CircuitState.HALF_OPEN)

    def _remaining(self) -> float:
        return max(0.0, self.recovery_timeout - (self.clock() - self._opened_at))

    def _set_state(self, new_state: CircuitState) -> None:
        if new_state == self._state:
            return
        logger.info(
            f"CircuitBreaker '{self.name}': {self._state.value} -> {new_state.value}"
        )
        self._state = new_state
        self._trial_in_flight = False
        if new_state == CircuitState.OPEN:
            self._opened_at = self.clock()
        elif new_state == CircuitState.CLOSED:
            self._consecutive_failures = 0

    def __enter__(self) -> "CircuitBreaker":
        with self._lock:
            self._refresh()
            if self._state == CircuitState.OPEN:
                raise CircuitBreakerOpen(self.name, self._remaining())
            if self._state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitBreakerOpen(self.name, 0.0)
                self._trial_in_flight = True
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        with self._lock:
            failed = exc_val is not None and not (
                self.excluded_exceptions and isinstance(exc_val, self.excluded_exceptions)
            )
            if not failed:
                self._set_state(CircuitState.CLOSED)
                self._consecutive_failures = 0
            elif self._state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.OPEN)
            else:
                self._consecutive_failures += 1
                if self._consecutive_failures >= self.failure_threshold:
                    logger.warning(
                        f"CircuitBreaker '{self.name}' opening after "
                        f"{self._consecutive_failures} consecutive failures"
                    )
                    self._set_state(CircuitState.OPEN)
        return False

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Invoke func through the breaker."""
        with self:
            return func(*args, **kwargs)

    def reset(self) -> None:
        """Close the circuit and forget past failures."""
        with self._lock:
            self._set_state(CircuitState.CLOSED)
            self._consecutive_failures = 0
