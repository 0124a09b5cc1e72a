# backend/tests/services/test_circuit_breaker.py
"""
Tests for the circuit breaker guarding upstream fetches.

This module tests:
- State transitions (CLOSED -> OPEN -> HALF_OPEN -> CLOSED/OPEN)
- Excluded exceptions never counting as failures
- Single trial call in HALF_OPEN
- Parameter validation
"""

import pytest

from portfolio_engine.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
)
from portfolio_engine.services.exceptions import ProviderUnavailableError, TickerNotFoundError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(
        name="test",
        failure_threshold=3,
        recovery_timeout=60.0,
        excluded_exceptions=(TickerNotFoundError,),
        clock=clock,
    )


def _fail(breaker: CircuitBreaker, exc: Exception | None = None) -> None:
    with pytest.raises(type(exc) if exc else RuntimeError):
        with breaker:
            raise exc or RuntimeError("boom")


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

class TestCircuitBreakerStates:
    """Tests for state transitions."""

    def test_starts_closed(self, breaker):
        """A new breaker lets calls through."""
        assert breaker.state == CircuitState.CLOSED
        assert breaker.call(lambda: 42) == 42

    def test_opens_after_threshold(self, breaker):
        """Three consecutive failures open the circuit."""
        for _ in range(3):
            _fail(breaker)

        assert breaker.is_open
        with pytest.raises(CircuitBreakerOpen) as exc_info:
            breaker.call(lambda: 1)
        assert exc_info.value.breaker_name == "test"
        assert exc_info.value.time_remaining == pytest.approx(60.0)

    def test_success_resets_failure_count(self, breaker):
        """A success between failures keeps the circuit closed."""
        _fail(breaker)
        _fail(breaker)
        breaker.call(lambda: None)
        _fail(breaker)
        _fail(breaker)

        assert breaker.state == CircuitState.CLOSED

    def test_half_open_after_cooldown(self, breaker, clock):
        """The circuit allows a trial once the recovery timeout elapses."""
        for _ in range(3):
            _fail(breaker)

        clock.advance(61)

        assert breaker.state == CircuitState.HALF_OPEN

    def test_trial_success_closes(self, breaker, clock):
        """A successful trial call closes the circuit."""
        for _ in range(3):
            _fail(breaker)
        clock.advance(61)

        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state == CircuitState.CLOSED

    def test_trial_failure_reopens(self, breaker, clock):
        """A failed trial call re-opens the circuit for another cooldown."""
        for _ in range(3):
            _fail(breaker)
        clock.advance(61)

        _fail(breaker, ProviderUnavailableError("yahoo", "down"))

        assert breaker.state == CircuitState.OPEN

    def test_only_one_trial_in_flight(self, breaker, clock):
        """A second caller during the trial is rejected."""
        for _ in range(3):
            _fail(breaker)
        clock.advance(61)

        with breaker:
            with pytest.raises(CircuitBreakerOpen):
                with breaker:
                    pass

    def test_reset(self, breaker):
        """reset() closes an open circuit."""
        for _ in range(3):
            _fail(breaker)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED


# =============================================================================
# EXCLUDED EXCEPTIONS
# =============================================================================

class TestExcludedExceptions:
    """Tests for exceptions that say nothing about upstream health."""

    def test_excluded_exception_not_counted(self, breaker):
        """Unknown tickers never open the circuit."""
        for _ in range(5):
            _fail(breaker, TickerNotFoundError("NOPE", "yahoo"))

        assert breaker.state == CircuitState.CLOSED

    def test_exceptions_propagate(self, breaker):
        """The breaker never swallows the wrapped exception."""
        def bad():
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            breaker.call(bad)


# =============================================================================
# VALIDATION
# =============================================================================

class TestCircuitBreakerValidation:
    """Tests for constructor validation."""

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError, match="failure_threshold"):
            CircuitBreaker(name="x", failure_threshold=0)

    def test_timeout_cannot_be_negative(self):
        with pytest.raises(ValueError, match="recovery_timeout"):
            CircuitBreaker(name="x", recovery_timeout=-1)
