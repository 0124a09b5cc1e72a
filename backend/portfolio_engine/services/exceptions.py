# backend/portfolio_engine/services/exceptions.py
"""
Exceptions raised by the engine and its fetch collaborators.

None of them is allowed
to interrupt a render: the engine entry points (series generation, benchmark
normalization, portfolio summary) recover from every EngineError locally and
log it as a data-quality signal. The collaborator errors (market data, FX)
are raised by the fetch collaborators and translated into "stale cache or
nothing" before any data reaches the engine.

Exception Hierarchy:
    ServiceError (base)
    ├── EngineError
    │   ├── NoDataError
    │   ├── MissingRateError
    │   └── InvalidWindowError
    ├── ValidationError
    ├── BenchmarkError
    │   ├── DuplicateBenchmarkError
    │   ├── BenchmarkLimitError
    │   └── BenchmarkNotFoundError
    ├── MarketDataError
    │   ├── ProviderUnavailableError
    │   ├── TickerNotFoundError
    │   └── RateLimitError
    └── FXRateError
        └── FXProviderError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when circuit breaker is open and blocking requests
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# ENGINE ERRORS (always recovered inside the engine)
# =============================================================================


class EngineError(ServiceError):
    """Base exception for recoverable valuation engine conditions."""
    pass


class NoDataError(EngineError):
    """
    Raised when a price is required but no source can supply one.

    Recovered by the synthetic price policy, or by valuing the asset at
    zero for that instant when the policy has nothing either.

    Attributes:
        subject: Ticker or series label the lookup was for (optional)
    """

    def __init__(self, message: str | None = None, subject: str | None = None) -> None:
        self.subject = subject
        msg = message or (
            f"No price data available for '{subject}'" if subject
            else "Price series is empty"
        )
        super().__init__(msg)


class MissingRateError(EngineError):
    """
    Raised when a currency has no entry in the supplied rate snapshot.

    Recovered by returning the amount unconverted.

    Attributes:
        from_currency: Source currency code
        to_currency: Target currency code
        missing: The code(s) absent from the snapshot
    """

    def __init__(
            self,
            from_currency: str,
            to_currency: str,
            missing: list[str] | None = None,
    ) -> None:
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.missing = missing or []
        detail = f" (missing: {', '.join(self.missing)})" if self.missing else ""
        super().__init__(
            f"No exchange rate to convert {from_currency} to {to_currency}{detail}"
        )


class InvalidWindowError(EngineError):
    """
    Raised when a window's end is not after its start.

    Recovered by clamping the start to one day before the end.

    Attributes:
        start_ms: Requested window start
        end_ms: Requested window end
    """

    def __init__(self, start_ms: int, end_ms: int) -> None:
        self.start_ms = start_ms
        self.end_ms = end_ms
        super().__init__(
            f"Window end {end_ms} is not after window start {start_ms}"
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when programmatic input validation fails.

    User-facing payload validation is handled by the pydantic schemas.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


# =============================================================================
# BENCHMARK SETTINGS ERRORS
# =============================================================================


class BenchmarkError(ServiceError):
    """
    Base exception for benchmark list management.

    Attributes:
        ticker: The benchmark ticker involved
    """

    def __init__(self, message: str, ticker: str | None = None) -> None:
        self.ticker = ticker
        super().__init__(message)


class DuplicateBenchmarkError(BenchmarkError):
    """Raised when adding a benchmark whose ticker is already configured."""

    def __init__(self, ticker: str) -> None:
        super().__init__(f"Benchmark '{ticker}' already exists", ticker=ticker)


class BenchmarkLimitError(BenchmarkError):
    """
    Raised when showing another benchmark would exceed the visible limit.

    Attributes:
        max_visible: The configured limit
    """

    def __init__(self, ticker: str, max_visible: int) -> None:
        self.max_visible = max_visible
        super().__init__(
            f"Cannot show '{ticker}': at most {max_visible} benchmarks can be visible",
            ticker=ticker,
        )


class BenchmarkNotFoundError(BenchmarkError):
    """Raised when a benchmark ticker is not in the settings."""

    def __init__(self, ticker: str) -> None:
        super().__init__(f"Benchmark '{ticker}' not found", ticker=ticker)


# =============================================================================
# COLLABORATOR ERRORS: BENCHMARK HISTORIES
# =============================================================================


class MarketDataError(ServiceError):
    """
    A benchmark history source failed.

    Never reaches the engine: BenchmarkDataService serves its stale cache
    entry instead, or reports the benchmark as unavailable.

    Attributes:
        provider: Source name ("yahoo")
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    The source could not answer right now (timeout, 5xx, connection reset).

    Retried with backoff and counted by the circuit breaker.
    """

    def __init__(self, provider: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"{provider} did not answer: {reason}", provider=provider)


class TickerNotFoundError(MarketDataError):
    """The source has no history for the symbol. Not retried."""

    def __init__(self, ticker: str, provider: str) -> None:
        self.ticker = ticker
        super().__init__(f"{provider} has no history for '{ticker}'", provider=provider)


class RateLimitError(MarketDataError):
    """
    The source is throttling requests. Retried with backoff.

    Attributes:
        retry_after: Seconds the source asked us to wait, when it said
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        suffix = f", retry in {retry_after}s" if retry_after else ""
        super().__init__(f"{provider} is throttling requests{suffix}", provider=provider)


# =============================================================================
# COLLABORATOR ERRORS: EXCHANGE RATES
# =============================================================================


class FXRateError(ServiceError):
    """An exchange rate source failed."""


class FXProviderError(FXRateError):
    """
    A rate endpoint was unreachable or returned an unusable payload.

    FXRateService answers with its cached or hardcoded rates instead.

    Attributes:
        provider: Endpoint or source name
        reason: What went wrong
    """

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"Rate source {provider} failed: {reason}")


# =============================================================================
# CIRCUIT BREAKER (re-exported for convenience)
# =============================================================================

from portfolio_engine.services.circuit_breaker import CircuitBreakerOpen

__all__ = [
    # Base
    "ServiceError",
    # Engine
    "EngineError",
    "NoDataError",
    "MissingRateError",
    "InvalidWindowError",
    # Validation
    "ValidationError",
    # Benchmarks
    "BenchmarkError",
    "DuplicateBenchmarkError",
    "BenchmarkLimitError",
    "BenchmarkNotFoundError",
    # Market Data
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    # FX
    "FXRateError",
    "FXProviderError",
    # Circuit Breaker
    "CircuitBreakerOpen",
]
