# backend/portfolio_engine/services/__init__.py
"""
Service layer: the valuation engine and its fetch collaborators.

The engine performs no I/O. It receives frozen asset snapshots and rate
tables and returns fresh series; it raises domain exceptions only from its
strict helpers and never from the chart-building paths.

Usage:
    from portfolio_engine.services.valuation import ValuationService
    from portfolio_engine.services.analytics import BenchmarkNormalizer
    from portfolio_engine.services.market_data import BenchmarkDataService, FXRateService
    from portfolio_engine.services import MissingRateError, ExchangeRateTable

Architecture:
    services/
    ├── __init__.py          # This file - light exports only
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Currencies, resolutions, TTLs
    ├── protocols.py         # Collaborator interfaces (Protocol classes)
    ├── circuit_breaker.py   # Circuit breaker for external APIs
    ├── cache.py             # LRU memo and TTL fetch cache
    ├── currency.py          # Currency detection and stablecoin pegs
    ├── price_series.py      # PriceSeries and interpolation
    ├── exchange_rates.py    # Conversion and the three-tier rate lookup
    ├── valuation/           # Ledger, pricing, series generator, service
    ├── analytics/           # Benchmark normalization and settings
    └── market_data/         # yfinance and FX API collaborators

The valuation, analytics and market_data packages are not imported here so
that importing a helper does not load yfinance or pandas.
"""

from portfolio_engine.services.exceptions import (
    BenchmarkError,
    BenchmarkLimitError,
    BenchmarkNotFoundError,
    CircuitBreakerOpen,
    DuplicateBenchmarkError,
    EngineError,
    FXProviderError,
    FXRateError,
    InvalidWindowError,
    MarketDataError,
    MissingRateError,
    NoDataError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    TickerNotFoundError,
    ValidationError,
)
from portfolio_engine.services.exchange_rates import (
    ExchangeRateTable,
    RateSource,
    convert,
    convert_or_passthrough,
)
from portfolio_engine.services.price_series import PricePoint, PriceSeries
from portfolio_engine.services.protocols import BenchmarkFetcher, ExchangeRateFetcher

__all__ = [
    # Exceptions
    "ServiceError",
    "EngineError",
    "NoDataError",
    "MissingRateError",
    "InvalidWindowError",
    "ValidationError",
    "BenchmarkError",
    "DuplicateBenchmarkError",
    "BenchmarkLimitError",
    "BenchmarkNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "FXRateError",
    "FXProviderError",
    "CircuitBreakerOpen",
    # Rates
    "ExchangeRateTable",
    "RateSource",
    "convert",
    "convert_or_passthrough",
    # Prices
    "PricePoint",
    "PriceSeries",
    # Collaborator interfaces
    "BenchmarkFetcher",
    "ExchangeRateFetcher",
]
