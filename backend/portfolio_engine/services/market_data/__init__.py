# backend/portfolio_engine/services/market_data/__init__.py
"""
Fetch collaborators that feed the engine.

This package contains:
- Shared retry base class (base.py)
- Yahoo Finance benchmark histories (benchmark_provider.py)
- Current and historical exchange rates (fx_provider.py)

Usage:
    from portfolio_engine.services.market_data import (
        BenchmarkDataService,
        FXRateService,
    )

Architecture:
    UpstreamProvider (ABC, tenacity retry)
    ├── BenchmarkDataService (yfinance + TTLCache + CircuitBreaker)
    └── FXRateService (requests + TTLCache + fallback table)
"""

from portfolio_engine.services.market_data.base import UpstreamProvider
from portfolio_engine.services.market_data.benchmark_provider import (
    BenchmarkDataService,
    is_crypto_ticker,
    yahoo_params,
)
from portfolio_engine.services.market_data.fx_provider import (
    SUPPORTED_CURRENCIES,
    FXRateService,
)

__all__ = [
    "UpstreamProvider",
    "BenchmarkDataService",
    "is_crypto_ticker",
    "yahoo_params",
    "FXRateService",
    "SUPPORTED_CURRENCIES",
]
