# backend/portfolio_engine/schemas/__init__.py
"""
Pydantic schemas for the engine's input and output boundary.

This package contains schemas organized by domain:
- assets: Asset and transaction snapshots (to_domain)
- exchange_rates: Current and historical rate tables (to_table)
- valuation: Chart points, valuation chart, portfolio summary (from_domain)
- benchmarks: Normalized series, benchmark lines, benchmark settings
- validators: Reusable validation functions (ticker, currency, timestamp)

Usage:
    from portfolio_engine.schemas import AssetIn, ExchangeRatesIn, ValuationChartOut

    assets = [AssetIn.model_validate(raw).to_domain() for raw in payload["assets"]]
    rates = ExchangeRatesIn.model_validate(payload["rates"]).to_table()
"""

from portfolio_engine.schemas.assets import AssetIn, TransactionIn, assets_to_domain
from portfolio_engine.schemas.benchmarks import (
    BenchmarkConfigSchema,
    BenchmarkSettingsSchema,
    ChartBenchmarkOut,
    CustomBenchmarkCreate,
    NormalizedPointOut,
)
from portfolio_engine.schemas.exchange_rates import ExchangeRatesIn, RateLookupOut
from portfolio_engine.schemas.valuation import (
    ChartDataPointOut,
    PortfolioSummaryOut,
    ValuationChartOut,
)

__all__ = [
    # Input
    "AssetIn",
    "TransactionIn",
    "assets_to_domain",
    "ExchangeRatesIn",
    "CustomBenchmarkCreate",
    # Output
    "ChartDataPointOut",
    "ValuationChartOut",
    "PortfolioSummaryOut",
    "NormalizedPointOut",
    "ChartBenchmarkOut",
    "RateLookupOut",
    # Settings
    "BenchmarkConfigSchema",
    "BenchmarkSettingsSchema",
]
