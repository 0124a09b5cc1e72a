# backend/portfolio_engine/services/valuation/__init__.py
"""
Portfolio valuation over time.

Components:
    - ledger: Cost basis ledger replay (quantity and invested capital at t)
    - pricing: Price history interpolation and the synthetic price policy
    - series_generator: Stacked value / cost basis series over a window
    - time_ranges: Range toggles to concrete windows
    - service: ValuationService orchestrator with memoization

Usage:
    from portfolio_engine.services.valuation import ValuationService, TimeRange

    service = ValuationService()
    chart = service.build_chart(assets, TimeRange.YEAR, "EUR", rates)
"""

from portfolio_engine.services.valuation.ledger import (
    POLARITY_TABLE,
    CostBasisLedger,
    Polarity,
    fold,
    is_acquisition,
    polarity_of,
    reconstruct_at,
)
from portfolio_engine.services.valuation.pricing import (
    AssetPricer,
    SyntheticPricePolicy,
    price_at,
)
from portfolio_engine.services.valuation.series_generator import (
    ValuationSeriesGenerator,
    check_window,
    clamp_window,
)
from portfolio_engine.services.valuation.service import ValuationService
from portfolio_engine.services.valuation.time_ranges import (
    TimeRange,
    is_short_range,
    resolve_window,
)
from portfolio_engine.services.valuation.types import (
    ChartDataPoint,
    LedgerEntry,
    LedgerPosition,
    PortfolioSummary,
    TimeWindow,
    ValuationChart,
)

__all__ = [
    # Service
    "ValuationService",
    # Generator
    "ValuationSeriesGenerator",
    "check_window",
    "clamp_window",
    # Ledger
    "CostBasisLedger",
    "Polarity",
    "POLARITY_TABLE",
    "polarity_of",
    "is_acquisition",
    "fold",
    "reconstruct_at",
    # Pricing
    "AssetPricer",
    "SyntheticPricePolicy",
    "price_at",
    # Time ranges
    "TimeRange",
    "resolve_window",
    "is_short_range",
    # Types
    "ChartDataPoint",
    "LedgerEntry",
    "LedgerPosition",
    "PortfolioSummary",
    "TimeWindow",
    "ValuationChart",
]
