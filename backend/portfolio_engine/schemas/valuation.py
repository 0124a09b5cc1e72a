# backend/portfolio_engine/schemas/valuation.py
"""
Pydantic schemas for valuation output.

These schemas handle:
- Chart points (aggregate and per-asset stacked values)
- The valuation chart with its resolved window
- Current portfolio summary (value, invested capital, P&L)

Percentages are rounded to two decimals for display; amounts are passed
through unrounded.
"""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

from portfolio_engine.services.constants import PERCENTAGE_PRECISION
from portfolio_engine.services.valuation.types import (
    ChartDataPoint,
    PortfolioSummary,
    ValuationChart,
)


def round_percent(value: Decimal) -> Decimal:
    return value.quantize(PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP)


# =============================================================================
# CHART SCHEMAS
# =============================================================================

class ChartDataPointOut(BaseModel):
    """One reconstructed instant of the portfolio."""

    model_config = ConfigDict(from_attributes=True)

    timestamp: int = Field(..., description="Epoch milliseconds (UTC)")
    cost_basis: Decimal = Field(..., description="Invested capital of held assets")
    market_value: Decimal = Field(..., description="Market value of held assets")
    stack: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Asset id -> market value"
    )
    cost_stack: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Asset id -> invested capital"
    )

    @classmethod
    def from_domain(cls, point: ChartDataPoint) -> "ChartDataPointOut":
        return cls(
            timestamp=point.timestamp,
            cost_basis=point.cost_basis,
            market_value=point.market_value,
            stack=dict(point.stack),
            cost_stack=dict(point.cost_stack),
        )


class ValuationChartOut(BaseModel):
    """Valuation series over a resolved window."""

    display_currency: str
    start: int = Field(..., description="Window start (epoch ms)")
    end: int = Field(..., description="Window end (epoch ms)")
    return_percent: Decimal = Field(..., description="Portfolio return over the window")
    points: list[ChartDataPointOut]

    @classmethod
    def from_domain(cls, chart: ValuationChart) -> "ValuationChartOut":
        return cls(
            display_currency=chart.display_currency,
            start=chart.window.start_ms,
            end=chart.window.end_ms,
            return_percent=round_percent(chart.return_percent),
            points=[ChartDataPointOut.from_domain(p) for p in chart.points],
        )


# =============================================================================
# SUMMARY SCHEMAS
# =============================================================================

class PortfolioSummaryOut(BaseModel):
    """Current totals in the display currency."""

    model_config = ConfigDict(from_attributes=True)

    display_currency: str
    total_value: Decimal
    invested_capital: Decimal
    unrealized_pnl: Decimal
    pnl_percent: Decimal = Field(..., description="Rounded to 0.01")
    is_profit: bool
    holdings: dict[str, Decimal] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, summary: PortfolioSummary) -> "PortfolioSummaryOut":
        return cls(
            display_currency=summary.display_currency,
            total_value=summary.total_value,
            invested_capital=summary.invested_capital,
            unrealized_pnl=summary.unrealized_pnl,
            pnl_percent=round_percent(summary.pnl_percent),
            is_profit=summary.is_profit,
            holdings=dict(summary.holdings),
        )
