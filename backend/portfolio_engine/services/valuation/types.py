# backend/portfolio_engine/services/valuation/types.py
"""
Data types for the valuation engine.

Uses frozen dataclasses for value objects:
- LedgerEntry / LedgerPosition: ledger replay inputs and results
- TimeWindow: a resolved [start, end] display window
- ChartDataPoint: one reconstructed instant of the portfolio
- PortfolioSummary: current totals in the display currency
- ValuationChart: a generated series together with its window

All monetary values are Decimal, already converted to the display
currency. Per-asset breakdown maps are keyed by Asset.id.
"""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class LedgerEntry:
    """
    One transaction's signed effect on a holding.

    Attributes:
        timestamp: When the effect applies (epoch ms)
        quantity_delta: Signed change in units held
        capital_delta: Signed change in invested capital, display currency
    """
    timestamp: int
    quantity_delta: Decimal
    capital_delta: Decimal


@dataclass(frozen=True)
class LedgerPosition:
    """
    Holding state reconstructed at a cursor time.

    Attributes:
        quantity: Units held
        invested_capital: External money put into the holding, display currency
    """
    quantity: Decimal = Decimal("0")
    invested_capital: Decimal = Decimal("0")

    @property
    def is_held(self) -> bool:
        return self.quantity > 0

    def apply(self, entry: LedgerEntry) -> "LedgerPosition":
        return LedgerPosition(
            quantity=self.quantity + entry.quantity_delta,
            invested_capital=self.invested_capital + entry.capital_delta,
        )


@dataclass(frozen=True)
class TimeWindow:
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


@dataclass(frozen=True)
class ChartDataPoint:
    """
    One reconstructed instant of the portfolio.

    Attributes:
        timestamp: Instant (epoch ms)
        cost_basis: Sum of invested capital over held assets
        market_value: Sum of market value over held assets
        stack: Asset id -> market value
        cost_stack: Asset id -> invested capital
    """
    timestamp: int
    cost_basis: Decimal
    market_value: Decimal
    stack: dict[str, Decimal] = field(default_factory=dict)
    cost_stack: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class PortfolioSummary:
    """
    Current portfolio totals in the display currency.

    Attributes:
        display_currency: Currency every amount is expressed in
        total_value: Market value at current quotes and current rates
        invested_capital: Net external money put in (ledger at now)
        unrealized_pnl: total_value - invested_capital
        pnl_percent: unrealized_pnl / invested_capital * 100 (0 if nothing invested)
        holdings: Asset id -> current market value
    """
    display_currency: str
    total_value: Decimal
    invested_capital: Decimal
    unrealized_pnl: Decimal
    pnl_percent: Decimal
    holdings: dict[str, Decimal] = field(default_factory=dict)

    @property
    def is_profit(self) -> bool:
        return self.unrealized_pnl >= 0


@dataclass(frozen=True)
class ValuationChart:
    """
    A rendered valuation series with its resolved window.

    Attributes:
        window: The window the points span (after clamping)
        display_currency: Currency of every amount
        points: steps + 1 ChartDataPoints, oldest first
        return_percent: Portfolio return over the window
    """
    window: TimeWindow
    display_currency: str
    points: list[ChartDataPoint]
    return_percent: Decimal

    @property
    def timestamps(self) -> list[int]:
        return [p.timestamp for p in self.points]

    @property
    def latest(self) -> ChartDataPoint | None:
        return self.points[-1] if self.points else None
