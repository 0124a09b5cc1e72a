# backend/portfolio_engine/services/valuation/series_generator.py
"""
Valuation series generator: the portfolio's value over a display window.

For N+1 evenly spaced instants across [window_start, window_end] and for each
asset, the generator combines:
- the ledger position at t (quantity, invested capital)
- the asset's price at t (history interpolation or synthetic policy)
- the exchange rates in effect on t's calendar day

into a ChartDataPoint with portfolio totals and per-asset breakdowns.

Rules per asset and instant:
- quantity <= 0: contributes nothing (value 0, cost 0)
- cash (fiat ticker or stablecoin): value = quantity, in its own currency
- otherwise: value = quantity * price(t)
- value is converted with the dated rate lookup for t

Failure policy: there is none that reaches the caller. A reversed window is
clamped, a missing price values the asset at zero for that instant, a
missing rate passes the amount through unconverted. An empty portfolio
produces an all-zero series.

Usage:
    generator = ValuationSeriesGenerator()
    points = generator.generate(
        assets, window_start, window_end,
        steps=150,
        display_currency="EUR",
        current_rates={"USD": 1.0, "EUR": 0.92},
        historical_rates={"2024-01-01": {"USD": 1.0, "EUR": 0.90}},
    )
"""

import logging
from decimal import Decimal
from typing import Mapping, Sequence

from portfolio_engine.config import settings
from portfolio_engine.models import Asset
from portfolio_engine.services.constants import MIN_WINDOW_MS
from portfolio_engine.services.exceptions import InvalidWindowError, NoDataError
from portfolio_engine.services.exchange_rates import ExchangeRateTable
from portfolio_engine.services.valuation.ledger import CostBasisLedger, fold
from portfolio_engine.services.valuation.pricing import AssetPricer
from portfolio_engine.services.valuation.types import ChartDataPoint, LedgerEntry, TimeWindow
from portfolio_engine.utils.date_utils import evenly_spaced

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def check_window(window_start: int, window_end: int) -> None:
    """
    Raises:
        InvalidWindowError: If the window's end is not after its start
    """
    if window_start >= window_end:
        raise InvalidWindowError(window_start, window_end)


def clamp_window(window_start: int, window_end: int) -> TimeWindow:
    """Window as given, or one day ending at window_end if it is reversed or empty."""
    try:
        check_window(window_start, window_end)
    except InvalidWindowError as e:
        logger.warning(f"{e}; clamping start to one day before the end")
        return TimeWindow(start_ms=window_end - MIN_WINDOW_MS, end_ms=window_end)
    return TimeWindow(start_ms=window_start, end_ms=window_end)


class _AssetTrack:
    """Per-asset state precomputed once per generation."""

    def __init__(self, asset: Asset, entries: list[LedgerEntry]) -> None:
        self.asset = asset
        self.entries = entries
        self.pricer = AssetPricer(asset)
        self.currency = asset.native_currency


class ValuationSeriesGenerator:
    """
    Builds stacked portfolio value and cost basis series.

    Stateless: every call receives its inputs and returns fresh points.
    """

    def __init__(self, default_steps: int | None = None) -> None:
        self.default_steps = default_steps if default_steps is not None else settings.chart_steps

    def generate(
            self,
            assets: Sequence[Asset],
            window_start: int,
            window_end: int,
            steps: int | None = None,
            display_currency: str = "USD",
            current_rates: Mapping[str, float | Decimal] | None = None,
            historical_rates: Mapping[str, Mapping[str, float | Decimal]] | None = None,
    ) -> list[ChartDataPoint]:
        """
        Generate steps + 1 points across the window.

        Args:
            assets: Frozen asset snapshot
            window_start: First instant (epoch ms)
            window_end: Last instant (epoch ms)
            steps: Number of intervals (default: generator's default_steps)
            display_currency: Currency of every output amount
            current_rates: Anchor-relative current snapshot
            historical_rates: ISO date -> anchor-relative snapshot

        Returns:
            List of ChartDataPoint ordered by timestamp
        """
        table = ExchangeRateTable.from_mappings(current_rates or {}, historical_rates or {})
        return self.generate_with_table(
            assets, window_start, window_end, steps, display_currency, table
        )

    def generate_with_table(
            self,
            assets: Sequence[Asset],
            window_start: int,
            window_end: int,
            steps: int | None,
            display_currency: str,
            rates: ExchangeRateTable,
    ) -> list[ChartDataPoint]:
        """Same as generate(), with rates already parsed into a table."""
        window = clamp_window(window_start, window_end)
        intervals = max(1, steps if steps is not None else self.default_steps)
        display_currency = display_currency.upper()

        ledger = CostBasisLedger(rates)
        tracks = [
            _AssetTrack(asset, ledger.entries_for(asset, display_currency))
            for asset in assets
        ]

        points = [
            self._point_at(timestamp, tracks, display_currency, rates)
            for timestamp in evenly_spaced(window.start_ms, window.end_ms, intervals)
        ]

        logger.debug(
            f"Generated {len(points)} points for {len(tracks)} assets in {display_currency} "
            f"({window.start_ms}..{window.end_ms})"
        )
        return points

    def _point_at(
            self,
            timestamp: int,
            tracks: list[_AssetTrack],
            display_currency: str,
            rates: ExchangeRateTable,
    ) -> ChartDataPoint:
        stack: dict[str, Decimal] = {}
        cost_stack: dict[str, Decimal] = {}
        total_value = ZERO
        total_cost = ZERO

        for track in tracks:
            position = fold(track.entries, timestamp)
            if not position.is_held:
                stack[track.asset.id] = ZERO
                cost_stack[track.asset.id] = ZERO
                continue

            native_value = self._native_value(track, position.quantity, timestamp)
            value = rates.convert_at(native_value, track.currency, display_currency, timestamp)

            stack[track.asset.id] = value
            cost_stack[track.asset.id] = position.invested_capital
            total_value += value
            total_cost += position.invested_capital

        return ChartDataPoint(
            timestamp=timestamp,
            cost_basis=total_cost,
            market_value=total_value,
            stack=stack,
            cost_stack=cost_stack,
        )

    @staticmethod
    def _native_value(track: _AssetTrack, quantity: Decimal, timestamp: int) -> Decimal:
        if track.asset.is_cash:
            return quantity

        try:
            price = track.pricer.price_at(timestamp)
        except NoDataError:
            logger.debug(f"No price for {track.asset.ticker} at {timestamp}, valuing at zero")
            return ZERO

        return quantity * price
