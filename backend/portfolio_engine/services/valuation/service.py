# backend/portfolio_engine/services/valuation/service.py
"""
Valuation Service - Main orchestrator for portfolio charts.

This is the single entry point for chart rendering:
- build_chart(): Valuation series for a time range
- summarize(): Current totals in the display currency
- compare_benchmarks(): Normalized benchmark lines for a built chart
- portfolio_return_percent(): Return over a series

Design Principles:
- Dependency Injection: generator and normalizer injected via constructor
- No I/O: assets, rates and benchmark histories are handed in by the caller
- Memoization: identical renders are served from a bounded LRU cache

A render is memoized only when the caller supplies both an assets revision
and a rates revision. The key is
(assets_revision, window start, window end, display currency,
rates_revision, steps); the caller bumps a revision whenever the
corresponding input changes.

Usage:
    from portfolio_engine.services.valuation import ValuationService

    service = ValuationService()
    chart = service.build_chart(
        assets, "1Y", "CHF", rates,
        assets_revision=42, rates_revision=7,
    )
    summary = service.summarize(assets, "CHF", rates)
    lines = service.compare_benchmarks(chart, fetched, settings)
"""

import logging
from decimal import Decimal
from typing import Mapping, Sequence

from portfolio_engine.models import Asset
from portfolio_engine.services.analytics.benchmark import (
    BenchmarkNormalizer,
    portfolio_return_percent,
)
from portfolio_engine.services.analytics.types import (
    BenchmarkData,
    BenchmarkSettings,
    ChartBenchmark,
)
from portfolio_engine.services.cache import BoundedLRUCache
from portfolio_engine.services.constants import HUNDRED
from portfolio_engine.services.exceptions import NoDataError
from portfolio_engine.services.exchange_rates import ExchangeRateTable
from portfolio_engine.services.valuation.ledger import CostBasisLedger
from portfolio_engine.services.valuation.pricing import AssetPricer
from portfolio_engine.services.valuation.series_generator import (
    ValuationSeriesGenerator,
    clamp_window,
)
from portfolio_engine.services.valuation.time_ranges import TimeRange, resolve_window
from portfolio_engine.services.valuation.types import (
    ChartDataPoint,
    PortfolioSummary,
    ValuationChart,
)
from portfolio_engine.utils.context import render_scope
from portfolio_engine.utils.date_utils import now_ms as current_ms

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ValuationService:
    """
    Orchestrates window resolution, series generation and summaries.

    Thread-safe: the only shared state is the memo cache, which locks
    internally.
    """

    def __init__(
            self,
            generator: ValuationSeriesGenerator | None = None,
            normalizer: BenchmarkNormalizer | None = None,
            cache_size: int = 64,
    ) -> None:
        self._generator = generator or ValuationSeriesGenerator()
        self._normalizer = normalizer or BenchmarkNormalizer()
        self._memo = BoundedLRUCache(maxsize=cache_size)

    # =========================================================================
    # CHART
    # =========================================================================

    def build_chart(
            self,
            assets: Sequence[Asset],
            time_range: TimeRange | str,
            display_currency: str,
            rates: ExchangeRateTable,
            assets_revision: int | str | None = None,
            rates_revision: int | str | None = None,
            now_ms: int | None = None,
            custom_start: int | None = None,
            custom_end: int | None = None,
            steps: int | None = None,
    ) -> ValuationChart:
        """
        Valuation series for a time range.

        Args:
            assets: Frozen asset snapshot
            time_range: Range toggle ("24H", "1W", ..., "ALL", "CUSTOM")
            display_currency: Currency of every output amount
            rates: Current and historical rates
            assets_revision: Caller's version of the asset set (memo key)
            rates_revision: Caller's version of the rate table (memo key)
            now_ms: Reference "now" (default: wall clock)
            custom_start: CUSTOM range start (epoch ms)
            custom_end: CUSTOM range end (epoch ms)
            steps: Number of intervals (default: generator's)

        Returns:
            ValuationChart

        Raises:
            ValueError: If time_range is not a known range
        """
        display_currency = display_currency.upper()

        with render_scope(time_range=str(TimeRange(time_range).value), currency=display_currency):
            requested = resolve_window(time_range, assets, now_ms, custom_start, custom_end)
            window = clamp_window(requested.start_ms, requested.end_ms)

            key = None
            if assets_revision is not None and rates_revision is not None:
                key = (
                    assets_revision,
                    window.start_ms,
                    window.end_ms,
                    display_currency,
                    rates_revision,
                    steps,
                )
                cached = self._memo.get(key)
                if cached is not None:
                    logger.debug(f"Serving memoized chart for revision {assets_revision}")
                    return cached

            points = self._generator.generate_with_table(
                assets, window.start_ms, window.end_ms, steps, display_currency, rates
            )
            chart = ValuationChart(
                window=window,
                display_currency=display_currency,
                points=points,
                return_percent=portfolio_return_percent(points),
            )

            if key is not None:
                self._memo.set(key, chart)

            logger.info(
                f"Built {TimeRange(time_range).value} chart: {len(points)} points, "
                f"{len(assets)} assets, {display_currency}"
            )
            return chart

    def compare_benchmarks(
            self,
            chart: ValuationChart,
            data: Mapping[str, BenchmarkData],
            settings: BenchmarkSettings,
            rates: ExchangeRateTable | None = None,
    ) -> list[ChartBenchmark]:
        """
        Visible benchmarks normalized over the chart's window.

        When rates are given, benchmark prices are re-denominated into the
        chart's display currency before normalizing.
        """
        return self._normalizer.prepare_for_chart(
            data,
            settings,
            chart.window.start_ms,
            chart.window.end_ms,
            display_currency=chart.display_currency if rates is not None else None,
            rates=rates,
        )

    @staticmethod
    def portfolio_return_percent(points: Sequence[ChartDataPoint]) -> Decimal:
        """Last market value vs first nonzero market value, in percent."""
        return portfolio_return_percent(points)

    def invalidate(self) -> None:
        """Drop every memoized chart."""
        self._memo.clear()

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def summarize(
            self,
            assets: Sequence[Asset],
            display_currency: str,
            rates: ExchangeRateTable,
            now_ms: int | None = None,
    ) -> PortfolioSummary:
        """
        Current totals: value at current quotes and current rates, invested
        capital from the ledger at now.

        Assets no longer held contribute nothing to either total.
        """
        display_currency = display_currency.upper()
        now = now_ms if now_ms is not None else current_ms()
        ledger = CostBasisLedger(rates)

        holdings: dict[str, Decimal] = {}
        total_value = ZERO
        invested = ZERO

        for asset in assets:
            position = ledger.reconstruct_at(asset, now, display_currency)
            if not position.is_held:
                holdings[asset.id] = ZERO
                continue

            native_value = position.quantity * self._current_price(asset, now)
            value = rates.convert_current(native_value, asset.native_currency, display_currency)

            holdings[asset.id] = value
            total_value += value
            invested += position.invested_capital

        pnl = total_value - invested
        pnl_percent = pnl / invested * HUNDRED if invested > 0 else ZERO

        return PortfolioSummary(
            display_currency=display_currency,
            total_value=total_value,
            invested_capital=invested,
            unrealized_pnl=pnl,
            pnl_percent=pnl_percent,
            holdings=holdings,
        )

    @staticmethod
    def _current_price(asset: Asset, now: int) -> Decimal:
        if asset.is_cash:
            return Decimal("1")
        if asset.current_price is not None and asset.current_price > 0:
            return asset.current_price
        try:
            return AssetPricer(asset).price_at(now)
        except NoDataError:
            logger.debug(f"No current price for {asset.ticker}, valuing at zero")
            return ZERO
