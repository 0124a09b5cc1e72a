# backend/portfolio_engine/services/analytics/benchmark.py
"""
Benchmark normalization for side-by-side comparison with the portfolio.

Prices of different instruments live on unrelated scales (an index at 11000
points, Bitcoin at 60000 USD), so both the benchmarks and the portfolio are
re-expressed as percent change from the start of the display window:

    percent_change(t) = (price(t) - price(start)) / price(start) * 100

The portfolio uses its first nonzero market value as the baseline instead
of the window start: a portfolio that is empty when the window opens would
otherwise divide by zero, or show a jump of thousands of percent when its
first asset arrives. Points before the baseline are 0%.

Grids built with evenly_spaced() over the same window share their
endpoints, so a benchmark and the portfolio can be compared index by index
after resample() maps one onto the other's timestamps.

Nothing here raises to the caller: an empty series, or one whose start
price is not positive, normalizes to an empty list and is simply not
drawn.

Usage:
    normalizer = BenchmarkNormalizer()
    spx = normalizer.normalize(spx_series, window.start_ms, window.end_ms)
    mine = normalize_portfolio(chart_points)
    delta = outperformance(mine, spx)
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Mapping, Sequence

from portfolio_engine.services.analytics.types import (
    BenchmarkData,
    BenchmarkSettings,
    ChartBenchmark,
    NormalizedPoint,
)
from portfolio_engine.config import settings as engine_settings
from portfolio_engine.services.constants import HUNDRED, MIN_WINDOW_MS
from portfolio_engine.services.exceptions import NoDataError
from portfolio_engine.services.exchange_rates import ExchangeRateTable
from portfolio_engine.services.price_series import PricePoint, PriceSeries, interpolate, value_at
from portfolio_engine.utils.date_utils import evenly_spaced

if TYPE_CHECKING:
    from portfolio_engine.services.valuation.types import ChartDataPoint

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _percent_change(value: Decimal, baseline: Decimal) -> Decimal:
    return (value - baseline) / baseline * HUNDRED


def _grid(window_start: int, window_end: int, points: int) -> list[int]:
    if window_start >= window_end:
        window_start = window_end - MIN_WINDOW_MS
    return evenly_spaced(window_start, window_end, points - 1)


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize(
        series: PriceSeries,
        window_start: int,
        window_end: int,
        points: int | None = None,
) -> list[NormalizedPoint]:
    """
    Percent change from window start on an evenly spaced grid.

    Args:
        series: Raw benchmark prices
        window_start: First grid timestamp (epoch ms)
        window_end: Last grid timestamp (epoch ms)
        points: Number of grid points (default: BENCHMARK_POINTS setting)

    Returns:
        `points` NormalizedPoints, or an empty list when the series is
        empty, the start price is not positive, or points < 1
    """
    if points is None:
        points = engine_settings.benchmark_points
    if points < 1 or series.is_empty:
        return []

    grid = _grid(window_start, window_end, points)
    try:
        start_price = value_at(series, grid[0])
    except NoDataError:
        return []

    if start_price <= 0:
        logger.debug(f"Non-positive start price {start_price}, skipping normalization")
        return []

    return [
        NormalizedPoint(
            timestamp=timestamp,
            percent_change=_percent_change(value_at(series, timestamp), start_price),
        )
        for timestamp in grid
    ]


def normalize_portfolio(chart_points: Sequence["ChartDataPoint"]) -> list[NormalizedPoint]:
    """
    Portfolio return series from its market values.

    The first point with a nonzero market value is the baseline. Points
    before it are 0%. A portfolio that never holds anything is flat at 0%.
    """
    baseline: Decimal | None = None
    normalized = []

    for point in chart_points:
        if baseline is None and point.market_value != 0:
            baseline = point.market_value

        if baseline is None:
            percent = ZERO
        else:
            percent = _percent_change(point.market_value, baseline)

        normalized.append(NormalizedPoint(timestamp=point.timestamp, percent_change=percent))

    return normalized


def portfolio_return_percent(chart_points: Sequence["ChartDataPoint"]) -> Decimal:
    """
    Return over the window: last market value vs first nonzero market value.

    Returns 0 when the portfolio never held anything in the window.
    """
    for point in chart_points:
        if point.market_value != 0:
            return _percent_change(chart_points[-1].market_value, point.market_value)
    return ZERO


# =============================================================================
# RESAMPLING & COMPARISON
# =============================================================================

def resample(series: Sequence[NormalizedPoint], timestamps: Sequence[int]) -> list[NormalizedPoint]:
    """
    Interpolate a normalized series onto other timestamps.

    Flat beyond the series' ends, linear in between. Empty in, empty out.
    """
    if not series:
        return []

    source_ts = [p.timestamp for p in series]
    source_values = [p.percent_change for p in series]

    return [
        NormalizedPoint(
            timestamp=timestamp,
            percent_change=interpolate(source_ts, source_values, timestamp),
        )
        for timestamp in timestamps
    ]


def outperformance(
        portfolio: Sequence[NormalizedPoint],
        benchmark: Sequence[NormalizedPoint],
) -> list[NormalizedPoint]:
    """
    Portfolio minus benchmark, in percentage points, on the portfolio's grid.

    Returns an empty list if either series is empty.
    """
    if not portfolio or not benchmark:
        return []

    aligned = resample(benchmark, [p.timestamp for p in portfolio])
    return [
        NormalizedPoint(
            timestamp=mine.timestamp,
            percent_change=mine.percent_change - theirs.percent_change,
        )
        for mine, theirs in zip(portfolio, aligned)
    ]


def value_at_cursor(series: Sequence[NormalizedPoint], timestamp: int) -> Decimal | None:
    """Percent change at a hover/cursor instant, or None for an empty series."""
    if not series:
        return None
    return interpolate(
        [p.timestamp for p in series],
        [p.percent_change for p in series],
        timestamp,
    )


# =============================================================================
# CURRENCY
# =============================================================================

def convert_series(
        series: PriceSeries,
        from_currency: str,
        to_currency: str,
        rates: ExchangeRateTable,
) -> PriceSeries:
    """
    Re-denominate a price history with the rates in effect at each sample.

    Gives the display-currency investor's view of a foreign benchmark.
    """
    if from_currency.upper() == to_currency.upper():
        return series

    return PriceSeries(points=tuple(
        PricePoint(
            timestamp=p.timestamp,
            price=rates.convert_at(p.price, from_currency, to_currency, p.timestamp),
        )
        for p in series.points
    ))


# =============================================================================
# BENCHMARK NORMALIZER
# =============================================================================

class BenchmarkNormalizer:
    """
    Normalizes benchmark histories over a display window.

    Example:
        normalizer = BenchmarkNormalizer(points=150)
        chart = normalizer.prepare_for_chart(fetched, settings, start, end)
    """

    def __init__(self, points: int | None = None) -> None:
        self.points = points if points is not None else engine_settings.benchmark_points

    def normalize(
            self,
            series: PriceSeries,
            window_start: int,
            window_end: int,
            points: int | None = None,
    ) -> list[NormalizedPoint]:
        return normalize(series, window_start, window_end, points or self.points)

    def prepare_for_chart(
            self,
            data: Mapping[str, BenchmarkData],
            settings: BenchmarkSettings,
            window_start: int,
            window_end: int,
            display_currency: str | None = None,
            rates: ExchangeRateTable | None = None,
    ) -> list[ChartBenchmark]:
        """
        Normalized series for every visible benchmark that has data.

        Benchmarks that are hidden, were not fetched, or normalize to an
        empty series are left out.

        Args:
            data: Ticker -> fetched BenchmarkData
            settings: The user's benchmark list
            window_start: Window start (epoch ms)
            window_end: Window end (epoch ms)
            display_currency: If given together with rates, prices are
                re-denominated before normalizing
            rates: Rate table for re-denomination

        Returns:
            ChartBenchmark per drawable benchmark, in settings order
        """
        prepared = []

        for config in settings.visible:
            benchmark = data.get(config.ticker)
            if benchmark is None or benchmark.price_history.is_empty:
                logger.debug(f"No data for benchmark {config.ticker}, skipping")
                continue

            series = benchmark.price_history
            if display_currency and rates is not None:
                series = convert_series(series, benchmark.currency, display_currency, rates)

            normalized = self.normalize(series, window_start, window_end)
            if not normalized:
                continue

            prepared.append(ChartBenchmark(
                ticker=config.ticker,
                name=config.name,
                color=config.color,
                points=normalized,
                return_percent=normalized[-1].percent_change,
            ))

        return prepared


def prepare_benchmarks_for_chart(
        data: Mapping[str, BenchmarkData],
        settings: BenchmarkSettings,
        window_start: int,
        window_end: int,
        points: int | None = None,
        display_currency: str | None = None,
        rates: ExchangeRateTable | None = None,
) -> list[ChartBenchmark]:
    return BenchmarkNormalizer(points).prepare_for_chart(
        data, settings, window_start, window_end, display_currency, rates
    )
