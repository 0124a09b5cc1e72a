# backend/tests/services/valuation/test_valuation_service.py
"""
Tests for the ValuationService orchestrator.

This module tests:
- build_chart(): window resolution, clamping, memoization by revision
- compare_benchmarks(): delegation to the normalizer over the chart window
- summarize(): current totals and P&L
- portfolio_return_percent()
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from portfolio_engine.services.analytics.types import (
    BenchmarkConfig,
    BenchmarkData,
    BenchmarkSettings,
)
from portfolio_engine.services.price_series import PriceSeries
from portfolio_engine.services.valuation import (
    ChartDataPoint,
    TimeRange,
    ValuationSeriesGenerator,
    ValuationService,
)
from portfolio_engine.utils.date_utils import MS_PER_DAY, date_to_ms

JAN_1 = date_to_ms(date(2024, 1, 1))
FEB_1 = date_to_ms(date(2024, 2, 1))
NOW = date_to_ms(date(2024, 6, 1))


@pytest.fixture
def service() -> ValuationService:
    return ValuationService(generator=ValuationSeriesGenerator(default_steps=10))


@pytest.fixture
def btc(make_asset, make_tx):
    return make_asset("BTC", [make_tx("DEPOSIT", 1, 20000, day=JAN_1)], current_price=60000)


# =============================================================================
# BUILD CHART
# =============================================================================

class TestBuildChart:
    """Tests for chart rendering."""

    def test_all_range(self, service, btc, current_only_table):
        """ALL starts just before the first deposit and ends now."""
        chart = service.build_chart([btc], "ALL", "usd", current_only_table, now_ms=NOW)

        assert chart.display_currency == "USD"
        assert chart.window.end_ms == NOW
        assert chart.window.start_ms < JAN_1
        assert len(chart.points) == 11
        assert chart.points[0].market_value == 0
        assert chart.latest.market_value == Decimal("60000")
        assert chart.timestamps[-1] == NOW

    def test_return_percent(self, service, btc, current_only_table):
        """20000 -> 60000 over the window is +200%."""
        chart = service.build_chart([btc], "CUSTOM", "USD", current_only_table,
                                    now_ms=NOW, custom_start=JAN_1)

        assert chart.return_percent == Decimal("200")

    def test_reversed_custom_window_is_clamped(self, service, btc, current_only_table):
        chart = service.build_chart([btc], "CUSTOM", "USD", current_only_table,
                                    now_ms=NOW, custom_start=NOW, custom_end=FEB_1)

        assert chart.window.start_ms == FEB_1 - MS_PER_DAY
        assert chart.window.end_ms == FEB_1

    def test_explicit_steps(self, service, btc, current_only_table):
        chart = service.build_chart([btc], TimeRange.YEAR, "USD", current_only_table,
                                    now_ms=NOW, steps=3)
        assert len(chart.points) == 4

    def test_unknown_range_raises(self, service, current_only_table):
        with pytest.raises(ValueError):
            service.build_chart([], "10Y", "USD", current_only_table, now_ms=NOW)


class TestMemoization:
    """Tests for revision-keyed memoization."""

    @pytest.fixture
    def spy_generator(self):
        generator = MagicMock(spec=ValuationSeriesGenerator)
        generator.generate_with_table.return_value = []
        return generator

    def test_same_revisions_hit_cache(self, spy_generator, current_only_table):
        """An identical render with the same revisions is served from memory."""
        service = ValuationService(generator=spy_generator)

        first = service.build_chart([], "1Y", "USD", current_only_table,
                                    assets_revision=1, rates_revision=1, now_ms=NOW)
        second = service.build_chart([], "1Y", "USD", current_only_table,
                                     assets_revision=1, rates_revision=1, now_ms=NOW)

        assert first is second
        spy_generator.generate_with_table.assert_called_once()

    def test_new_revision_misses_cache(self, spy_generator, current_only_table):
        service = ValuationService(generator=spy_generator)

        service.build_chart([], "1Y", "USD", current_only_table,
                            assets_revision=1, rates_revision=1, now_ms=NOW)
        service.build_chart([], "1Y", "USD", current_only_table,
                            assets_revision=2, rates_revision=1, now_ms=NOW)

        assert spy_generator.generate_with_table.call_count == 2

    def test_currency_is_part_of_key(self, spy_generator, current_only_table):
        service = ValuationService(generator=spy_generator)

        service.build_chart([], "1Y", "USD", current_only_table,
                            assets_revision=1, rates_revision=1, now_ms=NOW)
        service.build_chart([], "1Y", "EUR", current_only_table,
                            assets_revision=1, rates_revision=1, now_ms=NOW)

        assert spy_generator.generate_with_table.call_count == 2

    def test_no_revisions_no_memo(self, spy_generator, current_only_table):
        """Without both revisions every call regenerates."""
        service = ValuationService(generator=spy_generator)

        service.build_chart([], "1Y", "USD", current_only_table, assets_revision=1, now_ms=NOW)
        service.build_chart([], "1Y", "USD", current_only_table, assets_revision=1, now_ms=NOW)

        assert spy_generator.generate_with_table.call_count == 2

    def test_invalidate(self, spy_generator, current_only_table):
        service = ValuationService(generator=spy_generator)
        kwargs = dict(assets_revision=1, rates_revision=1, now_ms=NOW)

        service.build_chart([], "1Y", "USD", current_only_table, **kwargs)
        service.invalidate()
        service.build_chart([], "1Y", "USD", current_only_table, **kwargs)

        assert spy_generator.generate_with_table.call_count == 2


# =============================================================================
# BENCHMARKS
# =============================================================================

class TestCompareBenchmarks:
    """Tests for normalizing benchmarks over a chart's window."""

    def test_visible_benchmarks_over_chart_window(self, service, btc, current_only_table):
        chart = service.build_chart([btc], "CUSTOM", "USD", current_only_table,
                                    now_ms=NOW, custom_start=JAN_1)
        data = {
            "^GSPC": BenchmarkData(
                ticker="^GSPC",
                name="S&P 500",
                currency="USD",
                price_history=PriceSeries.from_pairs([[JAN_1, 100], [NOW, 110]]),
            ),
        }
        settings = BenchmarkSettings(benchmarks=(
            BenchmarkConfig("^GSPC", "S&P 500", "#3B82F6", visible=True),
        ))

        lines = service.compare_benchmarks(chart, data, settings)

        assert len(lines) == 1
        assert lines[0].points[0].timestamp == JAN_1
        assert lines[0].points[-1].timestamp == NOW
        assert lines[0].return_percent == Decimal("10")

    def test_rates_redenominate(self, current_only_table):
        """With rates, the normalizer receives the chart's display currency."""
        normalizer = MagicMock()
        service = ValuationService(normalizer=normalizer)
        chart = service.build_chart([], "1Y", "EUR", current_only_table, now_ms=NOW)

        service.compare_benchmarks(chart, {}, BenchmarkSettings(), rates=current_only_table)

        kwargs = normalizer.prepare_for_chart.call_args.kwargs
        assert kwargs["display_currency"] == "EUR"
        assert kwargs["rates"] is current_only_table


# =============================================================================
# SUMMARY
# =============================================================================

class TestSummarize:
    """Tests for current totals."""

    def test_profit(self, service, btc, current_only_table):
        summary = service.summarize([btc], "USD", current_only_table, now_ms=NOW)

        assert summary.total_value == Decimal("60000")
        assert summary.invested_capital == Decimal("20000")
        assert summary.unrealized_pnl == Decimal("40000")
        assert summary.pnl_percent == Decimal("200")
        assert summary.is_profit
        assert summary.holdings == {"btc": Decimal("60000")}

    def test_uses_current_rates_for_value(self, service, make_asset, make_tx, rate_table):
        """Value uses current rates; invested capital the transaction day's rate."""
        cash = make_asset("USD", [make_tx("DEPOSIT", 1000, 1000, day=JAN_1)])

        summary = service.summarize([cash], "EUR", rate_table, now_ms=NOW)

        assert summary.total_value == Decimal("920")
        assert summary.invested_capital == Decimal("900")

    def test_unheld_assets_are_skipped(self, service, make_asset, make_tx, current_only_table):
        sold = make_asset("AAPL", [
            make_tx("DEPOSIT", 1, 100, day=JAN_1),
            make_tx("WITHDRAWAL", 1, 100, day=FEB_1),
        ], current_price=500)

        summary = service.summarize([sold], "USD", current_only_table, now_ms=NOW)

        assert summary.total_value == 0
        assert summary.invested_capital == 0
        assert summary.pnl_percent == 0
        assert summary.holdings == {"aapl": Decimal("0")}

    def test_history_price_when_no_quote(self, service, make_asset, make_tx, current_only_table):
        asset = make_asset("AAPL", [make_tx("DEPOSIT", 2, 100, day=JAN_1)],
                           history=[[JAN_1, 50], [FEB_1, 80]])

        summary = service.summarize([asset], "USD", current_only_table, now_ms=NOW)

        assert summary.total_value == Decimal("160")
        assert not summary.unrealized_pnl < 0

    def test_loss(self, service, make_asset, make_tx, current_only_table):
        asset = make_asset("AAPL", [make_tx("DEPOSIT", 1, 100, day=JAN_1)], current_price=75)

        summary = service.summarize([asset], "USD", current_only_table, now_ms=NOW)

        assert summary.pnl_percent == Decimal("-25")
        assert not summary.is_profit


class TestPortfolioReturn:
    """Tests for the static return helper."""

    def test_first_nonzero_baseline(self):
        points = [
            ChartDataPoint(timestamp=1, cost_basis=Decimal("0"), market_value=Decimal("0")),
            ChartDataPoint(timestamp=2, cost_basis=Decimal("100"), market_value=Decimal("100")),
            ChartDataPoint(timestamp=3, cost_basis=Decimal("100"), market_value=Decimal("150")),
        ]
        assert ValuationService.portfolio_return_percent(points) == Decimal("50")

    def test_never_held(self):
        points = [ChartDataPoint(timestamp=1, cost_basis=Decimal("0"), market_value=Decimal("0"))]
        assert ValuationService.portfolio_return_percent(points) == 0
