# backend/portfolio_engine/services/analytics/benchmark_settings.py
"""
Benchmark list management.

Settings are immutable; every operation returns a new BenchmarkSettings.
Persisting them is the caller's concern.
"""

import logging
from dataclasses import replace

from portfolio_engine.services.analytics.types import BenchmarkConfig, BenchmarkSettings
from portfolio_engine.services.exceptions import (
    BenchmarkLimitError,
    BenchmarkNotFoundError,
    DuplicateBenchmarkError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_VISIBLE = 3

DEFAULT_BENCHMARKS: tuple[BenchmarkConfig, ...] = (
    BenchmarkConfig(ticker="^SSMI", name="SMI", color="#EF4444"),
    BenchmarkConfig(ticker="^GSPC", name="S&P 500", color="#3B82F6"),
    BenchmarkConfig(ticker="URTH", name="MSCI World", color="#10B981"),
    BenchmarkConfig(ticker="BTC-USD", name="Bitcoin", color="#F59E0B"),
)

# Assigned to custom benchmarks in order, wrapping around
CUSTOM_BENCHMARK_COLORS: tuple[str, ...] = (
    "#EC4899",
    "#06B6D4",
    "#84CC16",
    "#F43F5E",
    "#8B5CF6",
)


def default_settings() -> BenchmarkSettings:
    """All default benchmarks, none visible."""
    return BenchmarkSettings(benchmarks=DEFAULT_BENCHMARKS, max_visible=DEFAULT_MAX_VISIBLE)


def add_custom_benchmark(
        settings: BenchmarkSettings,
        ticker: str,
        name: str | None = None,
) -> BenchmarkSettings:
    """
    Append a user-defined benchmark (hidden until toggled on).

    Raises:
        ValidationError: If the ticker is blank
        DuplicateBenchmarkError: If the ticker exists (case-insensitive)
    """
    symbol = ticker.strip().upper()
    if not symbol:
        raise ValidationError("Benchmark ticker must not be empty", field="ticker")
    if settings.find(symbol) is not None:
        raise DuplicateBenchmarkError(symbol)

    color = CUSTOM_BENCHMARK_COLORS[len(settings.custom) % len(CUSTOM_BENCHMARK_COLORS)]
    config = BenchmarkConfig(
        ticker=symbol,
        name=(name or "").strip() or symbol,
        color=color,
        visible=False,
        is_custom=True,
    )

    logger.info(f"Added custom benchmark {symbol}")
    return replace(settings, benchmarks=settings.benchmarks + (config,))


def remove_custom_benchmark(settings: BenchmarkSettings, ticker: str) -> BenchmarkSettings:
    """
    Remove a user-defined benchmark. Defaults cannot be removed.

    Raises:
        BenchmarkNotFoundError: If no custom benchmark has the ticker
    """
    target = settings.find(ticker)
    if target is None or not target.is_custom:
        raise BenchmarkNotFoundError(ticker.strip().upper())

    return replace(
        settings,
        benchmarks=tuple(b for b in settings.benchmarks if b is not target),
    )


def toggle_benchmark_visibility(settings: BenchmarkSettings, ticker: str) -> BenchmarkSettings:
    """
    Show a hidden benchmark or hide a visible one.

    Raises:
        BenchmarkNotFoundError: If the ticker is not configured
        BenchmarkLimitError: If showing it would exceed max_visible
    """
    target = settings.find(ticker)
    if target is None:
        raise BenchmarkNotFoundError(ticker.strip().upper())

    if not target.visible and len(settings.visible) >= settings.max_visible:
        raise BenchmarkLimitError(target.ticker, settings.max_visible)

    toggled = replace(target, visible=not target.visible)
    return replace(
        settings,
        benchmarks=tuple(toggled if b is target else b for b in settings.benchmarks),
    )
