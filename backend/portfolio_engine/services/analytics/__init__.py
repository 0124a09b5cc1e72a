# backend/portfolio_engine/services/analytics/__init__.py
"""
Benchmark comparison for the portfolio chart.

Components:
    - benchmark: Normalization, resampling and outperformance
    - benchmark_settings: Default and custom benchmark list management
    - types: Data classes shared by both

Usage:
    from portfolio_engine.services.analytics import (
        BenchmarkNormalizer,
        default_settings,
        toggle_benchmark_visibility,
    )
"""

from portfolio_engine.services.analytics.benchmark import (
    BenchmarkNormalizer,
    convert_series,
    normalize,
    normalize_portfolio,
    outperformance,
    portfolio_return_percent,
    prepare_benchmarks_for_chart,
    resample,
    value_at_cursor,
)
from portfolio_engine.services.analytics.benchmark_settings import (
    CUSTOM_BENCHMARK_COLORS,
    DEFAULT_BENCHMARKS,
    add_custom_benchmark,
    default_settings,
    remove_custom_benchmark,
    toggle_benchmark_visibility,
)
from portfolio_engine.services.analytics.types import (
    BenchmarkConfig,
    BenchmarkData,
    BenchmarkSettings,
    ChartBenchmark,
    NormalizedPoint,
)

__all__ = [
    # Normalization
    "BenchmarkNormalizer",
    "normalize",
    "normalize_portfolio",
    "portfolio_return_percent",
    "resample",
    "outperformance",
    "value_at_cursor",
    "convert_series",
    "prepare_benchmarks_for_chart",
    # Settings
    "DEFAULT_BENCHMARKS",
    "CUSTOM_BENCHMARK_COLORS",
    "default_settings",
    "add_custom_benchmark",
    "remove_custom_benchmark",
    "toggle_benchmark_visibility",
    # Types
    "BenchmarkConfig",
    "BenchmarkData",
    "BenchmarkSettings",
    "ChartBenchmark",
    "NormalizedPoint",
]
