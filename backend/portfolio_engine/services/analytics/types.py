# backend/portfolio_engine/services/analytics/types.py
"""
Data types for benchmark comparison.

Architecture:
    - NormalizedPoint: One (timestamp, percent change) sample
    - BenchmarkData: Raw benchmark history as handed over by the fetch collaborator
    - BenchmarkConfig / BenchmarkSettings: Which benchmarks exist and which are shown
    - ChartBenchmark: A normalized benchmark ready for rendering
"""

from dataclasses import dataclass, field
from decimal import Decimal

from portfolio_engine.services.price_series import PriceSeries


# =============================================================================
# SERIES TYPES
# =============================================================================

@dataclass(frozen=True)
class NormalizedPoint:
    """
    Percent change from the window's baseline at one instant.

    Attributes:
        timestamp: Instant (epoch ms)
        percent_change: e.g. Decimal("12.5") for +12.5%
    """
    timestamp: int
    percent_change: Decimal


@dataclass(frozen=True)
class BenchmarkData:
    """
    Raw benchmark history.

    Attributes:
        ticker: Benchmark symbol ("^GSPC", "BTC-USD")
        name: Display name reported by the provider
        currency: Currency the prices are quoted in
        price_history: The samples
        last_updated_ms: When the collaborator fetched it (epoch ms)
    """
    ticker: str
    name: str
    currency: str
    price_history: PriceSeries
    last_updated_ms: int = 0


# =============================================================================
# SETTINGS TYPES
# =============================================================================

@dataclass(frozen=True)
class BenchmarkConfig:
    ticker: str
    name: str
    color: str
    visible: bool = False
    is_custom: bool = False


@dataclass(frozen=True)
class BenchmarkSettings:
    """
    The user's benchmark list.

    Attributes:
        benchmarks: Configured benchmarks, defaults first
        max_visible: Upper bound on simultaneously shown benchmarks
    """
    benchmarks: tuple[BenchmarkConfig, ...] = field(default_factory=tuple)
    max_visible: int = 3

    @property
    def visible(self) -> tuple[BenchmarkConfig, ...]:
        return tuple(b for b in self.benchmarks if b.visible)

    @property
    def custom(self) -> tuple[BenchmarkConfig, ...]:
        return tuple(b for b in self.benchmarks if b.is_custom)

    def find(self, ticker: str) -> BenchmarkConfig | None:
        wanted = ticker.strip().upper()
        for benchmark in self.benchmarks:
            if benchmark.ticker.upper() == wanted:
                return benchmark
        return None


# =============================================================================
# OUTPUT TYPES
# =============================================================================

@dataclass(frozen=True)
class ChartBenchmark:
    """
    A benchmark normalized over the display window.

    Attributes:
        ticker: Benchmark symbol
        name: Display name
        color: Line colour
        points: Normalized series
        return_percent: Percent change at the window's end
    """
    ticker: str
    name: str
    color: str
    points: list[NormalizedPoint]
    return_percent: Decimal
