# backend/portfolio_engine/schemas/benchmarks.py
"""
Pydantic schemas for benchmark comparison.

These schemas handle:
- Normalized series points (percent change from the window start)
- Chart-ready benchmark lines
- Benchmark settings (round-trip for persistence by the caller)
- Custom benchmark requests
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_engine.schemas.validators import validate_ticker
from portfolio_engine.schemas.valuation import round_percent
from portfolio_engine.services.analytics.types import (
    BenchmarkConfig,
    BenchmarkSettings,
    ChartBenchmark,
    NormalizedPoint,
)


# =============================================================================
# SERIES SCHEMAS
# =============================================================================

class NormalizedPointOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: int
    percent_change: Decimal

    @classmethod
    def from_domain(cls, point: NormalizedPoint) -> "NormalizedPointOut":
        return cls(timestamp=point.timestamp, percent_change=point.percent_change)


class ChartBenchmarkOut(BaseModel):
    """A benchmark line normalized over the display window."""

    ticker: str
    name: str
    color: str
    return_percent: Decimal = Field(..., description="Percent change at window end, rounded to 0.01")
    points: list[NormalizedPointOut]

    @classmethod
    def from_domain(cls, benchmark: ChartBenchmark) -> "ChartBenchmarkOut":
        return cls(
            ticker=benchmark.ticker,
            name=benchmark.name,
            color=benchmark.color,
            return_percent=round_percent(benchmark.return_percent),
            points=[NormalizedPointOut.from_domain(p) for p in benchmark.points],
        )


# =============================================================================
# SETTINGS SCHEMAS
# =============================================================================

class BenchmarkConfigSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticker: str
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    visible: bool = False
    is_custom: bool = False

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return validate_ticker(v)


class BenchmarkSettingsSchema(BaseModel):
    """Benchmark list as stored by the caller."""

    benchmarks: list[BenchmarkConfigSchema] = Field(default_factory=list)
    max_visible: int = Field(default=3, ge=1, le=10)

    @classmethod
    def from_domain(cls, settings: BenchmarkSettings) -> "BenchmarkSettingsSchema":
        return cls(
            benchmarks=[BenchmarkConfigSchema.model_validate(b) for b in settings.benchmarks],
            max_visible=settings.max_visible,
        )

    def to_domain(self) -> BenchmarkSettings:
        return BenchmarkSettings(
            benchmarks=tuple(BenchmarkConfig(**b.model_dump()) for b in self.benchmarks),
            max_visible=self.max_visible,
        )


class CustomBenchmarkCreate(BaseModel):
    """Request to add a user-defined benchmark."""

    ticker: str = Field(..., examples=["QQQ", "^IXIC", "ETH-USD"])
    name: str | None = Field(default=None, max_length=100)

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return validate_ticker(v)
