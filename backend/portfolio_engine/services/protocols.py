# backend/portfolio_engine/services/protocols.py
"""
Protocol interfaces for the fetch collaborators.

The engine itself performs no I/O; callers fetch benchmark histories and
exchange rates through objects satisfying these protocols and hand the
results to the engine. typing.Protocol gives structural subtyping, so test
doubles need no inheritance; isinstance() checks method presence only.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from portfolio_engine.services.analytics.types import BenchmarkConfig, BenchmarkData
    from portfolio_engine.services.exchange_rates import ExchangeRateTable
    from portfolio_engine.services.valuation.time_ranges import TimeRange


@runtime_checkable
class BenchmarkFetcher(Protocol):
    """Interface for benchmark history sources (BenchmarkDataService)."""

    def fetch(
        self,
        ticker: str,
        time_range: TimeRange | str = ...,
        force_refresh: bool = False,
        name: str | None = None,
    ) -> BenchmarkData | None:
        ...

    def fetch_many(
        self,
        configs: Sequence[BenchmarkConfig],
        time_range: TimeRange | str = ...,
        force_refresh: bool = False,
    ) -> dict[str, BenchmarkData]:
        ...


@runtime_checkable
class ExchangeRateFetcher(Protocol):
    """Interface for USD-anchored exchange rate sources (FXRateService)."""

    def get_current_rates(self, force_refresh: bool = False) -> dict[str, Decimal]:
        ...

    def get_historical_rates(
        self,
        start: date,
        end: date,
        currencies: list[str] | None = None,
    ) -> dict[str, dict[str, Decimal]]:
        ...

    def build_table(
        self,
        start: date | None = None,
        end: date | None = None,
        currencies: list[str] | None = None,
    ) -> ExchangeRateTable:
        ...
