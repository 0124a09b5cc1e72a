# backend/portfolio_engine/schemas/exchange_rates.py
"""
Pydantic schemas for exchange rate tables.

These schemas handle:
- The current USD-anchored snapshot ({"USD": 1.0, "EUR": 0.92, ...})
- The historical table ({"2024-01-01": {"USD": 1.0, "EUR": 0.90}, ...})
- Conversion to the engine's ExchangeRateTable
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from portfolio_engine.services.exchange_rates import ExchangeRateTable, RateSnapshotResult


class ExchangeRatesIn(BaseModel):
    """Current and historical rate snapshots as delivered by the FX collaborator."""

    current: dict[str, Decimal] = Field(
        ...,
        description="Current snapshot: 1 USD = X code"
    )
    historical: dict[str, dict[str, Decimal]] = Field(
        default_factory=dict,
        description="ISO date -> snapshot"
    )

    @field_validator("current")
    @classmethod
    def current_not_empty(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        if not v:
            raise ValueError("Current rate snapshot cannot be empty")
        return v

    @field_validator("historical")
    @classmethod
    def validate_dates(cls, v: dict[str, dict[str, Decimal]]) -> dict[str, dict[str, Decimal]]:
        for day in v:
            try:
                dt.date.fromisoformat(day)
            except ValueError:
                raise ValueError(f"Historical rate key must be an ISO date, got '{day}'")
        return v

    def to_table(self) -> ExchangeRateTable:
        """Engine table; non-positive rates are dropped with a warning."""
        return ExchangeRateTable.from_mappings(self.current, self.historical)


class RateLookupOut(BaseModel):
    """Which snapshot answered a dated lookup."""

    requested_date: str
    actual_date: str | None = Field(
        default=None,
        description="Date of the snapshot used (None when the current snapshot answered)"
    )
    source: str = Field(..., description="EXACT, NEAREST_EARLIER or CURRENT")
    rates: dict[str, Decimal]

    @classmethod
    def from_domain(cls, result: RateSnapshotResult) -> "RateLookupOut":
        return cls(
            requested_date=result.requested_date,
            actual_date=result.actual_date,
            source=result.source.value,
            rates=dict(result.rates),
        )
