# backend/portfolio_engine/schemas/assets.py
"""
Pydantic schemas for assets and their transactions.

These schemas parse the JSON-like snapshot a caller hands to the engine
and turn it into frozen domain objects with to_domain().

Validation layers:
- Field constraints: non-negative quantities and costs, 0-100 allocation
- Field validators: normalization (uppercase tickers and currencies),
  timestamp coercion to epoch milliseconds
- Domain objects: re-check their own invariants on construction

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_engine.models import Asset, Transaction, TransactionType, TransferSide
from portfolio_engine.schemas.validators import (
    to_timestamp_ms,
    validate_currency,
    validate_ticker,
)
from portfolio_engine.services.price_series import PriceSeries


# =============================================================================
# TRANSACTION
# =============================================================================

class TransactionIn(BaseModel):
    """One ledger event as supplied by the caller."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1, description="Identifier unique within the ledger")
    type: TransactionType = Field(..., description="Economic kind of the event")
    quantity: Decimal = Field(..., ge=0, description="Units moved (unsigned)")
    price_per_unit: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Unit price in the asset's native currency (0 if unknown)"
    )
    total_cost: Decimal = Field(..., ge=0, description="Total value moved (unsigned)")
    timestamp: int = Field(
        ...,
        description="Epoch milliseconds; datetimes and ISO strings are accepted",
        examples=[1704067200000, "2024-01-01T00:00:00Z"]
    )
    tag: str | None = Field(default=None, max_length=50)
    linked_transaction_id: str | None = None
    transfer_side: TransferSide | None = Field(
        default=None,
        description="IN or OUT for TRANSFER transactions (default: IN)"
    )
    purchase_currency: str | None = Field(
        default=None,
        description="Currency total_cost was recorded in"
    )
    exchange_rates: dict[str, Decimal] | None = Field(
        default=None,
        description="USD-anchored rate snapshot captured when the transaction was recorded"
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> int:
        return to_timestamp_ms(v)

    @field_validator("purchase_currency")
    @classmethod
    def normalize_currency(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return validate_currency(v)

    @field_validator("exchange_rates")
    @classmethod
    def normalize_rate_codes(cls, v: dict[str, Decimal] | None) -> dict[str, Decimal] | None:
        if not v:
            return None
        for code, rate in v.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive")
        return {code.strip().upper(): rate for code, rate in v.items()}

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            type=self.type,
            quantity=self.quantity,
            price_per_unit=self.price_per_unit,
            total_cost=self.total_cost,
            timestamp=self.timestamp,
            tag=self.tag,
            linked_transaction_id=self.linked_transaction_id,
            transfer_side=self.transfer_side,
            purchase_currency=self.purchase_currency,
            exchange_rates=self.exchange_rates,
        )


# =============================================================================
# ASSET
# =============================================================================

class AssetIn(BaseModel):
    """
    A holding with its ledger and optional sparse price history.

    price_history is a list of [timestamp_ms, price] pairs; short or
    non-positive pairs are dropped when building the domain series.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    ticker: str = Field(..., description="Instrument symbol", examples=["BTC", "NESN.SW", "CHF"])
    name: str | None = Field(default=None, max_length=255)
    currency: str | None = Field(
        default=None,
        description="Native currency; detected from the ticker when omitted"
    )
    transactions: list[TransactionIn] = Field(default_factory=list)
    price_history: list[list[Decimal]] | None = Field(
        default=None,
        description="[timestamp_ms, price] pairs"
    )
    current_price: Decimal | None = Field(default=None, ge=0)
    target_allocation: Decimal | None = Field(default=None, ge=0, le=100)

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return validate_ticker(v)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return validate_currency(v)

    def to_domain(self) -> Asset:
        history = None
        if self.price_history:
            history = PriceSeries.from_pairs(self.price_history)

        return Asset(
            id=self.id,
            ticker=self.ticker,
            name=self.name,
            currency=self.currency,
            transactions=tuple(tx.to_domain() for tx in self.transactions),
            price_history=history,
            current_price=self.current_price,
            target_allocation=self.target_allocation,
        )


def assets_to_domain(assets: list[AssetIn]) -> list[Asset]:
    return [asset.to_domain() for asset in assets]
