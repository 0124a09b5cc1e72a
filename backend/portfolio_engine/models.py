# backend/portfolio_engine/models.py
"""
Domain model consumed by the valuation engine.

Assets and transactions arrive from the portfolio-management collaborators
already parsed (see portfolio_engine.schemas for the boundary validation).
Everything here is immutable: the engine receives a frozen snapshot per
render and never mutates it.

Quantities and costs are stored unsigned. Whether a transaction adds to or
removes from a holding is derived from its type (and, for transfers, its
side) by the ledger's polarity table, never from a negative number.
"""
import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Mapping

from portfolio_engine.services.currency import (
    detect_native_currency,
    is_cash_asset,
    normalize_code,
)
from portfolio_engine.services.exceptions import ValidationError
from portfolio_engine.services.exchange_rates import parse_snapshot
from portfolio_engine.services.price_series import PriceSeries
from portfolio_engine.utils.date_utils import to_date


class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"
    INCOME = "INCOME"


class TransferSide(str, enum.Enum):
    """
    Which leg of a transfer a TRANSFER transaction records.

    A transfer between portfolios is two linked transactions: an OUT leg in
    the source portfolio and an IN leg in the destination portfolio.
    """
    IN = "IN"  # Destination portfolio
    OUT = "OUT"  # Source portfolio


@dataclass(frozen=True)
class Transaction:
    """
    One economic event on one asset.

    Attributes:
        id: Identifier, unique within the ledger
        type: Economic kind of the event
        quantity: Units moved (unsigned)
        price_per_unit: Unit price in the asset's native currency
        total_cost: Total value moved, native currency (unsigned)
        timestamp: When the event happened (epoch ms, UTC)
        tag: Optional strategy tag
        linked_transaction_id: Paired transaction (BUY/SELL legs of one
            exchange, or the two legs of a transfer)
        transfer_side: IN or OUT for TRANSFER transactions (None means IN)
        purchase_currency: Currency total_cost was recorded in
        exchange_rates: Rate snapshot (anchor-relative) at creation time
    """
    id: str
    type: TransactionType
    quantity: Decimal
    price_per_unit: Decimal
    total_cost: Decimal
    timestamp: int
    tag: str | None = None
    linked_transaction_id: str | None = None
    transfer_side: TransferSide | None = None
    purchase_currency: str | None = None
    exchange_rates: Mapping[str, Decimal] | None = None

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValidationError(
                f"Transaction {self.id}: quantity must be non-negative, got {self.quantity}",
                field="quantity",
            )
        if self.total_cost < 0:
            raise ValidationError(
                f"Transaction {self.id}: total_cost must be non-negative, got {self.total_cost}",
                field="total_cost",
            )
        if self.price_per_unit < 0:
            raise ValidationError(
                f"Transaction {self.id}: price_per_unit must be non-negative",
                field="price_per_unit",
            )
        if self.purchase_currency is not None:
            object.__setattr__(self, "purchase_currency", normalize_code(self.purchase_currency))
        if self.exchange_rates is not None:
            # Snapshots may arrive as raw JSON numbers; an unusable one counts as absent
            object.__setattr__(self, "exchange_rates", parse_snapshot(self.exchange_rates) or None)

    @property
    def date(self) -> date:
        return to_date(self.timestamp)

    @property
    def unit_price(self) -> Decimal | None:
        """Recorded unit price, or total_cost / quantity when none was recorded."""
        if self.price_per_unit > 0:
            return self.price_per_unit
        if self.quantity > 0 and self.total_cost > 0:
            return self.total_cost / self.quantity
        return None

    @property
    def has_rate_snapshot(self) -> bool:
        """True when the transaction carries its own creation-time FX context."""
        return bool(self.purchase_currency) and bool(self.exchange_rates)


@dataclass(frozen=True)
class Asset:
    """
    A holding in one portfolio.

    Transactions are kept sorted by timestamp (stable for equal timestamps).
    Quantity and cost basis are never stored: the ledger derives them for
    any instant.

    Attributes:
        id: Identifier used as the key of per-asset chart breakdowns
        ticker: Instrument symbol ("BTC", "NESN.SW", "CHF")
        name: Optional display name
        currency: Explicit native currency; detected from the ticker if None
        transactions: The asset's ledger
        price_history: Optional sparse price history
        current_price: Latest quote in native currency
        target_allocation: Optional target weight in percent (0-100)
    """
    id: str
    ticker: str
    name: str | None = None
    currency: str | None = None
    transactions: tuple[Transaction, ...] = field(default_factory=tuple)
    price_history: PriceSeries | None = None
    current_price: Decimal | None = None
    target_allocation: Decimal | None = None

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.transactions, key=lambda tx: tx.timestamp))
        object.__setattr__(self, "transactions", ordered)
        object.__setattr__(self, "ticker", self.ticker.strip())
        if self.currency:
            object.__setattr__(self, "currency", normalize_code(self.currency))
        if self.target_allocation is not None and not (
                Decimal("0") <= self.target_allocation <= Decimal("100")
        ):
            raise ValidationError(
                f"Asset {self.ticker}: target_allocation must be between 0 and 100",
                field="target_allocation",
            )

    @property
    def native_currency(self) -> str:
        return self.currency or detect_native_currency(self.ticker)

    @property
    def is_cash(self) -> bool:
        return is_cash_asset(self.ticker)

    @property
    def display_name(self) -> str:
        return self.name or self.ticker

    @property
    def first_transaction_timestamp(self) -> int | None:
        if not self.transactions:
            return None
        return self.transactions[0].timestamp
