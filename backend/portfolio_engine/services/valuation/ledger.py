# backend/portfolio_engine/services/valuation/ledger.py
"""
Cost basis ledger: replays an asset's transactions up to a cursor time.

The replay yields two numbers for any instant t:
- quantity held
- invested capital: the external money that flowed into the holding,
  in the display currency

=============================================================================
POLARITY TABLE (the cost basis model in one place)
=============================================================================

    type / side        quantity    invested capital
    -----------------  ----------  ----------------
    BUY                   +             0
    SELL                  -             0
    DEPOSIT               +             +
    WITHDRAWAL            -             -
    INCOME                +             +
    TRANSFER / IN         +             +
    TRANSFER / OUT        -             -

BUY and SELL move already-owned capital between two assets, so they never
touch invested capital. Counting them would double-count money that entered
the portfolio through a DEPOSIT and make invested capital track total spend
instead of external cash flow.

=============================================================================
CURRENCY OF EACH CONTRIBUTION
=============================================================================

A transaction's total cost is converted to the display currency once, with:
    1. its own recorded purchase currency and rate snapshot, if it has both
    2. otherwise the asset's native currency and the rate table's dated
       lookup for the transaction's instant (nearest earlier day, then
       current rates)

Usage:
    ledger = CostBasisLedger(rate_table)
    position = ledger.reconstruct_at(asset, t, "EUR")
    position.quantity, position.invested_capital

Architecture:
    - entries_for() turns a ledger into signed LedgerEntry deltas (converts FX once)
    - fold() is a pure reducer over entries with timestamp <= t
    - reconstruct_at() = fold(entries_for(asset), t)
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import reduce
from typing import Sequence

from portfolio_engine.models import Asset, Transaction, TransactionType, TransferSide
from portfolio_engine.services.exceptions import MissingRateError
from portfolio_engine.services.exchange_rates import ExchangeRateTable, convert
from portfolio_engine.services.valuation.types import LedgerEntry, LedgerPosition

logger = logging.getLogger(__name__)


# =============================================================================
# POLARITY
# =============================================================================

@dataclass(frozen=True)
class Polarity:
    quantity: int
    capital: int


POLARITY_TABLE: dict[tuple[TransactionType, TransferSide | None], Polarity] = {
    (TransactionType.BUY, None): Polarity(quantity=1, capital=0),
    (TransactionType.SELL, None): Polarity(quantity=-1, capital=0),
    (TransactionType.DEPOSIT, None): Polarity(quantity=1, capital=1),
    (TransactionType.WITHDRAWAL, None): Polarity(quantity=-1, capital=-1),
    (TransactionType.INCOME, None): Polarity(quantity=1, capital=1),
    (TransactionType.TRANSFER, TransferSide.IN): Polarity(quantity=1, capital=1),
    (TransactionType.TRANSFER, TransferSide.OUT): Polarity(quantity=-1, capital=-1),
}


def polarity_of(tx: Transaction) -> Polarity:
    """Look up how a transaction moves quantity and invested capital."""
    side = None
    if tx.type == TransactionType.TRANSFER:
        side = tx.transfer_side or TransferSide.IN
    return POLARITY_TABLE[(tx.type, side)]


def is_acquisition(tx: Transaction) -> bool:
    return polarity_of(tx).quantity > 0


# =============================================================================
# LEDGER
# =============================================================================

class CostBasisLedger:
    """
    Stateless replay of asset ledgers against one rate table.

    The rate table is the only configuration; every method is a pure
    function of its arguments.
    """

    def __init__(self, rates: ExchangeRateTable) -> None:
        self.rates = rates

    def cost_in_display(
            self,
            tx: Transaction,
            asset_currency: str,
            display_currency: str,
    ) -> Decimal:
        """
        Convert a transaction's total cost to the display currency.

        Never raises: a missing rate ends in the rate table's passthrough.
        """
        if tx.has_rate_snapshot:
            try:
                return convert(tx.total_cost, tx.purchase_currency, display_currency, tx.exchange_rates)
            except MissingRateError as e:
                logger.debug(
                    f"Transaction {tx.id} snapshot cannot convert: {e}; using dated rates"
                )
            return self.rates.convert_at(
                tx.total_cost, tx.purchase_currency, display_currency, tx.timestamp
            )

        # No snapshot of its own: use the table's rates dated at the transaction
        # (exact, else nearest earlier day, else current), not always today's.
        return self.rates.convert_at(tx.total_cost, asset_currency, display_currency, tx.timestamp)

    def entries_for(self, asset: Asset, display_currency: str) -> list[LedgerEntry]:
        """
        Signed deltas of an asset's transactions, oldest first.

        Entries whose capital polarity is zero skip FX conversion entirely.
        """
        currency = asset.native_currency
        entries = []

        for tx in asset.transactions:
            polarity = polarity_of(tx)
            capital = Decimal("0")
            if polarity.capital:
                capital = polarity.capital * self.cost_in_display(tx, currency, display_currency)

            entries.append(LedgerEntry(
                timestamp=tx.timestamp,
                quantity_delta=polarity.quantity * tx.quantity,
                capital_delta=capital,
            ))

        return entries

    def reconstruct_at(self, asset: Asset, timestamp: int, display_currency: str) -> LedgerPosition:
        """
        Quantity and invested capital of an asset at an instant.

        Transactions dated exactly at the timestamp are included.

        Args:
            asset: Asset whose ledger is replayed
            timestamp: Cursor time (epoch ms)
            display_currency: Currency for invested capital

        Returns:
            LedgerPosition (zero before the first transaction)
        """
        return fold(self.entries_for(asset, display_currency), timestamp)


def fold(entries: Sequence[LedgerEntry], timestamp: int) -> LedgerPosition:
    """Reduce entries dated at or before the timestamp into a position."""
    return reduce(
        lambda position, entry: position.apply(entry),
        (entry for entry in entries if entry.timestamp <= timestamp),
        LedgerPosition(),
    )


def reconstruct_at(
        asset: Asset,
        timestamp: int,
        display_currency: str,
        rates: ExchangeRateTable,
) -> LedgerPosition:
    """Functional form of CostBasisLedger.reconstruct_at."""
    return CostBasisLedger(rates).reconstruct_at(asset, timestamp, display_currency)
