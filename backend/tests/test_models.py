# backend/tests/test_models.py
"""
Tests for the domain model.

This module tests:
- Transaction validation and derived unit price
- Asset ordering, currency detection and allocation bounds
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_engine.models import Asset, Transaction, TransactionType
from portfolio_engine.services.exceptions import ValidationError


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TestTransaction:
    """Tests for Transaction invariants."""

    def test_negative_quantity_rejected(self, make_tx):
        with pytest.raises(ValidationError) as exc_info:
            make_tx(quantity="-1")
        assert exc_info.value.field == "quantity"

    def test_negative_cost_rejected(self, make_tx):
        with pytest.raises(ValidationError):
            make_tx(total_cost="-5")

    def test_purchase_currency_normalized(self, make_tx):
        tx = make_tx(purchase_currency=" eur ")
        assert tx.purchase_currency == "EUR"

    def test_unit_price_recorded(self, make_tx):
        tx = make_tx(TransactionType.BUY, quantity="2", total_cost="100", price_per_unit="49")
        assert tx.unit_price == Decimal("49")

    def test_unit_price_derived(self, make_tx):
        """Without a recorded price the unit price is total_cost / quantity."""
        tx = make_tx(TransactionType.BUY, quantity="4", total_cost="100")
        assert tx.unit_price == Decimal("25")

    def test_unit_price_unknown(self, make_tx):
        assert make_tx(TransactionType.DEPOSIT, quantity="100").unit_price is None

    def test_date_is_utc_day(self, make_tx):
        assert make_tx(day=date(2024, 3, 9)).date == date(2024, 3, 9)

    def test_rate_snapshot(self, make_tx):
        assert make_tx().has_rate_snapshot is False
        tx = make_tx(purchase_currency="EUR", exchange_rates={"USD": Decimal("1")})
        assert tx.has_rate_snapshot is True

    def test_rate_snapshot_parsed(self, make_tx):
        """Float rates become Decimals and codes are upper-cased."""
        tx = make_tx(purchase_currency="EUR", exchange_rates={"usd": 1.0, "eur": 0.9})

        assert tx.exchange_rates == {"USD": Decimal("1.0"), "EUR": Decimal("0.9")}
        assert all(isinstance(rate, Decimal) for rate in tx.exchange_rates.values())

    def test_unusable_rate_snapshot_is_absent(self, make_tx):
        """A snapshot with no positive rate is treated as missing."""
        tx = make_tx(purchase_currency="EUR", exchange_rates={"EUR": 0, "USD": "n/a"})

        assert tx.exchange_rates is None
        assert tx.has_rate_snapshot is False


# =============================================================================
# ASSETS
# =============================================================================

class TestAsset:
    """Tests for Asset invariants."""

    def test_transactions_sorted(self, make_tx):
        late = make_tx(day=date(2024, 2, 1))
        early = make_tx(day=date(2024, 1, 1))

        asset = Asset(id="a", ticker="BTC", transactions=(late, early))

        assert asset.transactions == (early, late)
        assert asset.first_transaction_timestamp == early.timestamp

    def test_no_transactions(self):
        assert Asset(id="a", ticker="BTC").first_transaction_timestamp is None

    @pytest.mark.parametrize("ticker,currency", [
        ("BTC", "USD"),
        ("NESN.SW", "CHF"),
        ("chf", "CHF"),
        ("USDC", "USD"),
    ])
    def test_native_currency_detected(self, ticker, currency):
        assert Asset(id="a", ticker=ticker).native_currency == currency

    def test_explicit_currency_wins(self):
        asset = Asset(id="a", ticker="NESN.SW", currency="eur")
        assert asset.native_currency == "EUR"

    def test_cash(self):
        assert Asset(id="a", ticker="EUR").is_cash is True
        assert Asset(id="a", ticker="USDT").is_cash is True
        assert Asset(id="a", ticker="AAPL").is_cash is False

    def test_display_name(self):
        assert Asset(id="a", ticker="AAPL").display_name == "AAPL"
        assert Asset(id="a", ticker="AAPL", name="Apple").display_name == "Apple"

    def test_target_allocation_bounds(self):
        with pytest.raises(ValidationError, match="target_allocation"):
            Asset(id="a", ticker="AAPL", target_allocation=Decimal("120"))

    def test_frozen(self):
        asset = Asset(id="a", ticker="AAPL")
        with pytest.raises(AttributeError):
            asset.ticker = "MSFT"  # type: ignore[misc]

    def test_transaction_is_frozen(self):
        tx = Transaction(
            id="t", type=TransactionType.BUY, quantity=Decimal("1"),
            price_per_unit=Decimal("1"), total_cost=Decimal("1"), timestamp=0,
        )
        with pytest.raises(AttributeError):
            tx.quantity = Decimal("2")  # type: ignore[misc]
