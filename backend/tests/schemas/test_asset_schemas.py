# backend/tests/schemas/test_asset_schemas.py
"""
Tests for asset and transaction input schemas.

This module tests:
- Field constraints (non-negative amounts, allocation bounds)
- Normalization (tickers, currencies, rate snapshot codes)
- Timestamp coercion (ms, ISO strings, datetimes, dates)
- Conversion to frozen domain objects
- The shared validators
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from portfolio_engine.models import Asset, TransactionType, TransferSide
from portfolio_engine.schemas.assets import AssetIn, TransactionIn, assets_to_domain
from portfolio_engine.schemas.validators import (
    to_timestamp_ms,
    validate_currency,
    validate_ticker,
)

JAN_1_MS = 1704067200000


@pytest.fixture
def tx_payload() -> dict:
    return {
        "id": "t1",
        "type": "DEPOSIT",
        "quantity": "1.5",
        "total_cost": "30000",
        "timestamp": JAN_1_MS,
    }


# =============================================================================
# VALIDATORS
# =============================================================================

class TestValidators:
    """Tests for reusable validation functions."""

    @pytest.mark.parametrize("raw,expected", [
        ("aapl", "AAPL"),
        (" nesn.sw ", "NESN.SW"),
        ("^gspc", "^GSPC"),
        ("btc-usd", "BTC-USD"),
        ("eurusd=x", "EURUSD=X"),
    ])
    def test_valid_tickers(self, raw, expected):
        assert validate_ticker(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "AA PL", "$AAPL", "A" * 21])
    def test_invalid_tickers(self, raw):
        with pytest.raises(ValueError):
            validate_ticker(raw)

    def test_currency(self):
        assert validate_currency(" usdt ") == "USDT"
        with pytest.raises(ValueError):
            validate_currency("EURO12")
        with pytest.raises(ValueError):
            validate_currency("")

    @pytest.mark.parametrize("raw", [
        JAN_1_MS,
        str(JAN_1_MS),
        "2024-01-01T00:00:00Z",
        "2024-01-01T01:00:00+01:00",
        datetime(2024, 1, 1),
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        date(2024, 1, 1),
    ])
    def test_timestamp_coercion(self, raw):
        assert to_timestamp_ms(raw) == JAN_1_MS

    @pytest.mark.parametrize("raw", [True, 1704067200, "yesterday"])
    def test_timestamp_rejections(self, raw):
        """Booleans, second-resolution numbers and garbage are rejected."""
        with pytest.raises(ValueError):
            to_timestamp_ms(raw)


# =============================================================================
# TRANSACTION SCHEMA
# =============================================================================

class TestTransactionIn:
    """Tests for transaction parsing."""

    def test_minimal(self, tx_payload):
        tx = TransactionIn.model_validate(tx_payload)

        assert tx.type == TransactionType.DEPOSIT
        assert tx.quantity == Decimal("1.5")
        assert tx.price_per_unit == Decimal("0")
        assert tx.timestamp == JAN_1_MS

    def test_iso_timestamp(self, tx_payload):
        tx_payload["timestamp"] = "2024-01-01T00:00:00Z"
        assert TransactionIn.model_validate(tx_payload).timestamp == JAN_1_MS

    @pytest.mark.parametrize("field", ["quantity", "total_cost", "price_per_unit"])
    def test_negative_amounts_rejected(self, tx_payload, field):
        tx_payload[field] = "-1"
        with pytest.raises(ValidationError):
            TransactionIn.model_validate(tx_payload)

    def test_unknown_type_rejected(self, tx_payload):
        tx_payload["type"] = "SWAP"
        with pytest.raises(ValidationError):
            TransactionIn.model_validate(tx_payload)

    def test_rate_snapshot_normalized(self, tx_payload):
        tx_payload.update(purchase_currency="chf", exchange_rates={"usd": "1", "chf": "0.88"})

        tx = TransactionIn.model_validate(tx_payload)

        assert tx.purchase_currency == "CHF"
        assert tx.exchange_rates == {"USD": Decimal("1"), "CHF": Decimal("0.88")}

    def test_non_positive_snapshot_rate_rejected(self, tx_payload):
        tx_payload["exchange_rates"] = {"USD": "1", "EUR": "0"}
        with pytest.raises(ValidationError, match="positive"):
            TransactionIn.model_validate(tx_payload)

    def test_blank_purchase_currency_is_none(self, tx_payload):
        tx_payload["purchase_currency"] = "  "
        assert TransactionIn.model_validate(tx_payload).purchase_currency is None

    def test_to_domain(self, tx_payload):
        tx_payload.update(type="TRANSFER", transfer_side="OUT", linked_transaction_id="t0")

        domain = TransactionIn.model_validate(tx_payload).to_domain()

        assert domain.type == TransactionType.TRANSFER
        assert domain.transfer_side == TransferSide.OUT
        assert domain.linked_transaction_id == "t0"
        assert domain.total_cost == Decimal("30000")
        assert not domain.has_rate_snapshot


# =============================================================================
# ASSET SCHEMA
# =============================================================================

class TestAssetIn:
    """Tests for asset parsing and domain conversion."""

    def test_to_domain(self, tx_payload):
        later = dict(tx_payload, id="t2", timestamp=JAN_1_MS + 1000)
        asset_in = AssetIn.model_validate({
            "id": "a1",
            "ticker": "btc",
            "transactions": [later, tx_payload],
            "price_history": [[JAN_1_MS, "42000"], [JAN_1_MS + 1000, 0]],
            "current_price": "60000",
        })

        asset = asset_in.to_domain()

        assert isinstance(asset, Asset)
        assert asset.ticker == "BTC"
        assert asset.native_currency == "USD"
        assert [tx.id for tx in asset.transactions] == ["t1", "t2"]
        assert len(asset.price_history) == 1
        assert asset.current_price == Decimal("60000")

    def test_explicit_currency(self):
        asset = AssetIn.model_validate({"id": "a", "ticker": "NESN.SW", "currency": "eur"}).to_domain()
        assert asset.native_currency == "EUR"

    def test_detected_currency(self):
        asset = AssetIn.model_validate({"id": "a", "ticker": "NESN.SW"}).to_domain()
        assert asset.native_currency == "CHF"

    def test_no_history_is_none(self):
        asset = AssetIn.model_validate({"id": "a", "ticker": "AAPL"}).to_domain()
        assert asset.price_history is None

    @pytest.mark.parametrize("allocation", ["-1", "100.5"])
    def test_allocation_bounds(self, allocation):
        with pytest.raises(ValidationError):
            AssetIn.model_validate({"id": "a", "ticker": "AAPL", "target_allocation": allocation})

    def test_invalid_ticker(self):
        with pytest.raises(ValidationError, match="Invalid ticker"):
            AssetIn.model_validate({"id": "a", "ticker": "$$$"})

    def test_assets_to_domain(self):
        assets = assets_to_domain([
            AssetIn(id="a", ticker="AAPL"),
            AssetIn(id="b", ticker="CHF"),
        ])

        assert [a.id for a in assets] == ["a", "b"]
        assert assets[1].is_cash
