# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Transaction and asset factories
- Rate table fixtures (current + historical)
- Fixed reference instants
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable

import pytest

from portfolio_engine.models import Asset, Transaction, TransactionType
from portfolio_engine.services.exchange_rates import ExchangeRateTable
from portfolio_engine.services.price_series import PriceSeries
from portfolio_engine.utils.context import clear_render_context, clear_render_id
from portfolio_engine.utils.date_utils import date_to_ms

# =============================================================================
# REFERENCE INSTANTS
# =============================================================================

NOW = date_to_ms(date(2024, 6, 1))


@pytest.fixture
def now_ms() -> int:
    """Fixed "now" (2024-06-01 00:00 UTC)."""
    return NOW


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_tx() -> Callable[..., Transaction]:
    """
    Factory for transactions.

    Amounts accept strings or numbers; `day` accepts a date, datetime or
    epoch milliseconds.
    """
    counter = {"n": 0}

    def _make(
            tx_type: TransactionType | str = TransactionType.DEPOSIT,
            quantity: str | int = "1",
            total_cost: str | int = "0",
            price_per_unit: str | int = "0",
            day: date | datetime | int = date(2024, 1, 1),
            **kwargs,
    ) -> Transaction:
        counter["n"] += 1
        if isinstance(day, datetime):
            timestamp = int(day.replace(tzinfo=day.tzinfo or timezone.utc).timestamp() * 1000)
        elif isinstance(day, date):
            timestamp = date_to_ms(day)
        else:
            timestamp = day

        return Transaction(
            id=kwargs.pop("id", f"tx-{counter['n']}"),
            type=TransactionType(tx_type),
            quantity=Decimal(str(quantity)),
            price_per_unit=Decimal(str(price_per_unit)),
            total_cost=Decimal(str(total_cost)),
            timestamp=timestamp,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_asset() -> Callable[..., Asset]:
    """Factory for assets; `history` takes [timestamp_ms, price] pairs."""

    def _make(
            ticker: str = "BTC",
            transactions: tuple[Transaction, ...] | list[Transaction] = (),
            current_price: str | int | None = None,
            history: list[list] | None = None,
            **kwargs,
    ) -> Asset:
        return Asset(
            id=kwargs.pop("id", ticker.lower()),
            ticker=ticker,
            transactions=tuple(transactions),
            current_price=Decimal(str(current_price)) if current_price is not None else None,
            price_history=PriceSeries.from_pairs(history) if history is not None else None,
            **kwargs,
        )

    return _make


# =============================================================================
# RATE TABLES
# =============================================================================

@pytest.fixture
def current_rates() -> dict[str, Decimal]:
    return {
        "USD": Decimal("1"),
        "EUR": Decimal("0.92"),
        "CHF": Decimal("0.88"),
        "GBP": Decimal("0.79"),
    }


@pytest.fixture
def historical_rates() -> dict[str, dict[str, Decimal]]:
    return {
        "2024-01-01": {"USD": Decimal("1"), "EUR": Decimal("0.90"), "CHF": Decimal("0.85")},
        "2024-01-10": {"USD": Decimal("1"), "EUR": Decimal("0.91")},
    }


@pytest.fixture
def rate_table(current_rates, historical_rates) -> ExchangeRateTable:
    return ExchangeRateTable(current=current_rates, historical=historical_rates)


@pytest.fixture
def current_only_table(current_rates) -> ExchangeRateTable:
    return ExchangeRateTable(current=current_rates)


# =============================================================================
# CONTEXT ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def reset_render_context():
    """Make sure no render id leaks between tests."""
    clear_render_id()
    clear_render_context()
    yield
    clear_render_id()
    clear_render_context()
