# backend/portfolio_engine/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

This module provides:
- Ticker validation and normalization
- Currency code validation (fiat and stablecoin codes)
- Timestamp coercion to epoch milliseconds

These validators raise ValueError so that pydantic reports them as
field errors.
"""

import re
from datetime import date, datetime

from portfolio_engine.utils.date_utils import date_to_ms, datetime_to_ms

# =============================================================================
# CONSTANTS
# =============================================================================

# Ticker: optional caret (indices), then alphanumerics, dots, dashes, equals
# ("NESN.SW", "^GSPC", "BTC-USD", "EURUSD=X")
TICKER_PATTERN = re.compile(r'^\^?[A-Z0-9][A-Z0-9.\-=]{0,19}$')
TICKER_MAX_LENGTH = 20

# Currency: ISO 4217 or a stablecoin code (USDT, USDC, DAI, ...)
CURRENCY_PATTERN = re.compile(r'^[A-Z]{3,5}$')

# Timestamps below this are almost certainly seconds, not milliseconds
MIN_TIMESTAMP_MS = 100_000_000_000


# =============================================================================
# TICKER VALIDATION
# =============================================================================

def validate_ticker(value: str) -> str:
    """
    Validate and normalize a ticker symbol.

    Returns:
        Normalized ticker (uppercase, trimmed)

    Raises:
        ValueError: If ticker format is invalid
    """
    if not value or not value.strip():
        raise ValueError("Ticker cannot be empty")

    normalized = value.strip().upper()

    if len(normalized) > TICKER_MAX_LENGTH:
        raise ValueError(f"Ticker cannot exceed {TICKER_MAX_LENGTH} characters")

    if not TICKER_PATTERN.match(normalized):
        raise ValueError(f"Invalid ticker format: '{normalized}'")

    return normalized


# =============================================================================
# CURRENCY VALIDATION
# =============================================================================

def validate_currency(value: str) -> str:
    """
    Validate and normalize a currency code.

    Raises:
        ValueError: If the code is not 3-5 letters
    """
    if not value:
        raise ValueError("Currency cannot be empty")

    normalized = value.strip().upper()
    if not CURRENCY_PATTERN.match(normalized):
        raise ValueError(f"Invalid currency code: '{normalized}'")
    return normalized


# =============================================================================
# TIMESTAMP COERCION
# =============================================================================

def to_timestamp_ms(value: int | float | str | datetime | date) -> int:
    """
    Coerce a timestamp to epoch milliseconds.

    Accepts epoch milliseconds, datetimes (naive = UTC), dates (midnight
    UTC) and ISO 8601 strings.

    Raises:
        ValueError: If the value cannot be interpreted, or is a number
            too small to be milliseconds
    """
    if isinstance(value, bool):
        raise ValueError("Timestamp must not be a boolean")

    if isinstance(value, datetime):
        return datetime_to_ms(value)
    if isinstance(value, date):
        return date_to_ms(value)

    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            value = int(text)
        else:
            try:
                return datetime_to_ms(datetime.fromisoformat(text.replace("Z", "+00:00")))
            except ValueError:
                raise ValueError(f"Invalid timestamp: '{value}'")

    ts = int(value)
    if ts < MIN_TIMESTAMP_MS:
        raise ValueError(f"Timestamp {ts} looks like seconds; expected epoch milliseconds")
    return ts
