# backend/portfolio_engine/services/currency.py
"""
Currency classification helpers.

Answers three questions about a ticker or currency code:
- Which currency is this asset natively priced in?
- Is this asset cash (unit value 1 in its own currency)?
- Which code should be looked up in a rate snapshot? (stablecoins have no
  rate entries of their own and resolve to their peg)
"""

from portfolio_engine.services.constants import (
    ANCHOR_CURRENCY,
    FIAT_CURRENCIES,
    INDEX_CURRENCIES,
    STABLECOIN_PEGS,
    TICKER_SUFFIX_CURRENCIES,
)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_fiat_currency(code: str) -> bool:
    return normalize_code(code) in FIAT_CURRENCIES


def is_stablecoin(code: str) -> bool:
    return normalize_code(code) in STABLECOIN_PEGS


def is_cash_asset(ticker: str) -> bool:
    """Fiat balances and pegged stablecoins are held as cash."""
    return is_fiat_currency(ticker) or is_stablecoin(ticker)


def fx_currency(code: str) -> str:
    """
    Code to use when looking up a rate snapshot.

    Example:
        >>> fx_currency("usdt")
        'USD'
    """
    code = normalize_code(code)
    return STABLECOIN_PEGS.get(code, code)


def detect_native_currency(ticker: str) -> str:
    """
    Derive an asset's native currency from its ticker.

    Rules, first match wins:
        - fiat code            -> itself ("CHF" -> "CHF")
        - stablecoin           -> its peg ("USDC" -> "USD")
        - known index          -> listing currency ("^SSMI" -> "CHF")
        - exchange suffix      -> listing currency ("NESN.SW" -> "CHF")
        - anything else        -> USD (US listings, crypto pairs)
    """
    symbol = normalize_code(ticker)

    if symbol in FIAT_CURRENCIES:
        return symbol
    if symbol in STABLECOIN_PEGS:
        return STABLECOIN_PEGS[symbol]
    if symbol in INDEX_CURRENCIES:
        return INDEX_CURRENCIES[symbol]

    for suffix, currency in TICKER_SUFFIX_CURRENCIES:
        if symbol.endswith(suffix):
            return currency

    return ANCHOR_CURRENCY
