# backend/portfolio_engine/services/constants.py
"""
Centralized constants for the valuation engine.

Single source of truth for the currency tables, series resolutions and
cache windows shared by the engine and its fetch collaborators. Series
resolutions that deployments tune live in portfolio_engine.config.

Usage:
    from portfolio_engine.services.constants import (
        ANCHOR_CURRENCY,
        MIN_WINDOW_MS,
        STABLECOIN_PEGS,
    )
"""

from decimal import Decimal

from portfolio_engine.utils.date_utils import MS_PER_DAY, MS_PER_HOUR


# =============================================================================
# CURRENCIES
# =============================================================================

# Every rate snapshot is expressed as "units of currency per 1 anchor unit"
ANCHOR_CURRENCY: str = "USD"

# Fiat codes an asset ticker can be; such assets are cash with unit value 1
FIAT_CURRENCIES: frozenset[str] = frozenset({
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD",
})

# Tokens pegged 1:1 to a fiat currency. They have no FX entries of their own.
STABLECOIN_PEGS: dict[str, str] = {
    "USDT": "USD",
    "USDC": "USD",
    "DAI": "USD",
    "BUSD": "USD",
    "TUSD": "USD",
}

# Ticker suffix -> listing currency. Checked in order.
TICKER_SUFFIX_CURRENCIES: tuple[tuple[str, str], ...] = (
    (".SW", "CHF"),
    (".DE", "EUR"),
    (".F", "EUR"),
    (".L", "GBP"),
    (".TO", "CAD"),
    (".T", "JPY"),
    (".AX", "AUD"),
)

# Index tickers whose currency cannot be derived from a suffix
INDEX_CURRENCIES: dict[str, str] = {
    "^SSMI": "CHF",
}

# Used by the FX collaborator only when the rate API has never answered
FALLBACK_RATES: dict[str, Decimal] = {
    "USD": Decimal("1.00"),
    "CHF": Decimal("0.789"),
    "EUR": Decimal("0.849"),
    "GBP": Decimal("0.741"),
    "JPY": Decimal("156.5"),
    "CAD": Decimal("1.37"),
    "AUD": Decimal("1.49"),
}


# =============================================================================
# SERIES RESOLUTION
# =============================================================================

# A window whose end is not after its start is clamped to this length
MIN_WINDOW_MS: int = MS_PER_DAY

# "ALL" starts this long before the first transaction so the first
# acquisition is visible as a step up from zero
ALL_RANGE_LEAD_MS: int = MS_PER_HOUR


# =============================================================================
# PRECISION
# =============================================================================

# Percent values in outputs (e.g. 12.34%)
PERCENTAGE_PRECISION: Decimal = Decimal("0.01")

# Percent change multiplier
HUNDRED: Decimal = Decimal("100")


# =============================================================================
# CACHE WINDOWS (fetch collaborators)
# =============================================================================

# Current FX snapshot freshness
FX_CACHE_TTL_SECONDS: int = 24 * 60 * 60

# Benchmark freshness: short windows need fresher data
BENCHMARK_TTL_SHORT_SECONDS: int = 60 * 60
BENCHMARK_TTL_LONG_SECONDS: int = 24 * 60 * 60
