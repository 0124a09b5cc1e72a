# backend/portfolio_engine/services/exchange_rates.py
"""
Exchange rate tables and currency conversion.

This module handles:
- Converting amounts between currencies through a single anchor currency
- Selecting the rate snapshot in effect on a given date (historical lookup)
- The fail-safe passthrough used whenever a rate is missing

=============================================================================
RATE CONVENTION (IMPORTANT!)
=============================================================================

Every snapshot is anchored on USD:

    rates[code] = "1 USD = X code"

Example:
    rates = {"USD": 1.0, "EUR": 0.92, "CHF": 0.88}

    Meaning: 1 USD = 0.92 EUR, 1 USD = 0.88 CHF

Conversion formula (any pair, routed through the anchor):
    amount_in_usd = amount / rates[from]
    result        = amount_in_usd * rates[to]

    EUR -> CHF: 100 EUR / 0.92 * 0.88 = 95.65 CHF

Stablecoins (USDT, USDC, DAI, ...) have no entries of their own and are
looked up as the fiat currency they are pegged to.

=============================================================================
THREE-TIER LOOKUP
=============================================================================

convert_at(amount, from, to, t) is the one conversion path used by the cost
basis ledger, the valuation series and the benchmark series:

    1. snapshot for the UTC calendar day of t
    2. nearest earlier day whose snapshot has both currencies
    3. the current snapshot
    4. the amount unconverted (logged; never raised to the caller)

=============================================================================

Usage:
    from portfolio_engine.services.exchange_rates import ExchangeRateTable, convert

    table = ExchangeRateTable.from_mappings(
        current={"USD": 1.0, "EUR": 0.92},
        historical={"2024-01-01": {"USD": 1.0, "EUR": 0.90}},
    )
    table.convert_at(Decimal("1000"), "USD", "EUR", jan_first_ms)   # Decimal("900")
"""

import enum
import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping

from portfolio_engine.services.currency import fx_currency, normalize_code
from portfolio_engine.services.exceptions import MissingRateError
from portfolio_engine.utils.date_utils import iso_date

logger = logging.getLogger(__name__)

RateSnapshot = Mapping[str, Decimal]


# =============================================================================
# CONVERSION
# =============================================================================

def convert(
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        rates: RateSnapshot,
) -> Decimal:
    """
    Convert an amount using one rate snapshot.

    Same-currency conversion returns the amount itself, untouched.

    Args:
        amount: Amount in from_currency
        from_currency: Source code (stablecoins allowed)
        to_currency: Target code (stablecoins allowed)
        rates: Anchor-relative snapshot

    Returns:
        Amount in to_currency

    Raises:
        MissingRateError: If either currency has no usable rate
    """
    if from_currency == to_currency:
        return amount

    source = fx_currency(from_currency)
    target = fx_currency(to_currency)
    if source == target:
        return amount

    missing = [code for code in (source, target) if not _usable(rates.get(code))]
    if missing:
        raise MissingRateError(source, target, missing=missing)

    return amount / rates[source] * rates[target]


def convert_or_passthrough(
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        rates: RateSnapshot,
) -> Decimal:
    """
    Convert, or return the amount unconverted when a rate is missing.

    The passthrough is a deliberate fail-safe: a wrong-currency number is
    visible in the chart, an exception would blank it.
    """
    try:
        return convert(amount, from_currency, to_currency, rates)
    except MissingRateError as e:
        logger.warning(f"{e}; returning amount unconverted")
        return amount


# =============================================================================
# RESULT DATA CLASSES
# =============================================================================

class RateSource(str, enum.Enum):
    EXACT = "EXACT"
    NEAREST_EARLIER = "NEAREST_EARLIER"
    CURRENT = "CURRENT"


@dataclass(frozen=True)
class RateSnapshotResult:
    """Result of a dated snapshot lookup."""

    rates: RateSnapshot
    source: RateSource
    requested_date: str
    actual_date: str | None = None  # None when the current snapshot was used

    @property
    def is_exact_match(self) -> bool:
        return self.source == RateSource.EXACT


# =============================================================================
# TABLE
# =============================================================================

@dataclass(frozen=True)
class ExchangeRateTable:
    """
    Current and historical anchor-relative rate snapshots.

    Attributes:
        current: Latest snapshot (code -> rate)
        historical: ISO date -> snapshot
    """

    current: RateSnapshot
    historical: Mapping[str, RateSnapshot] = field(default_factory=dict)
    _dates: tuple[str, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_dates", tuple(sorted(self.historical)))

    @classmethod
    def from_mappings(
            cls,
            current: Mapping[str, float | str | Decimal],
            historical: Mapping[str, Mapping[str, float | str | Decimal]] | None = None,
    ) -> "ExchangeRateTable":
        """
        Build a table from plain JSON-like mappings.

        Codes are upper-cased; rates are converted with Decimal(str(x));
        non-positive or unparsable rates are dropped.
        """
        return cls(
            current=parse_snapshot(current),
            historical={
                day: parse_snapshot(snapshot)
                for day, snapshot in (historical or {}).items()
            },
        )

    @property
    def dates(self) -> tuple[str, ...]:
        return self._dates

    @property
    def has_history(self) -> bool:
        return bool(self._dates)

    def rates_for(
            self,
            timestamp: int,
            currencies: Iterable[str] = (),
    ) -> RateSnapshotResult:
        """
        Select the snapshot in effect at an instant.

        A dated snapshot only qualifies if it has every requested currency.

        Args:
            timestamp: Instant in epoch ms
            currencies: Codes the caller needs (stablecoins allowed)

        Returns:
            RateSnapshotResult describing which tier answered
        """
        day = iso_date(timestamp)
        required = {fx_currency(code) for code in currencies}

        exact = self.historical.get(day)
        if exact is not None and _covers(exact, required):
            return RateSnapshotResult(
                rates=exact,
                source=RateSource.EXACT,
                requested_date=day,
                actual_date=day,
            )

        # Days strictly before the requested day, newest first
        for earlier in reversed(self._dates[:bisect_left(self._dates, day)]):
            snapshot = self.historical[earlier]
            if _covers(snapshot, required):
                return RateSnapshotResult(
                    rates=snapshot,
                    source=RateSource.NEAREST_EARLIER,
                    requested_date=day,
                    actual_date=earlier,
                )

        return RateSnapshotResult(
            rates=self.current,
            source=RateSource.CURRENT,
            requested_date=day,
        )

    def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        """
        Convert at current rates.

        Raises:
            MissingRateError: If either currency is absent from the current snapshot
        """
        return convert(amount, from_currency, to_currency, self.current)

    def convert_current(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        """Convert at current rates, passing the amount through if a rate is missing."""
        return convert_or_passthrough(amount, from_currency, to_currency, self.current)

    def convert_at(
            self,
            amount: Decimal,
            from_currency: str,
            to_currency: str,
            timestamp: int,
    ) -> Decimal:
        """
        Convert with the rates in effect at an instant (three-tier lookup).

        Never raises for missing rates: the last tier returns the amount
        unconverted.
        """
        if from_currency == to_currency or fx_currency(from_currency) == fx_currency(to_currency):
            return amount

        result = self.rates_for(timestamp, (from_currency, to_currency))
        if result.source == RateSource.NEAREST_EARLIER:
            logger.debug(
                f"No {from_currency}/{to_currency} rates on {result.requested_date}, "
                f"using {result.actual_date}"
            )
        elif result.source == RateSource.CURRENT and self.has_history:
            logger.debug(
                f"No historical {from_currency}/{to_currency} rates on or before "
                f"{result.requested_date}, using current rates"
            )

        return convert_or_passthrough(amount, from_currency, to_currency, result.rates)


# =============================================================================
# HELPERS
# =============================================================================

def _usable(rate: Decimal | None) -> bool:
    return rate is not None and rate > 0


def _covers(snapshot: RateSnapshot, required: set[str]) -> bool:
    return all(_usable(snapshot.get(code)) for code in required)


def parse_snapshot(raw: Mapping[str, float | str | Decimal]) -> dict[str, Decimal]:
    """Upper-case codes and parse rates, dropping unparsable or non-positive ones."""
    parsed: dict[str, Decimal] = {}
    for code, value in raw.items():
        try:
            rate = Decimal(str(value))
        except (InvalidOperation, ValueError):
            logger.warning(f"Ignoring unparsable rate for {code}: {value!r}")
            continue
        if not rate.is_finite() or rate <= 0:
            logger.warning(f"Ignoring non-positive rate for {code}: {value!r}")
            continue
        parsed[normalize_code(code)] = rate
    return parsed
