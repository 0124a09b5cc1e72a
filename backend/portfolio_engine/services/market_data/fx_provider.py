# backend/portfolio_engine/services/market_data/fx_provider.py
"""
Exchange rate collaborator.

Supplies the engine's ExchangeRateTable from two free APIs:
- current rates: exchangerate-api.com (latest, USD base), cached 24 hours
- historical rates: frankfurter.app time series (ECB data, USD base)

Every snapshot is USD-anchored ("1 USD = X code"), the convention the
engine's conversion formula expects.

Failure policy (never raises to the caller):
- current rates: cached snapshot of any age, else the hardcoded
  FALLBACK_RATES table
- historical rates: the days already cached, else an empty mapping (the
  engine then falls back to current rates)

Usage:
    service = FXRateService()
    table = service.build_table(start=date(2023, 1, 1), end=date.today())
"""

import logging
import threading
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import requests

from portfolio_engine.config import settings
from portfolio_engine.services.cache import TTLCache
from portfolio_engine.services.constants import ANCHOR_CURRENCY, FALLBACK_RATES
from portfolio_engine.services.exceptions import FXProviderError
from portfolio_engine.services.exchange_rates import ExchangeRateTable, parse_snapshot
from portfolio_engine.services.market_data.base import UpstreamProvider

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES: tuple[str, ...] = ("USD", "EUR", "CHF", "GBP", "JPY", "CAD", "AUD")

_CURRENT_KEY = "current"


class FXRateService(UpstreamProvider):
    """
    Cached USD-anchored exchange rates.

    Configuration:
        session: requests.Session to use (default: a private one)
        current_url / historical_url: API endpoints (default: from settings)
        ttl_seconds: Freshness of the current snapshot (default: from settings)
        timeout: HTTP timeout in seconds (default: from settings)
    """

    RETRYABLE_EXCEPTIONS = (FXProviderError,)

    def __init__(
            self,
            session: requests.Session | None = None,
            current_url: str | None = None,
            historical_url: str | None = None,
            ttl_seconds: int | None = None,
            timeout: int | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self.current_url = current_url or settings.fx_current_url
        self.historical_url = (historical_url or settings.fx_historical_url).rstrip("/")
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.fx_cache_ttl_seconds
        self.timeout = timeout or settings.http_timeout_seconds

        self._current: TTLCache[dict[str, Decimal]] = TTLCache()
        self._historical: dict[str, dict[str, Decimal]] = {}
        # Ranges fetched successfully: (start, end, currencies or None for all)
        self._coverage: list[tuple[date, date, frozenset[str] | None]] = []
        self._historical_lock = threading.Lock()

    @property
    def name(self) -> str:
        return "fx"

    # =========================================================================
    # CURRENT RATES
    # =========================================================================

    def get_current_rates(self, force_refresh: bool = False) -> dict[str, Decimal]:
        """Latest snapshot; cached, stale or hardcoded, whichever is best available."""
        try:
            rates = self._current.get_or_fetch(
                _CURRENT_KEY,
                self.ttl_seconds,
                lambda: self._execute_with_retry(self._fetch_current),
                force_refresh=force_refresh,
            )
        except FXProviderError as e:
            logger.warning(f"Failed to fetch exchange rates, using fallback table: {e}")
            return dict(FALLBACK_RATES)
        return dict(rates)

    def _fetch_current(self) -> dict[str, Decimal]:
        data = self._get_json(self.current_url)
        raw = data.get("rates")
        if not isinstance(raw, dict) or not raw:
            raise FXProviderError(provider="exchangerate-api", reason="response has no rates")

        rates = parse_snapshot(raw)
        rates[ANCHOR_CURRENCY] = Decimal("1")
        logger.info(f"Fetched {len(rates)} current exchange rates")
        return rates

    def get_rate(self, from_currency: str, to_currency: str = ANCHOR_CURRENCY) -> Decimal | None:
        """
        Current rate from one currency to another (units of to per unit of from).

        Returns None if either currency is unknown.
        """
        if from_currency.upper() == to_currency.upper():
            return Decimal("1")
        rates = self.get_current_rates()
        from_rate = rates.get(from_currency.upper())
        to_rate = rates.get(to_currency.upper())
        if not from_rate or not to_rate:
            return None
        return to_rate / from_rate

    # =========================================================================
    # HISTORICAL RATES
    # =========================================================================

    def get_historical_rates(
            self,
            start: date,
            end: date,
            currencies: list[str] | None = None,
    ) -> dict[str, dict[str, Decimal]]:
        """
        Daily snapshots between start and end, merged into the cache.

        The API only publishes business days; the engine's nearest-earlier
        lookup covers weekends and holidays. A range counts as cached once
        every day of it lies inside a range fetched before, whether or not
        each day produced a snapshot.

        Returns:
            Every cached day (not only the requested range), ISO date -> snapshot
        """
        if start > end:
            start, end = end, start

        wanted = sorted({c.upper() for c in currencies or ()} - {ANCHOR_CURRENCY})

        with self._historical_lock:
            cached = dict(self._historical)
            covered = _is_covered(self._coverage, start, end, wanted)

        if covered:
            logger.debug(f"Historical rates for {start} to {end} served from cache")
            return cached

        url = f"{self.historical_url}/{start.isoformat()}..{end.isoformat()}"
        params = {"from": ANCHOR_CURRENCY}
        if wanted:
            params["to"] = ",".join(wanted)

        try:
            data = self._execute_with_retry(self._get_json, url, params)
        except FXProviderError as e:
            logger.error(f"Failed to fetch historical exchange rates: {e}")
            if cached:
                logger.info(f"Falling back to {len(cached)} cached historical rate days")
            return cached

        fetched: dict[str, dict[str, Decimal]] = {}
        for day, raw in (data.get("rates") or {}).items():
            if not isinstance(raw, dict):
                continue
            snapshot = parse_snapshot(raw)
            snapshot[ANCHOR_CURRENCY] = Decimal("1")
            fetched[day] = snapshot

        with self._historical_lock:
            self._historical.update(fetched)
            # Today's snapshot may not be published yet
            if end < date.today():
                self._coverage.append((start, end, frozenset(wanted) if wanted else None))
            merged = dict(self._historical)

        logger.info(f"Fetched {len(fetched)} historical rate days ({len(merged)} cached)")
        return merged

    # =========================================================================
    # TABLE
    # =========================================================================

    def build_table(
            self,
            start: date | None = None,
            end: date | None = None,
            currencies: list[str] | None = None,
    ) -> ExchangeRateTable:
        """
        Rate table for the engine: current snapshot plus, when a start date
        is given, history from start to end (default: today).
        """
        current = self.get_current_rates()
        historical: dict[str, dict[str, Decimal]] = {}
        if start is not None:
            historical = self.get_historical_rates(start, end or date.today(), currencies)
        return ExchangeRateTable(current=current, historical=historical)

    def clear_cache(self) -> None:
        self._current.invalidate()
        with self._historical_lock:
            self._historical.clear()
            self._coverage.clear()

    # =========================================================================
    # HTTP
    # =========================================================================

    def _get_json(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise FXProviderError(provider=url, reason=str(e))
        except ValueError as e:
            raise FXProviderError(provider=url, reason=f"invalid JSON: {e}")

        if not isinstance(data, dict):
            raise FXProviderError(provider=url, reason="unexpected response shape")
        return data


def _is_covered(
        coverage: list[tuple[date, date, frozenset[str] | None]],
        start: date,
        end: date,
        wanted: list[str],
) -> bool:
    """True when the fetched ranges that include every wanted code span start..end."""
    spans = sorted(
        (lo, hi) for lo, hi, codes in coverage
        if codes is None or (wanted and codes.issuperset(wanted))
    )
    reached = start - timedelta(days=1)
    for lo, hi in spans:
        if lo > reached + timedelta(days=1):
            break
        reached = max(reached, hi)
        if reached >= end:
            return True
    return False
