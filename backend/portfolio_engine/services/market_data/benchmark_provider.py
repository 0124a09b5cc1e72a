# backend/portfolio_engine/services/market_data/benchmark_provider.py
"""
Benchmark history collaborator backed by Yahoo Finance (yfinance).

Fetches closing prices for benchmark tickers ("^GSPC", "URTH", "BTC-USD")
and hands them to the engine as BenchmarkData. The engine has no fallback
of its own, so this collaborator never raises to its caller:

    fresh cache  ->  cached value
    fetch ok     ->  new value (cached)
    fetch fails  ->  stale cached value if any, else None

Key features:
- Yahoo period/interval chosen per time range; crypto pairs trade around
  the clock and get intraday samples for 24H and 1W
- Cache TTL of 1 hour for 24H/1W, 24 hours otherwise
- Concurrent requests for the same (ticker, range) share one fetch
- Transient failures retried with exponential backoff, then counted by a
  circuit breaker that stops hammering Yahoo while it is down

Usage:
    service = BenchmarkDataService()
    data = service.fetch("^GSPC", TimeRange.YEAR)
    everything = service.fetch_many(settings.visible, TimeRange.YEAR)
"""

import logging
from typing import Any, Sequence

import pandas as pd
import yfinance as yf

from portfolio_engine.config import settings
from portfolio_engine.services.analytics.types import BenchmarkConfig, BenchmarkData
from portfolio_engine.services.cache import TTLCache
from portfolio_engine.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from portfolio_engine.services.currency import detect_native_currency
from portfolio_engine.services.exceptions import (
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from portfolio_engine.services.market_data.base import UpstreamProvider
from portfolio_engine.services.price_series import PriceSeries
from portfolio_engine.services.valuation.time_ranges import TimeRange, is_short_range
from portfolio_engine.utils.date_utils import now_ms

logger = logging.getLogger(__name__)

CRYPTO_PAIR_MARKERS: tuple[str, ...] = ("-USD", "-EUR", "-GBP", "-USDT", "-BTC", "-ETH")

# (period, interval) per range for tickers that trade only on weekdays.
# Short ranges fetch a few extra days so there is always a sample before
# the window opens.
_MARKET_PARAMS: dict[TimeRange, tuple[str, str]] = {
    TimeRange.DAY: ("5d", "1d"),
    TimeRange.WEEK: ("1mo", "1d"),
    TimeRange.MONTH: ("1mo", "1d"),
    TimeRange.QUARTER: ("3mo", "1d"),
    TimeRange.YEAR: ("1y", "1d"),
    TimeRange.ALL: ("5y", "1d"),
    TimeRange.CUSTOM: ("5y", "1d"),
}

_CRYPTO_PARAMS: dict[TimeRange, tuple[str, str]] = {
    TimeRange.DAY: ("1d", "15m"),
    TimeRange.WEEK: ("7d", "1h"),
}


def is_crypto_ticker(ticker: str) -> bool:
    symbol = ticker.upper()
    return any(marker in symbol for marker in CRYPTO_PAIR_MARKERS)


def yahoo_params(ticker: str, time_range: TimeRange | str) -> tuple[str, str]:
    """Yahoo (period, interval) for a ticker and range."""
    time_range = TimeRange(time_range)
    if is_crypto_ticker(ticker) and time_range in _CRYPTO_PARAMS:
        return _CRYPTO_PARAMS[time_range]
    return _MARKET_PARAMS[time_range]


class BenchmarkDataService(UpstreamProvider):
    """
    Cached, fail-soft access to benchmark price histories.

    Configuration:
        cache: Shared TTLCache (default: a private one)
        breaker: Circuit breaker guarding Yahoo (default: opens after 5
            consecutive failed fetches, retries after 5 minutes)
        ttl_short_seconds / ttl_long_seconds: Freshness windows (default:
            from settings)
    """

    def __init__(
            self,
            cache: TTLCache[BenchmarkData] | None = None,
            breaker: CircuitBreaker | None = None,
            ttl_short_seconds: int | None = None,
            ttl_long_seconds: int | None = None,
    ) -> None:
        self._cache: TTLCache[BenchmarkData] = cache or TTLCache()
        self._breaker = breaker or CircuitBreaker(
            name="yahoo_benchmarks",
            failure_threshold=5,
            recovery_timeout=300.0,
            excluded_exceptions=(TickerNotFoundError,),
        )
        self.ttl_short_seconds = (
            ttl_short_seconds if ttl_short_seconds is not None
            else settings.benchmark_ttl_short_seconds
        )
        self.ttl_long_seconds = (
            ttl_long_seconds if ttl_long_seconds is not None
            else settings.benchmark_ttl_long_seconds
        )

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def ttl_for(self, time_range: TimeRange | str) -> int:
        return self.ttl_short_seconds if is_short_range(TimeRange(time_range)) else self.ttl_long_seconds

    @staticmethod
    def cache_key(ticker: str, time_range: TimeRange | str) -> str:
        return f"{ticker.strip().upper()}:{TimeRange(time_range).value}"

    def fetch(
            self,
            ticker: str,
            time_range: TimeRange | str = TimeRange.ALL,
            force_refresh: bool = False,
            name: str | None = None,
    ) -> BenchmarkData | None:
        """
        Benchmark history for a range.

        Args:
            ticker: Yahoo symbol
            time_range: Display range the history is for
            force_refresh: Skip the freshness check
            name: Display name used when Yahoo reports none

        Returns:
            BenchmarkData, or None when the fetch failed and nothing is cached
        """
        symbol = ticker.strip().upper()
        key = self.cache_key(symbol, time_range)

        try:
            return self._cache.get_or_fetch(
                key,
                self.ttl_for(time_range),
                lambda: self._guarded_fetch(symbol, time_range, name),
                force_refresh=force_refresh,
            )
        except CircuitBreakerOpen as e:
            logger.warning(f"Benchmark {symbol} skipped: {e}")
            return None
        except MarketDataError as e:
            logger.warning(f"Benchmark {symbol} unavailable: {e}")
            return None

    def fetch_many(
            self,
            configs: Sequence[BenchmarkConfig],
            time_range: TimeRange | str = TimeRange.ALL,
            force_refresh: bool = False,
    ) -> dict[str, BenchmarkData]:
        """Ticker -> data for every benchmark that could be fetched."""
        results: dict[str, BenchmarkData] = {}
        for config in configs:
            data = self.fetch(config.ticker, time_range, force_refresh, name=config.name)
            if data is not None:
                results[config.ticker] = data
        return results

    def validate_ticker(self, ticker: str) -> str | None:
        """
        Check that Yahoo has data for a ticker before it is added as a
        custom benchmark.

        Returns:
            The benchmark's display name, or None if the ticker has no data
        """
        data = self.fetch(ticker, TimeRange.ALL, force_refresh=True)
        if data is None or data.price_history.is_empty:
            return None
        return data.name

    def clear_cache(self) -> None:
        self._cache.invalidate()

    # =========================================================================
    # FETCHING
    # =========================================================================

    def _guarded_fetch(
            self,
            symbol: str,
            time_range: TimeRange | str,
            name: str | None,
    ) -> BenchmarkData:
        with self._breaker:
            return self._execute_with_retry(self._download, symbol, time_range, name)

    def _download(
            self,
            symbol: str,
            time_range: TimeRange | str,
            name: str | None,
    ) -> BenchmarkData:
        """Single Yahoo request (called by the retry wrapper)."""
        period, interval = yahoo_params(symbol, time_range)
        logger.debug(f"Fetching {symbol} with period={period}, interval={interval}")

        try:
            yf_ticker = yf.Ticker(symbol)
            df = yf_ticker.history(period=period, interval=interval, auto_adjust=True)
        except Exception as e:
            raise self._map_error(symbol, e)

        if df is None or df.empty:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)

        series = self._dataframe_to_series(df)
        if series.is_empty:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)

        logger.debug(f"Fetched {len(series)} samples for {symbol}")
        return BenchmarkData(
            ticker=symbol,
            name=self._display_name(yf_ticker, name or symbol),
            currency=detect_native_currency(symbol),
            price_history=series,
            last_updated_ms=now_ms(),
        )

    def _map_error(self, symbol: str, error: Exception) -> MarketDataError:
        error_str = str(error).lower()
        if "not found" in error_str or "no data" in error_str:
            return TickerNotFoundError(ticker=symbol, provider=self.name)
        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    @staticmethod
    def _dataframe_to_series(df: pd.DataFrame) -> PriceSeries:
        """Close column of a yfinance frame as a PriceSeries (NaN rows dropped)."""
        if "Close" not in df.columns:
            return PriceSeries()

        pairs = [
            (int(pd.Timestamp(idx).timestamp() * 1000), close)
            for idx, close in df["Close"].items()
        ]
        return PriceSeries.from_pairs(pairs)

    @staticmethod
    def _display_name(yf_ticker: Any, fallback: str) -> str:
        metadata = getattr(yf_ticker, "history_metadata", None)
        if isinstance(metadata, dict):
            return metadata.get("shortName") or metadata.get("longName") or fallback
        return fallback
