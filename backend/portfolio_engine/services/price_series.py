# backend/portfolio_engine/services/price_series.py
"""
Price series: point-in-time price lookup for assets and benchmarks.

A PriceSeries is an immutable, time-sorted sequence of (timestamp_ms, price)
samples. Lookups between two samples interpolate linearly; lookups outside
the sampled span extrapolate flat from the nearest boundary sample. A price
is never invented for a span that has no samples on either side.

Usage:
    from portfolio_engine.services.price_series import PriceSeries, value_at

    series = PriceSeries.from_pairs([[1704067200000, 42000.0], [1704153600000, 43000.0]])
    value_at(series, 1704110400000)   # Decimal("42500")

Architecture:
    - PriceSeries / PricePoint are value objects (frozen dataclasses)
    - value_at() is the pure lookup; no I/O, no logging on the hot path
    - merge() is used by the fetch collaborators to grow a cached history
"""

from __future__ import annotations

import logging
import math
from bisect import bisect_right
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable, Sequence

from portfolio_engine.config import settings
from portfolio_engine.services.exceptions import NoDataError, ValidationError
from portfolio_engine.utils.date_utils import iso_date

logger = logging.getLogger(__name__)


# =============================================================================
# VALUE OBJECTS
# =============================================================================

@dataclass(frozen=True)
class PricePoint:
    """One price sample."""

    timestamp: int
    price: Decimal


@dataclass(frozen=True)
class PriceSeries:
    """
    Time-sorted price samples for one instrument.

    Invariants (checked on construction):
        - timestamps are non-decreasing
        - every price is > 0

    Attributes:
        points: The samples, oldest first
    """

    points: tuple[PricePoint, ...] = ()
    _timestamps: tuple[int, ...] = field(default=(), init=False, repr=False, compare=False)
    _prices: tuple[Decimal, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        points = tuple(self.points)
        previous: int | None = None
        for point in points:
            if point.price <= 0:
                raise ValidationError(
                    f"Price must be positive, got {point.price} at {point.timestamp}",
                    field="price",
                )
            if previous is not None and point.timestamp < previous:
                raise ValidationError(
                    "Price samples must be sorted by timestamp",
                    field="timestamp",
                )
            previous = point.timestamp

        object.__setattr__(self, "points", points)
        object.__setattr__(self, "_timestamps", tuple(p.timestamp for p in points))
        object.__setattr__(self, "_prices", tuple(p.price for p in points))

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[float | int | str | Decimal]]) -> PriceSeries:
        """
        Build a series from [timestamp_ms, price] pairs as delivered by fetchers.

        Pairs with a missing, non-finite or non-positive price are dropped.
        Input order does not matter.
        """
        points = []
        for pair in pairs:
            if len(pair) < 2:
                continue
            price = _to_decimal(pair[1])
            if price is None or price <= 0:
                continue
            points.append(PricePoint(timestamp=int(pair[0]), price=price))

        points.sort(key=lambda p: p.timestamp)
        return cls(points=tuple(points))

    def to_pairs(self) -> list[list[int | float]]:
        return [[p.timestamp, float(p.price)] for p in self.points]

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def timestamps(self) -> tuple[int, ...]:
        return self._timestamps

    @property
    def prices(self) -> tuple[Decimal, ...]:
        return self._prices

    @property
    def first(self) -> PricePoint:
        if not self.points:
            raise NoDataError()
        return self.points[0]

    @property
    def last(self) -> PricePoint:
        if not self.points:
            raise NoDataError()
        return self.points[-1]

    def __len__(self) -> int:
        return len(self.points)

    def value_at(self, timestamp: int) -> Decimal:
        return value_at(self, timestamp)


# =============================================================================
# LOOKUP
# =============================================================================

def value_at(series: PriceSeries, timestamp: int) -> Decimal:
    """
    Price at an arbitrary instant.

    - t at or before the first sample: first sample's price
    - t at or after the last sample: last sample's price
    - otherwise: linear interpolation between the bracketing samples

    Args:
        series: Samples to read
        timestamp: Instant in epoch milliseconds

    Returns:
        The price as Decimal

    Raises:
        NoDataError: If the series is empty
    """
    if series.is_empty:
        raise NoDataError()
    return interpolate(series.timestamps, series.prices, timestamp)


def interpolate(
        timestamps: Sequence[int],
        values: Sequence[Decimal],
        timestamp: int,
) -> Decimal:
    """
    Piecewise-linear lookup over parallel, time-sorted sequences.

    Shared by price lookups and by resampling of normalized (percent)
    series, which may hold zero or negative values.

    Raises:
        NoDataError: If the sequences are empty
    """
    if not timestamps:
        raise NoDataError()

    if timestamp <= timestamps[0]:
        return values[0]
    if timestamp >= timestamps[-1]:
        return values[-1]

    # First index whose timestamp is strictly greater than t; its predecessor
    # is <= t, so the pair brackets t with t2 > t1.
    idx = bisect_right(timestamps, timestamp)
    t1, t2 = timestamps[idx - 1], timestamps[idx]
    v1, v2 = values[idx - 1], values[idx]

    if timestamp == t1:
        return v1

    fraction = Decimal(timestamp - t1) / Decimal(t2 - t1)
    return v1 + (v2 - v1) * fraction


# =============================================================================
# MERGING
# =============================================================================

def merge(
        existing: PriceSeries | None,
        incoming: PriceSeries | None,
        max_points: int | None = None,
) -> PriceSeries:
    """
    Merge a freshly fetched history into a cached one.

    Samples are deduplicated by UTC calendar day (the incoming sample wins
    when both sides have the same day), sorted, and capped to max_points by
    dropping the oldest samples (default cap: settings.price_history_max_points).
    """
    if max_points is None:
        max_points = settings.price_history_max_points

    by_day: dict[str, PricePoint] = {}
    for source in (existing, incoming):
        if source is None:
            continue
        for point in source.points:
            by_day[iso_date(point.timestamp)] = point

    merged = sorted(by_day.values(), key=lambda p: p.timestamp)
    if len(merged) > max_points:
        logger.debug(f"Trimming {len(merged) - max_points} oldest price samples")
        merged = merged[-max_points:]

    return PriceSeries(points=tuple(merged))


# =============================================================================
# HELPERS
# =============================================================================

def _to_decimal(value: float | int | str | Decimal | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result
