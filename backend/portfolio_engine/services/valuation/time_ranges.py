# backend/portfolio_engine/services/valuation/time_ranges.py
"""
Display window resolution.

Maps the time-range toggles of the chart (24H, 1W, 1M, 3M, 1Y, ALL, CUSTOM)
to concrete [start, end] windows in epoch milliseconds.
"""

import enum
import logging
from typing import Sequence

from portfolio_engine.models import Asset
from portfolio_engine.services.constants import ALL_RANGE_LEAD_MS
from portfolio_engine.services.valuation.types import TimeWindow
from portfolio_engine.utils.date_utils import MS_PER_DAY, now_ms as current_ms

logger = logging.getLogger(__name__)


class TimeRange(str, enum.Enum):
    DAY = "24H"
    WEEK = "1W"
    MONTH = "1M"
    QUARTER = "3M"
    YEAR = "1Y"
    ALL = "ALL"
    CUSTOM = "CUSTOM"


# Fixed lookbacks; ALL and CUSTOM depend on the data
RANGE_LOOKBACK_MS: dict[TimeRange, int] = {
    TimeRange.DAY: MS_PER_DAY,
    TimeRange.WEEK: 7 * MS_PER_DAY,
    TimeRange.MONTH: 30 * MS_PER_DAY,
    TimeRange.QUARTER: 90 * MS_PER_DAY,
    TimeRange.YEAR: 365 * MS_PER_DAY,
}

SHORT_RANGES: frozenset[TimeRange] = frozenset({TimeRange.DAY, TimeRange.WEEK})


def is_short_range(time_range: TimeRange) -> bool:
    """Short windows need fresher upstream data."""
    return TimeRange(time_range) in SHORT_RANGES


def first_transaction_ms(assets: Sequence[Asset]) -> int | None:
    timestamps = [
        asset.first_transaction_timestamp
        for asset in assets
        if asset.first_transaction_timestamp is not None
    ]
    return min(timestamps) if timestamps else None


def resolve_window(
        time_range: TimeRange | str,
        assets: Sequence[Asset] = (),
        now_ms: int | None = None,
        custom_start: int | None = None,
        custom_end: int | None = None,
) -> TimeWindow:
    """
    Concrete window for a time range.

    - fixed ranges end now and look back a fixed duration
    - ALL starts one lead interval before the earliest transaction of any
      asset (one day back when there are no transactions)
    - CUSTOM uses the given bounds; a missing start falls back to ALL's
      start, a missing end to now

    The window is returned as requested even if reversed; the series
    generator clamps it.

    Raises:
        ValueError: If time_range is not a known range
    """
    time_range = TimeRange(time_range)
    end = now_ms if now_ms is not None else current_ms()

    if time_range in RANGE_LOOKBACK_MS:
        return TimeWindow(start_ms=end - RANGE_LOOKBACK_MS[time_range], end_ms=end)

    first_tx = first_transaction_ms(assets)
    all_start = first_tx - ALL_RANGE_LEAD_MS if first_tx is not None else end - MS_PER_DAY

    if time_range == TimeRange.ALL:
        return TimeWindow(start_ms=all_start, end_ms=end)

    start = custom_start if custom_start is not None else all_start
    if custom_end is not None:
        end = custom_end
    logger.debug(f"Custom window resolved to {start}..{end}")
    return TimeWindow(start_ms=start, end_ms=end)
