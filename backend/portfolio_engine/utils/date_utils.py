# backend/portfolio_engine/utils/date_utils.py
"""
Date and timestamp helpers for the valuation engine.

All engine timestamps are integer milliseconds since the Unix epoch, UTC.
Calendar dates (used to key historical FX tables and to deduplicate price
histories) are always derived in UTC so that a timestamp maps to the same
day regardless of the host's local timezone.

Usage:
    from portfolio_engine.utils.date_utils import iso_date, evenly_spaced

    day = iso_date(1704067200000)           # "2024-01-01"
    grid = evenly_spaced(start, end, 150)   # 151 timestamps
"""

import time
from datetime import date, datetime, timedelta, timezone

MS_PER_SECOND: int = 1000
MS_PER_HOUR: int = 60 * 60 * MS_PER_SECOND
MS_PER_DAY: int = 24 * MS_PER_HOUR


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * MS_PER_SECOND)


def to_datetime(ts_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(ts_ms / MS_PER_SECOND, tz=timezone.utc)


def to_date(ts_ms: int) -> date:
    """Calendar day (UTC) containing the timestamp."""
    return to_datetime(ts_ms).date()


def iso_date(ts_ms: int) -> str:
    """
    Format a timestamp as the ISO date string used by historical rate tables.

    Example:
        >>> iso_date(1704067200000)
        '2024-01-01'
    """
    return to_date(ts_ms).isoformat()


def datetime_to_ms(value: datetime) -> int:
    """
    Convert a datetime to epoch milliseconds.

    Naive datetimes are interpreted as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * MS_PER_SECOND)


def date_to_ms(value: date) -> int:
    """Epoch milliseconds of midnight UTC at the start of the given day."""
    return datetime_to_ms(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))


def evenly_spaced(start_ms: int, end_ms: int, intervals: int) -> list[int]:
    """
    Split [start_ms, end_ms] into evenly spaced timestamps.

    Integer arithmetic keeps both endpoints exact, so two grids built over
    the same window always share their first and last timestamps.

    Args:
        start_ms: First timestamp
        end_ms: Last timestamp
        intervals: Number of intervals (the grid has intervals + 1 points)

    Returns:
        Sorted list of intervals + 1 timestamps. A single [start_ms] when
        intervals is zero or negative.
    """
    if intervals <= 0:
        return [start_ms]

    span = end_ms - start_ms
    return [start_ms + (span * i) // intervals for i in range(intervals + 1)]


def days_between(start: date, end: date) -> list[date]:
    """
    Every calendar day from start to end, inclusive.

    Returns an empty list when end is before start.
    """
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days
