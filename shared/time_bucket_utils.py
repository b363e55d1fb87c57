"""
Time bucket strategies for click series.

Each strategy knows how to floor an instant to its bucket start, step from
one bucket to the next, and format keys and display labels. Fixed-width
strategies (minute, 5-minute, hourly, daily, weekly) step with ``timedelta``; monthly
and yearly step on the calendar.

All arithmetic here is wall-clock arithmetic on whatever datetimes the
caller passes in (see ``shared.datetime_utils.LocalClock``).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from shared.datetime_utils import (
    start_of_day,
    start_of_month,
    start_of_week,
    start_of_year,
)


class TimeBucketStrategy(Enum):
    """Enumeration of available time bucketing strategies"""

    MINUTE = "minute"
    MINUTE_5 = "5min"
    HOURLY = "hour"
    DAILY = "day"
    WEEKLY = "week"
    MONTHLY = "month"
    YEARLY = "year"


class TimeBucketConfig:
    """Configuration for time bucket aggregation"""

    def __init__(
        self,
        strategy: TimeBucketStrategy,
        key_format: str,
        interval_minutes: Optional[int],
        window_unit: str,
        window_unit_minutes: Optional[int],
        default_window: int,
    ):
        self.strategy = strategy
        self.key_format = key_format
        # None for calendar strategies whose buckets vary in length
        self.interval_minutes = interval_minutes
        # Unit that window_length and offset are expressed in
        self.window_unit = window_unit
        self.window_unit_minutes = window_unit_minutes
        self.default_window = default_window

    @property
    def is_calendar(self) -> bool:
        return self.interval_minutes is None


BUCKET_CONFIGS = {
    TimeBucketStrategy.MINUTE: TimeBucketConfig(
        strategy=TimeBucketStrategy.MINUTE,
        key_format="%Y-%m-%d %H:%M",
        interval_minutes=1,
        window_unit="minutes",
        window_unit_minutes=1,
        default_window=60,
    ),
    TimeBucketStrategy.MINUTE_5: TimeBucketConfig(
        strategy=TimeBucketStrategy.MINUTE_5,
        key_format="%Y-%m-%d %H:%M",
        interval_minutes=5,
        window_unit="minutes",
        window_unit_minutes=1,
        default_window=30,
    ),
    TimeBucketStrategy.HOURLY: TimeBucketConfig(
        strategy=TimeBucketStrategy.HOURLY,
        key_format="%Y-%m-%d %H:00",
        interval_minutes=60,
        window_unit="hours",
        window_unit_minutes=60,
        default_window=168,  # 7 days
    ),
    TimeBucketStrategy.DAILY: TimeBucketConfig(
        strategy=TimeBucketStrategy.DAILY,
        key_format="%Y-%m-%d",
        interval_minutes=1440,  # 24 * 60
        window_unit="days",
        window_unit_minutes=1440,
        default_window=7,
    ),
    TimeBucketStrategy.WEEKLY: TimeBucketConfig(
        strategy=TimeBucketStrategy.WEEKLY,
        key_format="%Y-%m-%d",  # date of the first day of the week
        interval_minutes=10080,  # 7 * 24 * 60
        window_unit="weeks",
        window_unit_minutes=10080,
        default_window=8,
    ),
    TimeBucketStrategy.MONTHLY: TimeBucketConfig(
        strategy=TimeBucketStrategy.MONTHLY,
        key_format="%Y-%m",
        interval_minutes=None,
        window_unit="months",
        window_unit_minutes=None,
        default_window=12,
    ),
    TimeBucketStrategy.YEARLY: TimeBucketConfig(
        strategy=TimeBucketStrategy.YEARLY,
        key_format="%Y",
        interval_minutes=None,
        window_unit="years",
        window_unit_minutes=None,
        default_window=5,
    ),
}

_STRATEGY_ALIASES = {
    "1min": TimeBucketStrategy.MINUTE,
    "1m": TimeBucketStrategy.MINUTE,
    "5m": TimeBucketStrategy.MINUTE_5,
    "hourly": TimeBucketStrategy.HOURLY,
    "daily": TimeBucketStrategy.DAILY,
    "weekly": TimeBucketStrategy.WEEKLY,
    "monthly": TimeBucketStrategy.MONTHLY,
    "yearly": TimeBucketStrategy.YEARLY,
}


def get_bucket_config(strategy: TimeBucketStrategy) -> TimeBucketConfig:
    """Get the bucket configuration for a given strategy"""
    return BUCKET_CONFIGS[strategy]


def parse_bucket_width(value: Any) -> TimeBucketStrategy:
    """Resolve a bucket width such as ``"5min"`` or ``"hourly"``.

    Raises:
        ValueError: for unknown widths.
    """
    if isinstance(value, TimeBucketStrategy):
        return value
    raw = str(value).strip().lower()
    try:
        return TimeBucketStrategy(raw)
    except ValueError:
        pass
    if raw in _STRATEGY_ALIASES:
        return _STRATEGY_ALIASES[raw]
    allowed = ", ".join(s.value for s in TimeBucketStrategy)
    raise ValueError(f"bucket width must be one of: {allowed}")


def add_months(moment: datetime, months: int) -> datetime:
    """Move *moment* by whole calendar months, clamping the day of month."""
    index = moment.year * 12 + (moment.month - 1) + months
    year, month_index = divmod(index, 12)
    month = month_index + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def floor_to_bucket(
    moment: datetime, strategy: TimeBucketStrategy, week_start: int = 0
) -> datetime:
    """Round *moment* down to the start of the bucket containing it."""
    if strategy == TimeBucketStrategy.MINUTE:
        return moment.replace(second=0, microsecond=0)
    if strategy == TimeBucketStrategy.MINUTE_5:
        base = moment.replace(second=0, microsecond=0)
        return base.replace(minute=(base.minute // 5) * 5)
    if strategy == TimeBucketStrategy.HOURLY:
        return moment.replace(minute=0, second=0, microsecond=0)
    if strategy == TimeBucketStrategy.DAILY:
        return start_of_day(moment)
    if strategy == TimeBucketStrategy.WEEKLY:
        return start_of_week(moment, week_start)
    if strategy == TimeBucketStrategy.MONTHLY:
        return start_of_month(moment)
    return start_of_year(moment)


def shift_buckets(
    moment: datetime, strategy: TimeBucketStrategy, count: int
) -> datetime:
    """Move *moment* by *count* buckets (negative moves into the past)."""
    if strategy == TimeBucketStrategy.MONTHLY:
        return add_months(moment, count)
    if strategy == TimeBucketStrategy.YEARLY:
        return add_months(moment, 12 * count)
    config = get_bucket_config(strategy)
    return moment + timedelta(minutes=config.interval_minutes * count)


def shift_window_units(
    moment: datetime, strategy: TimeBucketStrategy, units: int
) -> datetime:
    """Move *moment* by *units* of the strategy's window unit."""
    config = get_bucket_config(strategy)
    if config.is_calendar:
        return shift_buckets(moment, strategy, units)
    return moment + timedelta(minutes=config.window_unit_minutes * units)


def bucket_count(strategy: TimeBucketStrategy, window_length: int) -> int:
    """Number of buckets needed to cover *window_length* window units."""
    config = get_bucket_config(strategy)
    if config.is_calendar:
        return window_length
    window_minutes = window_length * config.window_unit_minutes
    return -(-window_minutes // config.interval_minutes)


@dataclass(frozen=True)
class BucketWindow:
    """A resolved, bucket-aligned query window.

    ``starts`` holds every bucket start, oldest first. The window covers
    ``[start, end)``: from the first bucket's start to the end of the bucket
    containing ``anchor``.
    """

    strategy: TimeBucketStrategy
    anchor: datetime
    starts: tuple

    @property
    def start(self) -> datetime:
        return self.starts[0]

    @property
    def end(self) -> datetime:
        return shift_buckets(self.starts[-1], self.strategy, 1)

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def __len__(self) -> int:
        return len(self.starts)


def resolve_window(
    strategy: TimeBucketStrategy,
    window_length: int,
    anchor: datetime,
    week_start: int = 0,
) -> BucketWindow:
    """Build the window of buckets whose last bucket contains *anchor*."""
    count = bucket_count(strategy, window_length)
    last = floor_to_bucket(anchor, strategy, week_start)
    first = shift_buckets(last, strategy, -(count - 1))
    starts = tuple(shift_buckets(first, strategy, i) for i in range(count))
    return BucketWindow(strategy=strategy, anchor=anchor, starts=starts)


def format_bucket_key(start: datetime, strategy: TimeBucketStrategy) -> str:
    return start.strftime(get_bucket_config(strategy).key_format)


def _clock_label(moment: datetime, with_minutes: bool = True) -> str:
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    if with_minutes:
        return f"{hour}:{moment.minute:02d} {suffix}"
    return f"{hour} {suffix}"


def _day_label(moment: datetime) -> str:
    return f"{moment.strftime('%b')} {moment.day}"


def format_bucket_label(start: datetime, strategy: TimeBucketStrategy) -> str:
    """
    Human-readable label computed from a bucket's own start.

    Examples: ``3:05 PM``, ``3:05 PM – 3:10 PM``, ``3 PM``, ``Jan 5``, ``Jan 5 - Jan 11``,
    ``January 2026``, ``2026``.
    """
    if strategy == TimeBucketStrategy.MINUTE:
        return _clock_label(start)
    if strategy == TimeBucketStrategy.MINUTE_5:
        end = start + timedelta(minutes=5)
        return f"{_clock_label(start)} – {_clock_label(end)}"
    if strategy == TimeBucketStrategy.HOURLY:
        return _clock_label(start, with_minutes=False)
    if strategy == TimeBucketStrategy.DAILY:
        return _day_label(start)
    if strategy == TimeBucketStrategy.WEEKLY:
        return f"{_day_label(start)} - {_day_label(start + timedelta(days=6))}"
    if strategy == TimeBucketStrategy.MONTHLY:
        return start.strftime("%B %Y")
    return str(start.year)


def format_bucket_short_label(start: datetime, strategy: TimeBucketStrategy) -> str:
    """Compact axis label."""
    if strategy == TimeBucketStrategy.MINUTE_5:
        return _clock_label(start)
    if strategy == TimeBucketStrategy.MONTHLY:
        return start.strftime("%b %Y")
    if strategy == TimeBucketStrategy.WEEKLY:
        return _day_label(start)
    return format_bucket_label(start, strategy)


def get_bucket_info(strategy: TimeBucketStrategy, timezone: str) -> Dict[str, Any]:
    """Describe the bucketing used for a series response."""
    config = get_bucket_config(strategy)
    return {
        "strategy": strategy.value,
        "interval_minutes": config.interval_minutes,
        "window_unit": config.window_unit,
        "description": _get_strategy_description(strategy),
        "timezone": timezone,
    }


def _get_strategy_description(strategy: TimeBucketStrategy) -> str:
    """Get human-readable description for a bucketing strategy"""
    descriptions = {
        TimeBucketStrategy.MINUTE: "1-minute intervals for live activity",
        TimeBucketStrategy.MINUTE_5: "5-minute intervals for real-time activity",
        TimeBucketStrategy.HOURLY: "Hourly intervals for daily patterns",
        TimeBucketStrategy.DAILY: "Daily intervals for trend analysis",
        TimeBucketStrategy.WEEKLY: "Weekly intervals for long-term trends",
        TimeBucketStrategy.MONTHLY: "Monthly intervals for yearly comparisons",
        TimeBucketStrategy.YEARLY: "Yearly totals",
    }
    return descriptions.get(strategy, "Unknown strategy")
