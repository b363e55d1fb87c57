"""
Window query layer — fetches the raw counter rows behind one chart window.

A request names a bucket width, a window length and an offset, both in the
width's window unit (minutes for minute and 5min, hours for hour, days for day, whole
periods for week/month/year). The window ends at ``now - offset`` and is
widened to whole buckets: ``N`` consecutive buckets whose last bucket
contains that end time.

Counters are keyed by calendar date, so the store is asked for a padded date
range and the rows are then trimmed to the exact window. The three category
stores are queried concurrently.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

from config import AnalyticsSettings
from errors import InvalidWindowParametersError, SubjectNotFoundError
from repositories.protocol import CounterStore, SubjectLookup
from schemas.models.counter import ClickCategory, MinuteCounterDoc
from shared.datetime_utils import LocalClock, date_range_strings
from shared.logging import get_logger, should_sample
from shared.time_bucket_utils import (
    BucketWindow,
    TimeBucketStrategy,
    bucket_count,
    parse_bucket_width,
    resolve_window,
    shift_window_units,
)

log = get_logger(__name__)


@dataclass
class RawCounterRows:
    """Counter rows inside one resolved window, grouped by category."""

    window: BucketWindow
    qr_scans: list[MinuteCounterDoc] = field(default_factory=list)
    social_clicks: list[MinuteCounterDoc] = field(default_factory=list)
    custom_link_clicks: list[MinuteCounterDoc] = field(default_factory=list)

    def by_category(self) -> dict[ClickCategory, list[MinuteCounterDoc]]:
        return {
            ClickCategory.QR_SCAN: self.qr_scans,
            ClickCategory.SOCIAL_CLICK: self.social_clicks,
            ClickCategory.CUSTOM_LINK_CLICK: self.custom_link_clicks,
        }

    def total(self) -> int:
        return sum(
            row.count for rows in self.by_category().values() for row in rows
        )


class WindowQueryService:
    def __init__(
        self,
        subjects: SubjectLookup,
        counters: Mapping[ClickCategory, CounterStore],
        clock: LocalClock,
        settings: AnalyticsSettings,
    ) -> None:
        self.subjects = subjects
        self.counters = counters
        self.clock = clock
        self.settings = settings

    def validate(
        self, strategy: TimeBucketStrategy, window_length: Any, offset: Any
    ) -> None:
        """Reject bad window parameters before any store access.

        Raises:
            InvalidWindowParametersError
        """
        for name, value in (("window_length", window_length), ("offset", offset)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidWindowParametersError(
                    f"{name} must be an integer", field=name
                )
        if window_length < 1:
            raise InvalidWindowParametersError(
                "window_length must be at least 1", field="window_length"
            )
        if offset < 0:
            raise InvalidWindowParametersError(
                "offset must not be negative", field="offset"
            )

        ceiling: Optional[int] = None
        if strategy in (TimeBucketStrategy.MINUTE, TimeBucketStrategy.MINUTE_5):
            ceiling = self.settings.max_minute_offset
        elif strategy == TimeBucketStrategy.HOURLY:
            ceiling = self.settings.max_hour_offset
        if ceiling is not None and offset > ceiling:
            raise InvalidWindowParametersError(
                f"offset exceeds the maximum of {ceiling} for {strategy.value} buckets",
                field="offset",
                details={"max_offset": ceiling},
            )

        count = bucket_count(strategy, window_length)
        if count > self.settings.max_window_buckets:
            raise InvalidWindowParametersError(
                f"window spans {count} buckets; the maximum is "
                f"{self.settings.max_window_buckets}",
                field="window_length",
                details={"max_buckets": self.settings.max_window_buckets},
            )

    def resolve(
        self,
        bucket_width: Any,
        window_length: int,
        offset: int = 0,
        now: Optional[datetime] = None,
    ) -> BucketWindow:
        """Validate the parameters and compute the bucket-aligned window."""
        try:
            strategy = parse_bucket_width(bucket_width)
        except ValueError as exc:
            raise InvalidWindowParametersError(str(exc), field="bucket_width") from exc
        self.validate(strategy, window_length, offset)

        if now is None:
            now = self.clock.now()
        try:
            end_time = shift_window_units(now, strategy, -offset)
            return resolve_window(
                strategy, window_length, end_time, self.settings.series_week_start
            )
        except (OverflowError, ValueError) as exc:
            raise InvalidWindowParametersError(
                "window reaches outside the supported date range", field="offset"
            ) from exc

    def padded_dates(self, window: BucketWindow) -> tuple[str, str]:
        """Calendar dates to fetch, clamped to the representable date range."""
        pad = timedelta(days=self.settings.date_padding_days)
        first = window.start.date()
        last = window.end.date()
        first = first - pad if first - date.min >= pad else date.min
        last = last + pad if date.max - last >= pad else date.max
        return date_range_strings(first, last)

    async def query_window(
        self,
        subject_id: Any,
        bucket_width: Any,
        window_length: int,
        offset: int = 0,
    ) -> RawCounterRows:
        window = self.resolve(bucket_width, window_length, offset)

        subject = await self.subjects.find_by_id(subject_id)
        if subject is None:
            raise SubjectNotFoundError("profile not found", field="subject_id")

        first_date, last_date = self.padded_dates(window)
        categories = list(ClickCategory)
        results = await asyncio.gather(
            *(
                self.counters[category].find_in_date_range(
                    subject.id, first_date, last_date
                )
                for category in categories
            )
        )

        rows = RawCounterRows(window=window)
        grouped = rows.by_category()
        fetched = 0
        for category, candidates in zip(categories, results):
            fetched += len(candidates)
            grouped[category].extend(
                row
                for row in candidates
                if window.contains(self.clock.from_parts(row.date, row.hour, row.minute))
            )

        if should_sample("click_series_query"):
            log.info(
                "click_series_query",
                subject_id=str(subject.id),
                bucket_width=window.strategy.value,
                window_length=window_length,
                offset=offset,
                first_date=first_date,
                last_date=last_date,
                rows_fetched=fetched,
                events_in_window=rows.total(),
            )
        return rows
