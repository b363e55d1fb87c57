"""
Bucket aggregator — merges counter rows of all categories into a dense series.

Every bucket of the window is emitted, oldest first, whether or not any row
falls into it, so charts always get a full axis. Each row contributes its
``count`` (not 1) to the bucket containing the row's minute.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from errors import InvalidWindowParametersError
from schemas.dto.responses.analytics import ClickBucket
from schemas.models.counter import ClickCategory, MinuteCounterDoc
from services.window_query import RawCounterRows
from shared.datetime_utils import LocalClock
from shared.time_bucket_utils import (
    BucketWindow,
    bucket_count,
    floor_to_bucket,
    format_bucket_key,
    format_bucket_label,
    format_bucket_short_label,
    parse_bucket_width,
    resolve_window,
)

RowsByCategory = Union[
    RawCounterRows, Mapping[ClickCategory, Iterable[MinuteCounterDoc]]
]


class BucketAggregator:
    def __init__(
        self,
        clock: LocalClock,
        week_start: int = 0,
        max_buckets: Optional[int] = None,
    ) -> None:
        self.clock = clock
        self.week_start = week_start
        self.max_buckets = max_buckets

    def aggregate(
        self,
        rows: RowsByCategory,
        bucket_width: Any,
        window_length: int,
        end_time: datetime,
    ) -> list[ClickBucket]:
        """Bucket *rows* over the window of *window_length* units ending at *end_time*."""
        try:
            strategy = parse_bucket_width(bucket_width)
        except ValueError as exc:
            raise InvalidWindowParametersError(str(exc), field="bucket_width") from exc
        if (
            isinstance(window_length, bool)
            or not isinstance(window_length, int)
            or window_length < 1
        ):
            raise InvalidWindowParametersError(
                "window_length must be a positive integer", field="window_length"
            )
        count = bucket_count(strategy, window_length)
        if self.max_buckets is not None and count > self.max_buckets:
            raise InvalidWindowParametersError(
                f"window spans {count} buckets; the maximum is {self.max_buckets}",
                field="window_length",
                details={"max_buckets": self.max_buckets},
            )
        try:
            window = resolve_window(strategy, window_length, end_time, self.week_start)
        except (OverflowError, ValueError) as exc:
            raise InvalidWindowParametersError(
                "window reaches outside the supported date range", field="end_time"
            ) from exc
        return self.aggregate_window(rows, window)

    def aggregate_window(
        self, rows: RowsByCategory, window: BucketWindow
    ) -> list[ClickBucket]:
        strategy = window.strategy
        buckets: dict[str, ClickBucket] = {}
        for start in window.starts:
            key = format_bucket_key(start, strategy)
            buckets[key] = ClickBucket(
                start=start,
                key=key,
                label=format_bucket_label(start, strategy),
                short_label=format_bucket_short_label(start, strategy),
            )

        grouped = rows.by_category() if isinstance(rows, RawCounterRows) else rows
        for category, category_rows in grouped.items():
            category = ClickCategory(category)
            for row in category_rows:
                instant = self.clock.from_parts(row.date, row.hour, row.minute)
                if not window.contains(instant):
                    continue
                start = floor_to_bucket(instant, strategy, self.week_start)
                bucket = buckets.get(format_bucket_key(start, strategy))
                if bucket is None:
                    # window resolved with a different week start
                    continue
                bucket.breakdown.add(category, row.count, row.category_key)

        return list(buckets.values())
