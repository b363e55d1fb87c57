"""
Summary statistics — rolling click totals for a profile.

Every counter row is expanded into ``count`` synthetic timestamps at the
start of its minute. Sub-minute order is lost, which is fine for counting
events after a period boundary and for nothing more precise.
"""

from __future__ import annotations

import asyncio
from bisect import bisect_left
from datetime import datetime
from typing import Any, Iterable, Mapping

from errors import SubjectNotFoundError
from repositories.protocol import CounterStore, SubjectLookup
from schemas.dto.responses.analytics import ClickBreakdown, SummaryStatsResponse
from schemas.models.counter import ClickCategory, MinuteCounterDoc
from shared.datetime_utils import (
    LocalClock,
    start_of_day,
    start_of_month,
    start_of_week,
    start_of_year,
)
from shared.logging import get_logger

log = get_logger(__name__)


def flatten_timestamps(
    rows: Iterable[MinuteCounterDoc], clock: LocalClock
) -> list[datetime]:
    """Expand counter rows into one sorted timestamp per recorded event."""
    timestamps: list[datetime] = []
    for row in rows:
        instant = clock.from_parts(row.date, row.hour, row.minute)
        timestamps.extend([instant] * row.count)
    timestamps.sort()
    return timestamps


def period_starts(now: datetime, week_start: int = 6) -> dict[str, datetime]:
    return {
        "today": start_of_day(now),
        "this_week": start_of_week(now, week_start),
        "this_month": start_of_month(now),
        "this_year": start_of_year(now),
    }


def count_since(timestamps: list[datetime], boundary: datetime) -> int:
    """Number of entries in sorted *timestamps* at or after *boundary*."""
    return len(timestamps) - bisect_left(timestamps, boundary)


class SummaryStatsService:
    def __init__(
        self,
        subjects: SubjectLookup,
        counters: Mapping[ClickCategory, CounterStore],
        clock: LocalClock,
        week_start: int = 6,
    ) -> None:
        self.subjects = subjects
        self.counters = counters
        self.clock = clock
        self.week_start = week_start

    async def summarize(self, subject_id: Any) -> SummaryStatsResponse:
        subject = await self.subjects.find_by_id(subject_id)
        if subject is None:
            raise SubjectNotFoundError("profile not found", field="subject_id")

        categories = list(ClickCategory)
        results = await asyncio.gather(
            *(self.counters[category].find_all(subject.id) for category in categories)
        )

        breakdown = ClickBreakdown()
        all_rows: list[MinuteCounterDoc] = []
        for category, rows in zip(categories, results):
            for row in rows:
                breakdown.add(category, row.count, row.category_key)
            all_rows.extend(rows)

        timestamps = flatten_timestamps(all_rows, self.clock)
        now = self.clock.now()
        counts = {
            name: count_since(timestamps, boundary)
            for name, boundary in period_starts(now, self.week_start).items()
        }

        log.debug(
            "summary_computed",
            subject_id=str(subject.id),
            rows=len(all_rows),
            total=len(timestamps),
        )
        return SummaryStatsResponse(
            subject_id=str(subject.id),
            total=len(timestamps),
            breakdown=breakdown,
            generated_at=now,
            **counts,
        )
