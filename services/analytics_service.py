"""
Analytics service — the entry point used by routes and by in-process callers.

Composes the window query layer and the bucket aggregator into click series,
exposes summary statistics and event recording, and applies caller-defined
timeouts to the read paths. Reads have no side effects, so a timed-out read
is simply abandoned.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Mapping, Optional, TypeVar

from pymongo.asynchronous.database import AsyncDatabase

from config import AnalyticsSettings, DatabaseSettings
from errors import InvalidWindowParametersError, QueryTimeoutError
from repositories.counter_repository import build_counter_repositories
from repositories.protocol import CounterStore, SubjectLookup
from repositories.subject_repository import SubjectRepository
from schemas.dto.responses.analytics import ClickSeriesResponse, SummaryStatsResponse
from schemas.models.counter import ClickCategory
from services.bucket_aggregator import BucketAggregator
from services.event_recorder import CategoryKey, EventRecorder
from services.summary_stats import SummaryStatsService
from services.window_query import WindowQueryService
from shared.datetime_utils import LocalClock
from shared.logging import get_logger
from shared.time_bucket_utils import (
    get_bucket_config,
    get_bucket_info,
    parse_bucket_width,
)

log = get_logger(__name__)

T = TypeVar("T")

_UNSET: Any = object()


class AnalyticsService:
    def __init__(
        self,
        subjects: SubjectLookup,
        counters: Mapping[ClickCategory, CounterStore],
        clock: LocalClock,
        settings: AnalyticsSettings,
    ) -> None:
        self.clock = clock
        self.settings = settings
        self.recorder = EventRecorder(subjects, counters, clock)
        self.window_query = WindowQueryService(subjects, counters, clock, settings)
        self.aggregator = BucketAggregator(
            clock,
            week_start=settings.series_week_start,
            max_buckets=settings.max_window_buckets,
        )
        self.summary = SummaryStatsService(
            subjects, counters, clock, week_start=settings.summary_week_start
        )

    async def _with_timeout(
        self, operation: str, awaitable: Awaitable[T], timeout: Optional[float]
    ) -> T:
        if timeout is _UNSET:
            timeout = self.settings.query_timeout_seconds
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError:
            log.warning("analytics_read_timeout", operation=operation, timeout=timeout)
            raise QueryTimeoutError(
                f"{operation} did not finish within {timeout} seconds"
            ) from None

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get_click_series(
        self,
        subject_id: Any,
        bucket_width: Any,
        window_length: Optional[int] = None,
        offset: int = 0,
        timeout: Optional[float] = _UNSET,
    ) -> ClickSeriesResponse:
        try:
            strategy = parse_bucket_width(bucket_width)
        except ValueError as exc:
            raise InvalidWindowParametersError(str(exc), field="bucket_width") from exc
        if window_length is None:
            window_length = get_bucket_config(strategy).default_window

        rows = await self._with_timeout(
            "click_series",
            self.window_query.query_window(subject_id, strategy, window_length, offset),
            timeout,
        )
        window = rows.window
        buckets = self.aggregator.aggregate_window(rows, window)

        return ClickSeriesResponse(
            subject_id=str(subject_id),
            bucket_width=strategy.value,
            window_length=window_length,
            offset=offset,
            start=window.start,
            end=window.end,
            timezone=self.clock.label,
            buckets=buckets,
            time_bucket_info=get_bucket_info(strategy, self.clock.label),
        )

    async def get_summary(
        self, subject_id: Any, timeout: Optional[float] = _UNSET
    ) -> SummaryStatsResponse:
        return await self._with_timeout(
            "summary", self.summary.summarize(subject_id), timeout
        )

    # ── Writes ───────────────────────────────────────────────────────────────

    async def record_event(
        self,
        public_id: str,
        category: ClickCategory,
        category_key: CategoryKey = None,
    ) -> None:
        await self.recorder.record_event(public_id, category, category_key)

    async def record_qr_scan(self, public_id: str) -> None:
        await self.recorder.record_qr_scan(public_id)

    async def record_social_click(self, public_id: str, platform: str) -> None:
        await self.recorder.record_social_click(public_id, platform)

    async def record_custom_link_click(self, public_id: str, link_index: int) -> None:
        await self.recorder.record_custom_link_click(public_id, link_index)


def build_analytics_service(
    db: AsyncDatabase,
    db_settings: DatabaseSettings,
    settings: AnalyticsSettings,
) -> AnalyticsService:
    """Wire the MongoDB repositories and the local clock into an AnalyticsService."""
    subjects = SubjectRepository(db[db_settings.profiles_collection])
    counters = build_counter_repositories(db)
    clock = LocalClock(settings.analytics_timezone)
    return AnalyticsService(subjects, counters, clock, settings)
