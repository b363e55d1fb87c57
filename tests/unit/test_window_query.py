"""Unit tests for services/window_query.py."""

import asyncio
from datetime import datetime

import pytest

from errors import InvalidWindowParametersError, StoreUnavailableError, SubjectNotFoundError
from schemas.models.counter import ClickCategory
from services.window_query import WindowQueryService
from shared.time_bucket_utils import TimeBucketStrategy


@pytest.fixture
def window_query(subjects, counters, clock, analytics_settings):
    return WindowQueryService(subjects, counters, clock, analytics_settings)


# ── Parameter validation ─────────────────────────────────────────────────────


class TestValidate:
    @pytest.mark.parametrize(
        "strategy, window_length, offset, field",
        [
            (TimeBucketStrategy.DAILY, 0, 0, "window_length"),
            (TimeBucketStrategy.DAILY, -3, 0, "window_length"),
            (TimeBucketStrategy.DAILY, 7, -1, "offset"),
            (TimeBucketStrategy.MINUTE, 60, 121, "offset"),
            (TimeBucketStrategy.MINUTE_5, 30, 121, "offset"),
            (TimeBucketStrategy.HOURLY, 24, 169, "offset"),
            (TimeBucketStrategy.MINUTE_5, 100_000, 0, "window_length"),
            (TimeBucketStrategy.DAILY, "7", 0, "window_length"),
            (TimeBucketStrategy.DAILY, 7, 1.5, "offset"),
        ],
        ids=[
            "zero_window",
            "negative_window",
            "negative_offset",
            "one_minute_offset_ceiling",
            "minute_offset_ceiling",
            "hour_offset_ceiling",
            "too_many_buckets",
            "string_window",
            "float_offset",
        ],
    )
    def test_rejected(self, window_query, strategy, window_length, offset, field):
        with pytest.raises(InvalidWindowParametersError) as exc_info:
            window_query.validate(strategy, window_length, offset)
        assert exc_info.value.field == field

    @pytest.mark.parametrize(
        "strategy, window_length, offset",
        [
            (TimeBucketStrategy.MINUTE, 60, 120),
            (TimeBucketStrategy.MINUTE_5, 30, 120),
            (TimeBucketStrategy.HOURLY, 168, 168),
            (TimeBucketStrategy.DAILY, 7, 365),
            (TimeBucketStrategy.MONTHLY, 12, 24),
        ],
    )
    def test_accepted(self, window_query, strategy, window_length, offset):
        window_query.validate(strategy, window_length, offset)

    def test_offset_ceiling_reported_in_details(self, window_query):
        with pytest.raises(InvalidWindowParametersError) as exc_info:
            window_query.validate(TimeBucketStrategy.MINUTE_5, 30, 500)
        assert exc_info.value.details == {"max_offset": 120}


# ── Window resolution ────────────────────────────────────────────────────────


class TestResolve:
    def test_current_window(self, window_query):
        window = window_query.resolve("5min", 30)
        assert window.start == datetime(2026, 10, 14, 14, 10)
        assert window.end == datetime(2026, 10, 14, 14, 40)

    def test_offset_moves_window_back(self, window_query):
        window = window_query.resolve("5min", 30, offset=30)
        assert window.start == datetime(2026, 10, 14, 13, 40)
        assert window.end == datetime(2026, 10, 14, 14, 10)

    def test_day_offset(self, window_query):
        window = window_query.resolve("day", 7, offset=7)
        assert window.start == datetime(2026, 10, 1)
        assert window.end == datetime(2026, 10, 8)

    def test_adjacent_offsets_tile(self, window_query):
        newer = window_query.resolve("hour", 24, offset=0)
        older = window_query.resolve("hour", 24, offset=24)
        assert older.end == newer.start

    def test_explicit_now(self, window_query):
        window = window_query.resolve("hour", 1, now=datetime(2026, 1, 1, 0, 30))
        assert window.starts == (datetime(2026, 1, 1),)

    def test_unknown_width(self, window_query):
        with pytest.raises(InvalidWindowParametersError) as exc_info:
            window_query.resolve("fortnight", 3)
        assert exc_info.value.field == "bucket_width"

    def test_window_before_year_one(self, window_query):
        with pytest.raises(InvalidWindowParametersError):
            window_query.resolve("year", 1999, offset=100)

    def test_padded_dates_clamped_at_year_one(self, window_query):
        window = window_query.resolve("year", 1, offset=2025)
        assert window.start == datetime(1, 1, 1)
        assert window_query.padded_dates(window) == ("0001-01-01", "0002-01-02")

    def test_minute_window(self, window_query):
        window = window_query.resolve("minute", 10)
        assert window.start == datetime(2026, 10, 14, 14, 28)
        assert window.end == datetime(2026, 10, 14, 14, 38)
        assert len(window) == 10

    def test_padded_dates(self, window_query):
        window = window_query.resolve("5min", 30)
        assert window_query.padded_dates(window) == ("2026-10-13", "2026-10-15")


# ── query_window ─────────────────────────────────────────────────────────────


class TestQueryWindow:
    async def test_unknown_subject(self, window_query):
        with pytest.raises(SubjectNotFoundError):
            await window_query.query_window("64b7f0c2a1b2c3d4e5f60718", "day", 7)

    async def test_malformed_subject_id(self, window_query):
        with pytest.raises(SubjectNotFoundError):
            await window_query.query_window("not-an-object-id", "day", 7)

    async def test_parameters_checked_before_subject(self, window_query):
        with pytest.raises(InvalidWindowParametersError):
            await window_query.query_window("not-an-object-id", "day", 0)

    async def test_window_starting_at_year_one(self, window_query, subject, counters):
        offset = (datetime(2026, 10, 14) - datetime(1, 1, 1)).days
        counters[ClickCategory.QR_SCAN].seed(subject.id, datetime(2026, 10, 14, 9, 0))

        rows = await window_query.query_window(subject.id, "day", 1, offset)

        assert rows.window.start == datetime(1, 1, 1)
        assert rows.total() == 0
        for store in counters.values():
            assert store.range_queries == [("0001-01-01", "0001-01-03")]

    async def test_queries_padded_date_range(self, window_query, subject, counters):
        await window_query.query_window(subject.id, "5min", 30)
        for store in counters.values():
            assert store.range_queries == [("2026-10-13", "2026-10-15")]

    async def test_rows_trimmed_to_window(self, window_query, subject, counters):
        qr = counters[ClickCategory.QR_SCAN]
        qr.seed(subject.id, datetime(2026, 10, 13, 14, 20), 5)  # padded day, outside
        qr.seed(subject.id, datetime(2026, 10, 14, 14, 9), 2)  # just before start
        inside_first = qr.seed(subject.id, datetime(2026, 10, 14, 14, 10), 1)
        inside_last = qr.seed(subject.id, datetime(2026, 10, 14, 14, 39), 3)

        rows = await window_query.query_window(subject.id, "5min", 30)

        assert rows.qr_scans == [inside_first, inside_last]
        assert rows.total() == 4

    async def test_rows_grouped_by_category(self, window_query, subject, counters):
        moment = datetime(2026, 10, 14, 14, 30)
        counters[ClickCategory.QR_SCAN].seed(subject.id, moment)
        counters[ClickCategory.SOCIAL_CLICK].seed(subject.id, moment, 2, key="x")
        counters[ClickCategory.CUSTOM_LINK_CLICK].seed(subject.id, moment, 3, key=1)

        rows = await window_query.query_window(subject.id, "hour", 2)

        assert [r.count for r in rows.qr_scans] == [1]
        assert [r.count for r in rows.social_clicks] == [2]
        assert [r.count for r in rows.custom_link_clicks] == [3]

    async def test_other_subjects_excluded(self, window_query, subject, subjects, counters):
        other = subjects.add("U9")
        counters[ClickCategory.QR_SCAN].seed(other.id, datetime(2026, 10, 14, 14, 30), 7)
        rows = await window_query.query_window(subject.id, "day", 1)
        assert rows.total() == 0

    async def test_inactive_subject_still_readable(self, window_query, subjects, counters):
        inactive = subjects.add("U2", active=False)
        counters[ClickCategory.QR_SCAN].seed(inactive.id, datetime(2026, 10, 14, 9, 0), 4)
        rows = await window_query.query_window(str(inactive.id), "day", 1)
        assert rows.total() == 4

    async def test_store_failure_propagates(self, window_query, subject, counters):
        counters[ClickCategory.SOCIAL_CLICK].error = StoreUnavailableError("down")
        with pytest.raises(StoreUnavailableError):
            await window_query.query_window(subject.id, "day", 7)

    async def test_stores_queried_concurrently(self, window_query, subject, counters):
        started = []
        all_started = asyncio.Event()

        def gated(store):
            original = store.find_in_date_range

            async def find_in_date_range(*args):
                started.append(store.category)
                if len(started) == len(counters):
                    all_started.set()
                await asyncio.wait_for(all_started.wait(), timeout=1)
                return await original(*args)

            return find_in_date_range

        for store in counters.values():
            store.find_in_date_range = gated(store)

        rows = await window_query.query_window(subject.id, "day", 7)
        assert rows.total() == 0
        assert set(started) == set(ClickCategory)
