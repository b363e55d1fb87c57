"""
Shared test doubles.

In-memory implementations of the repository protocols plus a frozen clock,
so services can be exercised end to end without MongoDB.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional, Union

import pytest
from bson import ObjectId

from config import AnalyticsSettings
from schemas.models.base import to_object_id
from schemas.models.counter import COUNTER_MODELS, ClickCategory, MinuteCounterDoc
from schemas.models.subject import SubjectDoc
from services.analytics_service import AnalyticsService
from shared.datetime_utils import LocalClock, MinuteSlot

# Wednesday
NOW = datetime(2026, 10, 14, 14, 37, 20)


class FrozenClock(LocalClock):
    def __init__(self, moment: datetime, timezone: Optional[str] = None) -> None:
        super().__init__(timezone)
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment

    def advance(self, **delta) -> None:
        self.moment = self.moment + timedelta(**delta)


class InMemorySubjects:
    def __init__(self) -> None:
        self.by_id: dict[ObjectId, SubjectDoc] = {}

    def add(self, uuid: str, active: bool = True) -> SubjectDoc:
        subject = SubjectDoc(_id=ObjectId(), uuid=uuid, active=active)
        self.by_id[subject.id] = subject
        return subject

    async def find_by_public_id(self, public_id: str) -> Optional[SubjectDoc]:
        for subject in self.by_id.values():
            if subject.uuid == public_id:
                return subject
        return None

    async def find_by_id(self, subject_id: Any) -> Optional[SubjectDoc]:
        oid = to_object_id(subject_id)
        if oid is None:
            return None
        return self.by_id.get(oid)


class InMemoryCounters:
    def __init__(self, category: ClickCategory) -> None:
        self.category = category
        self.model = COUNTER_MODELS[category]
        self.rows: dict[tuple, MinuteCounterDoc] = {}
        self.range_queries: list[tuple[str, str]] = []
        self.error: Optional[Exception] = None

    def _make(self, subject_id, day, hour, minute, count, key) -> MinuteCounterDoc:
        fields = dict(subject_id=subject_id, date=day, hour=hour, minute=minute, count=count)
        if self.model.key_field is not None:
            fields[self.model.key_field] = key
        return self.model(**fields)

    def seed(
        self,
        subject_id: ObjectId,
        moment: datetime,
        count: int = 1,
        key: Optional[Union[str, int]] = None,
    ) -> MinuteCounterDoc:
        row = self._make(
            subject_id, moment.strftime("%Y-%m-%d"), moment.hour, moment.minute, count, key
        )
        self.rows[(subject_id, row.date, row.hour, row.minute, key)] = row
        return row

    async def increment(
        self,
        subject_id: ObjectId,
        slot: MinuteSlot,
        key: Optional[Union[str, int]] = None,
    ) -> None:
        if self.error is not None:
            raise self.error
        row_key = (subject_id, slot.date, slot.hour, slot.minute, key)
        if row_key in self.rows:
            self.rows[row_key].count += 1
        else:
            self.rows[row_key] = self._make(
                subject_id, slot.date, slot.hour, slot.minute, 1, key
            )

    def _sorted(self, rows) -> list[MinuteCounterDoc]:
        return sorted(rows, key=lambda r: (r.date, r.hour, r.minute))

    async def find_in_date_range(
        self, subject_id: ObjectId, first_date: str, last_date: str
    ) -> list[MinuteCounterDoc]:
        if self.error is not None:
            raise self.error
        self.range_queries.append((first_date, last_date))
        return self._sorted(
            row
            for row in self.rows.values()
            if row.subject_id == subject_id and first_date <= row.date <= last_date
        )

    async def find_all(self, subject_id: ObjectId) -> list[MinuteCounterDoc]:
        if self.error is not None:
            raise self.error
        return self._sorted(
            row for row in self.rows.values() if row.subject_id == subject_id
        )

    def total(self) -> int:
        return sum(row.count for row in self.rows.values())


def _snapshot(counters: dict) -> dict:
    return {
        category: {key: row.count for key, row in store.rows.items()}
        for category, store in counters.items()
    }


@pytest.fixture
def counter_snapshot(counters):
    """Callable returning a copy of every counter row, for before/after comparisons."""
    return lambda: _snapshot(counters)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def make_clock():
    return FrozenClock


@pytest.fixture
def subjects() -> InMemorySubjects:
    return InMemorySubjects()


@pytest.fixture
def counters() -> dict[ClickCategory, InMemoryCounters]:
    return {category: InMemoryCounters(category) for category in ClickCategory}


@pytest.fixture
def analytics_settings() -> AnalyticsSettings:
    return AnalyticsSettings(
        analytics_timezone=None,
        max_minute_offset=120,
        max_hour_offset=168,
        date_padding_days=1,
        max_window_buckets=2000,
        query_timeout_seconds=None,
        summary_week_start=6,
        series_week_start=0,
    )


@pytest.fixture
def subject(subjects):
    return subjects.add("U1")


@pytest.fixture
def service(subjects, counters, clock, analytics_settings) -> AnalyticsService:
    return AnalyticsService(subjects, counters, clock, analytics_settings)
