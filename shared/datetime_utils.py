"""
Local wall-clock time helpers — framework-agnostic.

Counters are written and read back in *local* wall-clock time, never UTC.
Both the recorder (``LocalClock.slot_for``) and the readers
(``LocalClock.from_parts``) go through the same ``LocalClock`` so that a
row written at 14:32 local time is always reconstructed as 14:32 in the
same zone.

With a configured IANA zone every datetime is timezone-aware in that zone;
without one, naive datetimes in the server's local time are used. The two
kinds are never mixed within one clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class MinuteSlot:
    """The (date, hour, minute) key a counter row is stored under."""

    date: str  # YYYY-MM-DD
    hour: int
    minute: int


class LocalClock:
    """Source of "now" and converter between instants and minute slots."""

    def __init__(self, timezone: Optional[str] = None) -> None:
        self.timezone_name = timezone
        self._tz: Optional[tzinfo] = ZoneInfo(timezone) if timezone else None

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._tz

    @property
    def label(self) -> str:
        """Zone name reported alongside query results."""
        return self.timezone_name or "local"

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def slot_for(self, instant: datetime) -> MinuteSlot:
        local = self.localize(instant)
        return MinuteSlot(
            date=local.strftime(DATE_FORMAT), hour=local.hour, minute=local.minute
        )

    def from_parts(self, day: str, hour: int, minute: int) -> datetime:
        """Rebuild the instant of a counter row's minute start."""
        parsed = datetime.strptime(day, DATE_FORMAT)
        return parsed.replace(hour=hour, minute=minute, tzinfo=self._tz)

    def localize(self, instant: datetime) -> datetime:
        """Express *instant* in this clock's wall-clock convention."""
        if self._tz is None:
            if instant.tzinfo is None:
                return instant
            return instant.astimezone().replace(tzinfo=None)
        if instant.tzinfo is None:
            return instant.replace(tzinfo=self._tz)
        return instant.astimezone(self._tz)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(moment: datetime, week_start: int = 6) -> datetime:
    """Midnight of the most recent *week_start* weekday (0 = Monday, 6 = Sunday)."""
    days_back = (moment.weekday() - week_start) % 7
    return start_of_day(moment) - timedelta(days=days_back)


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def start_of_year(moment: datetime) -> datetime:
    return start_of_day(moment).replace(month=1, day=1)


def date_range_strings(first: date, last: date) -> tuple[str, str]:
    """Format an inclusive calendar-date range the way counters store it."""
    # YYYY-MM-DD with zero-padded years
    return first.isoformat(), last.isoformat()
