"""
Response DTOs for click series and summary statistics.

ClickBreakdown        — per-category counts attached to buckets and summaries
ClickBucket           — one slot of a click series
ClickSeriesResponse   — GET /api/v1/profiles/{subject_id}/clicks  (200)
SummaryStatsResponse  — GET /api/v1/profiles/{subject_id}/summary (200)

The breakdown stores social clicks as a platform → count mapping; display
order is left to the consumer (see ``ClickBreakdown.platforms_by_clicks``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.counter import ClickCategory


class ClickBreakdown(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    qr_scans: int = 0
    social_clicks: dict[str, int] = Field(default_factory=dict)
    custom_link_clicks: int = 0
    total: int = 0

    def add(
        self,
        category: ClickCategory,
        count: int,
        key: Optional[Union[str, int]] = None,
    ) -> None:
        """Add *count* events of *category* to this breakdown."""
        if category == ClickCategory.QR_SCAN:
            self.qr_scans += count
        elif category == ClickCategory.SOCIAL_CLICK:
            platform = str(key)
            self.social_clicks[platform] = self.social_clicks.get(platform, 0) + count
        else:
            self.custom_link_clicks += count
        self.total += count

    @property
    def social_clicks_total(self) -> int:
        return sum(self.social_clicks.values())

    def platforms_by_clicks(self) -> list[tuple[str, int]]:
        """Platforms ordered by descending clicks; ties keep insertion order."""
        return sorted(self.social_clicks.items(), key=lambda item: -item[1])


class ClickBucket(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start: datetime
    key: str
    label: str
    short_label: str
    breakdown: ClickBreakdown = Field(default_factory=ClickBreakdown)

    @property
    def total(self) -> int:
        return self.breakdown.total


class ClickSeriesResponse(BaseModel):
    """Dense, oldest-to-newest click series for one subject."""

    model_config = ConfigDict(populate_by_name=True)

    subject_id: str
    bucket_width: str
    window_length: int
    offset: int
    start: datetime  # first bucket start, inclusive
    end: datetime  # last bucket end, exclusive
    timezone: str
    buckets: list[ClickBucket]
    time_bucket_info: Optional[dict[str, Any]] = None

    @property
    def total(self) -> int:
        return sum(bucket.total for bucket in self.buckets)


class SummaryStatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject_id: str
    today: int
    this_week: int
    this_month: int
    this_year: int
    total: int
    breakdown: ClickBreakdown = Field(default_factory=ClickBreakdown)
    generated_at: Optional[datetime] = None
