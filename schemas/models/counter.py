"""
Minute counter document models.

One collection per click category, each row keyed by
(subject_id, category key, date, hour, minute) with an integer count:

  qr_scan_counters            — no category key
  social_click_counters       — key field "platform"   (e.g. "instagram")
  custom_link_click_counters  — key field "link_index" (position in the profile)

A unique compound index over the key fields guarantees at most one row per
minute; rows are only ever created with count=1 or incremented.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional, Union

from pydantic import Field

from schemas.models.base import MongoBaseModel, PyObjectId


class ClickCategory(str, Enum):
    QR_SCAN = "qr_scan"
    SOCIAL_CLICK = "social_click"
    CUSTOM_LINK_CLICK = "custom_link_click"


class MinuteCounterDoc(MongoBaseModel):
    """Fields shared by all three counter collections."""

    category: ClassVar[ClickCategory]
    collection_name: ClassVar[str]
    key_field: ClassVar[Optional[str]] = None

    subject_id: PyObjectId
    date: str  # YYYY-MM-DD, local wall-clock date
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    count: int = Field(default=1, ge=1)

    @property
    def category_key(self) -> Optional[Union[str, int]]:
        if self.key_field is None:
            return None
        return getattr(self, self.key_field)


class QrScanCounterDoc(MinuteCounterDoc):
    category: ClassVar[ClickCategory] = ClickCategory.QR_SCAN
    collection_name: ClassVar[str] = "qr_scan_counters"


class SocialClickCounterDoc(MinuteCounterDoc):
    category: ClassVar[ClickCategory] = ClickCategory.SOCIAL_CLICK
    collection_name: ClassVar[str] = "social_click_counters"
    key_field: ClassVar[Optional[str]] = "platform"

    platform: str


class CustomLinkClickCounterDoc(MinuteCounterDoc):
    category: ClassVar[ClickCategory] = ClickCategory.CUSTOM_LINK_CLICK
    collection_name: ClassVar[str] = "custom_link_click_counters"
    key_field: ClassVar[Optional[str]] = "link_index"

    link_index: int = Field(ge=0)


COUNTER_MODELS: dict[ClickCategory, type[MinuteCounterDoc]] = {
    ClickCategory.QR_SCAN: QrScanCounterDoc,
    ClickCategory.SOCIAL_CLICK: SocialClickCounterDoc,
    ClickCategory.CUSTOM_LINK_CLICK: CustomLinkClickCounterDoc,
}
