"""
Event recorder — turns one QR scan or link click into one counter increment.

Visitors reach a profile through its public uuid. Scans and clicks on
unknown or deactivated profiles are dropped without an error so archived
profiles never accumulate analytics and callers cannot tell the two cases
apart.
"""

from __future__ import annotations

from typing import Mapping, Optional, Union

from errors import ValidationError
from repositories.protocol import CounterStore, SubjectLookup
from schemas.models.counter import ClickCategory
from shared.datetime_utils import LocalClock
from shared.logging import get_logger, should_sample

log = get_logger(__name__)

CategoryKey = Optional[Union[str, int]]


def normalize_category_key(category: ClickCategory, key: CategoryKey) -> CategoryKey:
    """Validate and canonicalise the category key for *category*.

    Raises:
        ValidationError: when the key does not fit the category.
    """
    if category == ClickCategory.QR_SCAN:
        if key is not None:
            raise ValidationError("qr scans take no category key", field="key")
        return None

    if category == ClickCategory.SOCIAL_CLICK:
        platform = str(key).strip().lower() if key is not None else ""
        if not platform:
            raise ValidationError("platform is required for social clicks", field="platform")
        return platform

    if isinstance(key, bool):
        raise ValidationError("link index must be an integer", field="link_index")
    try:
        index = int(key)
    except (TypeError, ValueError):
        raise ValidationError(
            "link index must be an integer", field="link_index"
        ) from None
    if index < 0:
        raise ValidationError("link index must be >= 0", field="link_index")
    return index


class EventRecorder:
    def __init__(
        self,
        subjects: SubjectLookup,
        counters: Mapping[ClickCategory, CounterStore],
        clock: LocalClock,
    ) -> None:
        self.subjects = subjects
        self.counters = counters
        self.clock = clock

    async def record_event(
        self,
        public_id: str,
        category: ClickCategory,
        category_key: CategoryKey = None,
    ) -> None:
        category = ClickCategory(category)
        key = normalize_category_key(category, category_key)

        subject = await self.subjects.find_by_public_id(public_id)
        if subject is None or not subject.active:
            log.debug(
                "click_ignored",
                public_id=public_id,
                category=category.value,
                reason="not_found" if subject is None else "inactive",
            )
            return

        slot = self.clock.slot_for(self.clock.now())
        await self.counters[category].increment(subject.id, slot, key)

        if should_sample("click_recorded"):
            log.info(
                "click_recorded",
                subject_id=str(subject.id),
                category=category.value,
                key=key,
                date=slot.date,
                hour=slot.hour,
                minute=slot.minute,
            )

    async def record_qr_scan(self, public_id: str) -> None:
        await self.record_event(public_id, ClickCategory.QR_SCAN)

    async def record_social_click(self, public_id: str, platform: str) -> None:
        await self.record_event(public_id, ClickCategory.SOCIAL_CLICK, platform)

    async def record_custom_link_click(self, public_id: str, link_index: int) -> None:
        await self.record_event(public_id, ClickCategory.CUSTOM_LINK_CLICK, link_index)
