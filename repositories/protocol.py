"""Repository protocols — services depend on these, not the MongoDB classes."""

from typing import Any, Optional, Protocol, Union

from bson import ObjectId

from schemas.models.counter import ClickCategory, MinuteCounterDoc
from schemas.models.subject import SubjectDoc
from shared.datetime_utils import MinuteSlot


class SubjectLookup(Protocol):
    async def find_by_public_id(self, public_id: str) -> Optional[SubjectDoc]: ...

    async def find_by_id(self, subject_id: Any) -> Optional[SubjectDoc]: ...


class CounterStore(Protocol):
    category: ClickCategory

    async def increment(
        self,
        subject_id: ObjectId,
        slot: MinuteSlot,
        key: Optional[Union[str, int]] = None,
    ) -> None: ...

    async def find_in_date_range(
        self, subject_id: ObjectId, first_date: str, last_date: str
    ) -> list[MinuteCounterDoc]: ...

    async def find_all(self, subject_id: ObjectId) -> list[MinuteCounterDoc]: ...
