"""
Minute counter repositories, one per click category.

increment() is a single atomic ``$inc`` upsert, so concurrent recorders never
lose updates on an existing row. Two writers racing to create the same row
can both attempt the insert; the unique index rejects one of them and that
writer falls back to a plain increment.
"""

from __future__ import annotations

from typing import Optional, Union

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from repositories.base import translate_store_errors
from schemas.models.counter import COUNTER_MODELS, ClickCategory, MinuteCounterDoc
from shared.datetime_utils import MinuteSlot
from shared.logging import get_logger

log = get_logger(__name__)

_SORT = [("date", ASCENDING), ("hour", ASCENDING), ("minute", ASCENDING)]


class CounterRepository:
    def __init__(self, collection: AsyncCollection, category: ClickCategory) -> None:
        self._col = collection
        self.category = category
        self.model: type[MinuteCounterDoc] = COUNTER_MODELS[category]
        self.collection_name = collection.name

    @classmethod
    def for_category(
        cls, db: AsyncDatabase, category: ClickCategory
    ) -> "CounterRepository":
        model = COUNTER_MODELS[category]
        return cls(db[model.collection_name], category)

    def _key_filter(
        self,
        subject_id: ObjectId,
        slot: MinuteSlot,
        key: Optional[Union[str, int]],
    ) -> dict:
        query = {
            "subject_id": subject_id,
            "date": slot.date,
            "hour": slot.hour,
            "minute": slot.minute,
        }
        if self.model.key_field is not None:
            query[self.model.key_field] = key
        return query

    @translate_store_errors("counter_increment")
    async def increment(
        self,
        subject_id: ObjectId,
        slot: MinuteSlot,
        key: Optional[Union[str, int]] = None,
    ) -> None:
        query = self._key_filter(subject_id, slot, key)
        try:
            await self._col.update_one(query, {"$inc": {"count": 1}}, upsert=True)
        except DuplicateKeyError:
            log.debug(
                "counter_upsert_race", collection=self.collection_name, **slot.__dict__
            )
            await self._col.update_one(query, {"$inc": {"count": 1}})

    @translate_store_errors("counter_range_query")
    async def find_in_date_range(
        self, subject_id: ObjectId, first_date: str, last_date: str
    ) -> list[MinuteCounterDoc]:
        cursor = self._col.find(
            {"subject_id": subject_id, "date": {"$gte": first_date, "$lte": last_date}}
        ).sort(_SORT)
        docs = await cursor.to_list(length=None)
        return [self.model.from_mongo(doc) for doc in docs]

    @translate_store_errors("counter_full_scan")
    async def find_all(self, subject_id: ObjectId) -> list[MinuteCounterDoc]:
        cursor = self._col.find({"subject_id": subject_id}).sort(_SORT)
        docs = await cursor.to_list(length=None)
        return [self.model.from_mongo(doc) for doc in docs]

    async def ensure_indexes(self) -> None:
        keys = [
            ("subject_id", ASCENDING),
            ("date", ASCENDING),
            ("hour", ASCENDING),
            ("minute", ASCENDING),
        ]
        if self.model.key_field is not None:
            keys.append((self.model.key_field, ASCENDING))
        await self._col.create_index(keys, unique=True, name="minute_counter_key")


def build_counter_repositories(
    db: AsyncDatabase,
) -> dict[ClickCategory, CounterRepository]:
    return {
        category: CounterRepository.for_category(db, category)
        for category in ClickCategory
    }


async def ensure_indexes(db: AsyncDatabase) -> None:
    """Create the unique counter indexes. Safe to call on every startup."""
    for repository in build_counter_repositories(db).values():
        await repository.ensure_indexes()
    log.info("counter_indexes_ensured")
