"""Read-only access to the profiles collection."""

from __future__ import annotations

from typing import Any, Optional

from pymongo.asynchronous.collection import AsyncCollection

from repositories.base import translate_store_errors
from schemas.models.base import to_object_id
from schemas.models.subject import SubjectDoc

_PROJECTION = {"uuid": 1, "active": 1}


class SubjectRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection
        self.collection_name = collection.name

    @translate_store_errors("subject_lookup")
    async def find_by_public_id(self, public_id: str) -> Optional[SubjectDoc]:
        if not public_id:
            return None
        doc = await self._col.find_one({"uuid": public_id}, _PROJECTION)
        return SubjectDoc.from_mongo(doc)

    @translate_store_errors("subject_lookup")
    async def find_by_id(self, subject_id: Any) -> Optional[SubjectDoc]:
        oid = to_object_id(subject_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid}, _PROJECTION)
        return SubjectDoc.from_mongo(doc)
