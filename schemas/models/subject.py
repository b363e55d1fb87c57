"""
Subject (profile) document model.

Maps to the `profiles` collection owned by the profile service. Analytics
only reads the public uuid and the active flag; every other profile field
is ignored.
"""

from __future__ import annotations

from schemas.models.base import MongoBaseModel


class SubjectDoc(MongoBaseModel):
    uuid: str
    # Profiles created before the flag existed are live
    active: bool = True
