"""
Request DTOs for the analytics endpoints.

ClickSeriesQuery — GET /api/v1/profiles/{subject_id}/clicks (query parameters)

``window`` and ``offset`` are expressed in the bucket width's window unit:
minutes for minute / 5min, hours for hour, days for day, and whole periods
for week / month / year. Only the types are checked here; the bucket width,
the bounds and the offset ceilings are enforced by the window query layer,
which reports them as invalid window parameters.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClickSeriesQuery(BaseModel):
    """Query parameters for the click series endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    bucket: str = Field(
        default="day",
        description="minute, 5min, hour, day, week, month or year",
    )
    # None = the bucket width's default window
    window: Optional[int] = None
    offset: int = 0
