"""
schemas/itinerary.py
--------------------
Scheduled timeline items and the result types returned by timeline mutations.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gapfill.schemas.activity import Location


def to_local_naive(value: datetime) -> datetime:
    """Aware datetimes become naive local time; naive ones are kept as-is."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class ItemSource(str, Enum):
    GOOGLE_CALENDAR = "google_calendar"
    RECOMMENDATION = "recommendation"
    MANUAL = "manual"


class TimelineItem(BaseModel):
    """
    A scheduled entity occupying the half-open interval [start_time, end_time).

    Locked items come from an external calendar import: they can never be
    removed through the timeline and are never overridden by an insertion.

    Times are naive local wall-clock. Offset-aware input is converted to the
    local zone on the way in, so every stored instant compares with every
    other one.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    location: Location
    start_time: datetime
    end_time: datetime
    source: ItemSource = ItemSource.MANUAL
    recommendation_id: Optional[str] = None   # candidate activity it was created from
    image: Optional[str] = None
    is_locked: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("recommendation_id", mode="before")
    def recommendation_id_to_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("start_time")
    def start_time_to_local(cls, v):
        return to_local_naive(v)

    @field_validator("end_time")
    def end_time_must_be_after_start(cls, v, info):
        v = to_local_naive(v)
        if "start_time" in info.data and v <= info.data["start_time"]:
            raise ValueError("end_time must be after start_time")
        return v

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60.0


class RejectionReason(str, Enum):
    OVERLAP = "OVERLAP"
    DUPLICATE = "DUPLICATE"
    IMMUTABLE = "IMMUTABLE"
    NOT_FOUND = "NOT_FOUND"


@dataclass
class MutationResult:
    """Outcome of ItineraryTimeline.insert / remove. Never raised, always returned."""
    accepted: bool
    item: Optional[TimelineItem] = None
    reason: Optional[RejectionReason] = None
    message: str = ""
    conflicts: list[TimelineItem] = field(default_factory=list)

    @classmethod
    def ok(cls, item: TimelineItem) -> "MutationResult":
        return cls(accepted=True, item=item)

    @classmethod
    def rejected(
        cls,
        reason: RejectionReason,
        message: str,
        item: Optional[TimelineItem] = None,
        conflicts: Optional[list[TimelineItem]] = None,
    ) -> "MutationResult":
        return cls(
            accepted=False, item=item, reason=reason,
            message=message, conflicts=list(conflicts or []),
        )


@dataclass
class ImportResult:
    """Outcome of ItineraryTimeline.import_batch."""
    imported: list[TimelineItem] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)   # id already present

    @property
    def imported_count(self) -> int:
        return len(self.imported)
