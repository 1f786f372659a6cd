"""
schemas/activity.py
-------------------
Input models for places and candidate activities.

Two coordinate models:
  Location: range-validated; used by scheduled timeline items.
  GeoPoint: unvalidated; used by candidate activities coming from the
            recommendation source, whose bad coordinates must reach the
            distance tool (and degrade to an "unreachable" distance)
            instead of failing at parse time.
"""

from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    name: str = ""


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None


class CandidateActivity(BaseModel):
    """
    An activity eligible to fill a gap. Read-only once produced upstream.

    `duration` is the free-text descriptor ("2 hours", "1h 30m", "3-4 hours",
    where a range reads as its upper bound);
    it is parsed lazily by tool_usage/duration_tool.py.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = Field(..., min_length=1)
    description: str = ""
    location: GeoPoint
    duration: Optional[str] = None
    price: Optional[str] = None          # e.g. "€25", "Free", "€€€"
    price_amount: Optional[float] = None  # numeric price for sorting
    image: Optional[str] = None
    category: Optional[str] = None       # "cultural" | "foodie" | "nightlife" ...
    tags: tuple[str, ...] = ()

    @field_validator("id", mode="before")
    def id_to_str(cls, v):
        # webhook payloads use numeric ids
        return str(v) if isinstance(v, int) else v
