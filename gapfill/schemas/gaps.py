"""
schemas/gaps.py
---------------
Derived, ephemeral values of the gap-filling pipeline. None of these are
persisted: they are recomputed from the current timeline on every query.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.itinerary import TimelineItem


ConfidenceLevel = Literal["high", "medium", "low"]


class DayContext(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @classmethod
    def from_hour(cls, hour: int) -> "DayContext":
        if hour < 12:
            return cls.MORNING
        if hour < 18:
            return cls.AFTERNOON
        return cls.EVENING


class DurationFit(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    TIGHT = "tight"
    TOO_LONG = "too-long"


@dataclass
class TimeGap:
    """
    A contiguous block of free time inside the day window.

    optimal_duration_minutes = duration − transit buffer, floored at 0; a gap
    shorter than the buffer therefore admits no candidate at all.
    """
    id: str
    start: datetime
    end: datetime
    duration_minutes: float
    preceding: Optional[TimelineItem] = None   # absent at the day start
    following: Optional[TimelineItem] = None   # absent at the day end
    context: DayContext = DayContext.MORNING
    optimal_duration_minutes: float = 0.0
    is_start_of_day: bool = False
    is_end_of_day: bool = False


@dataclass
class FitResult:
    """One candidate scored against one gap."""
    candidate: CandidateActivity
    gap: TimeGap
    duration_minutes: int
    utilization: float                         # duration / optimal gap duration
    duration_fit: DurationFit
    duration_score: float                      # 0–100
    proximity_score: float                     # 0–100
    time_of_day_score: float                   # 0–100
    score: float                               # policy-weighted blend, 0–100
    suggested_start: datetime
    suggested_end: datetime
    distance_to_previous: Optional[float] = None   # km; None without a preceding item
    distance_to_next: Optional[float] = None       # km; None without a following item
    confidence: float = 0.0                        # 0–1

    @property
    def nearest_distance(self) -> Optional[float]:
        present = [d for d in (self.distance_to_previous, self.distance_to_next) if d is not None]
        return min(present) if present else None


@dataclass
class GapFillingResult:
    """Ranked suggestions for a single gap plus run metadata."""
    gap: TimeGap
    suggestions: list[FitResult] = field(default_factory=list)
    processing_time_ms: float = 0.0
    confidence: ConfidenceLevel = "low"
    total_activities_analyzed: int = 0

    @property
    def gap_id(self) -> str:
        return self.gap.id
