"""
modules/planning/smart_suggestions.py
---------------------------------------
Lightweight "what could go between these two things" suggestions.

Unlike the whole-day gap filler this path only looks at free time strictly
between scheduled items (never before the first or after the last one) and
ranks purely by distance to the closest neighbouring item, nearest first.
"""

from __future__ import annotations
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Literal, Optional

from gapfill import config
from gapfill.modules.tool_usage.distance_tool import DistanceTool
from gapfill.modules.tool_usage.duration_tool import parse_duration
from gapfill.schemas.activity import CandidateActivity, Location
from gapfill.schemas.itinerary import ItemSource, TimelineItem


logger = logging.getLogger(__name__)

SUGGESTIONS_PER_SLOT: int = 3


@dataclass
class TimeSlot:
    start: datetime
    end: datetime
    available_minutes: float
    previous: TimelineItem
    next: TimelineItem


@dataclass
class SmartSuggestion:
    activity: CandidateActivity
    slot: TimeSlot
    distance_to_closest: float               # km; inf when no distance is computable
    closest: Literal["previous", "next"]
    suggested_start: datetime
    suggested_end: datetime


def find_empty_slots(
    items: Iterable[TimelineItem],
    min_slot_minutes: int = config.MIN_SLOT_MINUTES,
) -> list[TimeSlot]:
    """
    Free windows between consecutive items lasting ≥ min_slot_minutes.

    The slot opens at the latest end seen so far, so an item nested inside a
    longer one never produces a slot the longer item actually covers.
    """
    ordered = sorted(items, key=lambda i: i.start_time)
    if not ordered:
        return []

    slots: list[TimeSlot] = []
    latest = ordered[0]
    for item in ordered[1:]:
        minutes = (item.start_time - latest.end_time).total_seconds() / 60.0
        if minutes >= min_slot_minutes:
            slots.append(TimeSlot(
                start=latest.end_time,
                end=item.start_time,
                available_minutes=minutes,
                previous=latest,
                next=item,
            ))
        if item.end_time > latest.end_time:
            latest = item
    return slots


def generate_smart_suggestions(
    items: Iterable[TimelineItem],
    candidates: Iterable[CandidateActivity],
    min_slot_minutes: int = config.MIN_SLOT_MINUTES,
    per_slot: int = SUGGESTIONS_PER_SLOT,
    buffer_minutes: int = config.ANCHOR_BUFFER_MINUTES,
    distance_tool: Optional[DistanceTool] = None,
) -> list[SmartSuggestion]:
    """
    Up to `per_slot` suggestions for each between-items slot, nearest first.

    A candidate qualifies when its duration fits the slot and, started
    `buffer_minutes` after the slot opens, it still ends inside the slot.
    """
    tool = distance_tool or DistanceTool()
    candidates = list(candidates)
    suggestions: list[SmartSuggestion] = []

    for slot in find_empty_slots(items, min_slot_minutes):
        ranked: list[SmartSuggestion] = []
        for activity in candidates:
            minutes = parse_duration(activity.duration)
            if minutes > slot.available_minutes:
                continue
            start = slot.start + timedelta(minutes=buffer_minutes)
            end = start + timedelta(minutes=minutes)
            if end > slot.end:
                continue

            to_prev = tool.calculate_km(slot.previous.location, activity.location)
            to_next = tool.calculate_km(activity.location, slot.next.location)
            closest: Literal["previous", "next"] = "previous" if to_prev <= to_next else "next"
            ranked.append(SmartSuggestion(
                activity=activity,
                slot=slot,
                distance_to_closest=min(to_prev, to_next),
                closest=closest,
                suggested_start=start,
                suggested_end=end,
            ))

        ranked.sort(key=lambda s: s.distance_to_closest)
        suggestions.extend(ranked[:per_slot])

    logger.debug("Generated %d smart suggestion(s)", len(suggestions))
    return suggestions


def item_from_suggestion(suggestion: SmartSuggestion) -> TimelineItem:
    """Recommendation-sourced TimelineItem at the suggestion's interval."""
    activity = suggestion.activity
    return TimelineItem(
        id=f"smart-{activity.id}-{uuid.uuid4().hex[:8]}",
        title=activity.title,
        description=activity.description or None,
        location=Location(name=activity.title, lat=activity.location.lat, lng=activity.location.lng),
        start_time=suggestion.suggested_start,
        end_time=suggestion.suggested_end,
        source=ItemSource.RECOMMENDATION,
        recommendation_id=activity.id,
        image=activity.image,
    )


def format_distance(kilometers: Optional[float]) -> str:
    if kilometers is None or not math.isfinite(kilometers):
        return ""
    if kilometers < 1:
        return f"{round(kilometers * 1000)}m"
    return f"{kilometers:.1f}km"
