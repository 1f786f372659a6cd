"""
modules/planning/candidate_filter.py
--------------------------------------
Stage 1 of gap filling: temporal admissibility.

A candidate passes iff its parsed duration fits in the gap once the transit
buffer is taken out. This is a hard gate, not a score: it only keeps the
scorer from spending work on placements that cannot happen.
"""

from __future__ import annotations
import logging
from typing import Iterable

from gapfill import config
from gapfill.modules.tool_usage.duration_tool import is_parseable, parse_duration
from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.gaps import TimeGap
from gapfill.schemas.itinerary import TimelineItem


logger = logging.getLogger(__name__)


def available_minutes(gap: TimeGap, buffer_minutes: int = config.GAP_BUFFER_MINUTES) -> float:
    return gap.duration_minutes - buffer_minutes


def filter_by_duration(
    gap: TimeGap,
    candidates: Iterable[CandidateActivity],
    buffer_minutes: int = config.GAP_BUFFER_MINUTES,
) -> list[CandidateActivity]:
    """
    Candidates whose duration ≤ gap duration − buffer, in input order.
    Returns [] when the buffer consumes the whole gap.
    """
    available = available_minutes(gap, buffer_minutes)
    if available <= 0:
        return []

    admitted: list[CandidateActivity] = []
    for candidate in candidates:
        if candidate.duration is not None and not is_parseable(candidate.duration):
            logger.debug(
                "Unparseable duration %r for %s; using default",
                candidate.duration, candidate.id,
            )
        if parse_duration(candidate.duration) <= available:
            admitted.append(candidate)
    return admitted


def scheduled_activity_ids(items: Iterable[TimelineItem]) -> set[str]:
    return {i.recommendation_id for i in items if i.recommendation_id is not None}


def exclude_scheduled(
    candidates: Iterable[CandidateActivity],
    items: Iterable[TimelineItem],
) -> list[CandidateActivity]:
    """Drop candidates already placed on the timeline."""
    taken = scheduled_activity_ids(items)
    return [c for c in candidates if c.id not in taken]
