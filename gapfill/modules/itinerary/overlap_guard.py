"""
modules/itinerary/overlap_guard.py
------------------------------------
Interval conflict checks for timeline items.

All intervals are half-open [start, end): two intervals overlap iff
    s1 < e2 and s2 < e1
so back-to-back items (one ends exactly when the next starts) never conflict.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from gapfill.schemas.itinerary import TimelineItem


Interval = tuple[datetime, datetime]


class OverlapError(ValueError):
    """Raised when an item set that must be conflict-free is not."""


@dataclass
class OverlapCheck:
    has_overlap: bool
    conflicting_items: list[TimelineItem] = field(default_factory=list)
    message: Optional[str] = None


def overlaps(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    return s1 < e2 and s2 < e1


def _as_interval(interval: Interval | TimelineItem) -> Interval:
    if isinstance(interval, TimelineItem):
        return interval.start_time, interval.end_time
    return interval


def find_conflicts(
    existing: Iterable[TimelineItem],
    interval: Interval | TimelineItem,
) -> list[TimelineItem]:
    """Existing items whose interval intersects `interval`, in input order."""
    start, end = _as_interval(interval)
    return [i for i in existing if overlaps(start, end, i.start_time, i.end_time)]


def would_overlap(existing: Iterable[TimelineItem], interval: Interval | TimelineItem) -> bool:
    start, end = _as_interval(interval)
    return any(overlaps(start, end, i.start_time, i.end_time) for i in existing)


def check_overlaps(
    existing: Iterable[TimelineItem],
    interval: Interval | TimelineItem,
) -> OverlapCheck:
    """Conflict report for a proposed interval; message names the conflicting titles."""
    conflicts = find_conflicts(existing, interval)
    if not conflicts:
        return OverlapCheck(has_overlap=False)
    return OverlapCheck(
        has_overlap=True,
        conflicting_items=conflicts,
        message=(
            f"Conflicts with {len(conflicts)} existing item(s): "
            + ", ".join(c.title for c in conflicts)
        ),
    )


def overlapping_pairs(items: Iterable[TimelineItem]) -> list[tuple[TimelineItem, TimelineItem]]:
    """
    Every conflicting pair of the set, each reported once (earlier start first).

    Sweeps items sorted by start and stops comparing an item as soon as a
    later one starts at or after its end.
    """
    ordered = sorted(items, key=lambda i: (i.start_time, i.end_time))
    pairs: list[tuple[TimelineItem, TimelineItem]] = []
    for idx, first in enumerate(ordered):
        for second in ordered[idx + 1:]:
            if second.start_time >= first.end_time:
                break
            pairs.append((first, second))
    return pairs


def assert_no_overlaps(items: Iterable[TimelineItem]) -> None:
    """
    Raises:
        OverlapError: naming the first conflicting pair found.
    """
    pairs = overlapping_pairs(items)
    if pairs:
        a, b = pairs[0]
        raise OverlapError(
            f"Overlapping items: {a.id} [{a.start_time:%H:%M}-{a.end_time:%H:%M}) "
            f"vs {b.id} [{b.start_time:%H:%M}-{b.end_time:%H:%M}) "
            f"({len(pairs)} conflicting pair(s))"
        )
