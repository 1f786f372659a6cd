"""
modules/planning/gap_detector.py
----------------------------------
Finds the open time windows of one calendar day.

Algorithm (single sweep over items sorted by start):
  cursor ← day start
  for each item:
      item.start > cursor  → candidate gap [cursor, item.start)
      cursor ← max(cursor, item.end)
  candidate gap [cursor, day end)

Using the latest end seen so far as the cursor means overlapping items
(imported calendars may overlap) never yield free time that is actually
covered. Gaps are clipped to the day window and kept only when they last at
least min_gap_minutes. A day with no items is one gap spanning the window.

Gaps are never stored: callers recompute them from the current timeline.
"""

from __future__ import annotations
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from gapfill import config
from gapfill.schemas.gaps import DayContext, TimeGap
from gapfill.schemas.itinerary import TimelineItem
from gapfill.schemas.options import PlannerOptions


def day_window(
    day: date,
    day_start_hour: int = config.DAY_START_HOUR,
    day_end_hour: int = config.DAY_END_HOUR,
) -> tuple[datetime, datetime]:
    """[start, end) of the planning window for `day` (hour 24 = next midnight)."""
    if not 0 <= day_start_hour < day_end_hour <= 24:
        raise ValueError(
            f"Day window must satisfy 0 <= start < end <= 24, got {day_start_hour}..{day_end_hour}"
        )
    midnight = datetime.combine(day, time(0, 0))
    return midnight + timedelta(hours=day_start_hour), midnight + timedelta(hours=day_end_hour)


def items_on_day(items: Iterable[TimelineItem], day: date) -> list[TimelineItem]:
    """Items starting on `day`, sorted by start instant."""
    return sorted(
        (i for i in items if i.start_time.date() == day),
        key=lambda i: i.start_time,
    )


def _minutes(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def _make_gap(
    index: int,
    start: datetime,
    end: datetime,
    preceding: Optional[TimelineItem],
    following: Optional[TimelineItem],
    window: tuple[datetime, datetime],
    buffer_minutes: int,
) -> TimeGap:
    duration = _minutes(start, end)
    return TimeGap(
        id=f"gap-{index}-{int(start.timestamp() * 1000)}",
        start=start,
        end=end,
        duration_minutes=duration,
        preceding=preceding,
        following=following,
        context=DayContext.from_hour(start.hour),
        optimal_duration_minutes=max(0.0, duration - buffer_minutes),
        is_start_of_day=start == window[0],
        is_end_of_day=end == window[1],
    )


def detect_gaps(
    items: Iterable[TimelineItem],
    day: date,
    day_start_hour: int = config.DAY_START_HOUR,
    day_end_hour: int = config.DAY_END_HOUR,
    min_gap_minutes: int = config.MIN_GAP_MINUTES,
    buffer_minutes: int = config.GAP_BUFFER_MINUTES,
) -> list[TimeGap]:
    """
    Ordered free windows of `day`.

    Args:
        items:           timeline items; only those starting on `day` count.
        day:             calendar date to analyse.
        day_start_hour:  window start, local hour.
        day_end_hour:    window end, local hour.
        min_gap_minutes: shortest gap worth reporting.
        buffer_minutes:  transit buffer subtracted for optimal_duration_minutes.

    Returns:
        Gaps in chronological order; [] when nothing qualifies.
    """
    day_items = items_on_day(items, day)
    window = day_window(day, day_start_hour, day_end_hour)
    day_start, day_end = window

    if not day_items:
        return [_make_gap(0, day_start, day_end, None, None, window, buffer_minutes)]

    gaps: list[TimeGap] = []

    def emit(start: datetime, end: datetime,
             preceding: Optional[TimelineItem], following: Optional[TimelineItem]) -> None:
        end = min(end, day_end)
        duration = _minutes(start, end)
        if duration > 0 and duration >= min_gap_minutes:
            gaps.append(_make_gap(len(gaps), start, end, preceding, following, window, buffer_minutes))

    cursor = day_start
    previous: Optional[TimelineItem] = None
    for item in day_items:
        if item.start_time >= day_end:
            break
        if item.start_time > cursor:
            emit(cursor, item.start_time, previous, item)
        if item.end_time > cursor:
            cursor = item.end_time
            previous = item

    emit(cursor, day_end, previous, None)
    return gaps


def detect_gaps_with(
    items: Iterable[TimelineItem],
    day: date,
    options: PlannerOptions,
) -> list[TimeGap]:
    """detect_gaps driven by a PlannerOptions bundle."""
    return detect_gaps(
        items, day,
        day_start_hour=options.day_start_hour,
        day_end_hour=options.day_end_hour,
        min_gap_minutes=options.min_gap_minutes,
        buffer_minutes=options.buffer_minutes,
    )
