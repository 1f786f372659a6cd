"""
modules/itinerary/commands.py
-------------------------------
Command layer over ItineraryTimeline for untrusted input (HTTP bodies,
calendar exports). Raw mappings are validated into TimelineItem here, and
validation failures come back as a CommandResult instead of an exception.

    add_to_itinerary(timeline, payload)   → validate, then guarded insert
    import_calendar(timeline, events)     → validate each as a locked calendar
                                            item, skip invalid ones, batch import
    remove_item(timeline, item_id)        → guarded removal
"""

from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from gapfill.modules.itinerary.timeline import ItineraryTimeline
from gapfill.modules.tool_usage.duration_tool import parse_duration
from gapfill.schemas.activity import CandidateActivity, Location
from gapfill.schemas.itinerary import (
    ItemSource, MutationResult, RejectionReason, TimelineItem,
)


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    success: bool
    error: Optional[str] = None
    item: Optional[TimelineItem] = None
    imported_count: int = 0
    errors: list[str] = field(default_factory=list)
    reason: Optional[RejectionReason] = None   # set when the timeline rejected the mutation

    @classmethod
    def from_mutation(cls, result: MutationResult) -> "CommandResult":
        if result.accepted:
            return cls(success=True, item=result.item)
        return cls(success=False, error=result.message, item=result.item, reason=result.reason)


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    where = ".".join(str(p) for p in err.get("loc", ()))
    return f"{where}: {err['msg']}" if where else err["msg"]


def _with_id(payload: Mapping[str, Any], prefix: str) -> dict[str, Any]:
    data = dict(payload)
    if not data.get("id"):
        data["id"] = f"{prefix}-{uuid.uuid4().hex[:12]}"
    return data


def add_to_itinerary(timeline: ItineraryTimeline, payload: Mapping[str, Any] | TimelineItem) -> CommandResult:
    """Validate one item and insert it through the overlap/duplicate guard."""
    if isinstance(payload, TimelineItem):
        item = payload
    else:
        if not isinstance(payload, Mapping):
            return CommandResult(success=False, error="Invalid itinerary item: expected an object")
        try:
            item = TimelineItem.model_validate(_with_id(payload, "item"))
        except ValidationError as exc:
            message = f"Invalid itinerary item: {_first_error(exc)}"
            logger.info(message)
            return CommandResult(success=False, error=message)
    return CommandResult.from_mutation(timeline.insert(item))


def import_calendar(timeline: ItineraryTimeline, events: Iterable[Any]) -> CommandResult:
    """
    Import calendar events as locked items.

    Invalid events are skipped and their messages collected in `errors`.
    Fails only when no event at all is valid.
    """
    valid: list[TimelineItem] = []
    errors: list[str] = []
    for event in events or ():
        if not isinstance(event, Mapping):
            errors.append("Invalid event: expected an object")
            continue
        data = _with_id(event, "cal")
        data.update(is_locked=True, source=ItemSource.GOOGLE_CALENDAR)
        try:
            valid.append(TimelineItem.model_validate(data))
        except ValidationError as exc:
            errors.append(f"Invalid event: {_first_error(exc)}")

    if errors:
        logger.warning("Skipped %d invalid calendar event(s)", len(errors))

    if not valid:
        message = (
            f"No valid events to import. Errors: {', '.join(errors)}"
            if errors else "No events to import"
        )
        return CommandResult(success=False, error=message, errors=errors)

    result = timeline.import_batch(valid)
    return CommandResult(success=True, imported_count=result.imported_count, errors=errors)


def remove_item(timeline: ItineraryTimeline, item_id: str) -> CommandResult:
    return CommandResult.from_mutation(timeline.remove(item_id))


def _next_full_hour(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now()
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def activity_to_item(
    candidate: CandidateActivity,
    start: Optional[datetime] = None,
    duration_minutes: Optional[int] = None,
) -> TimelineItem:
    """
    Build an insertable recommendation item from a candidate.

    Args:
        candidate:        activity to schedule.
        start:            start instant; defaults to the next full hour.
        duration_minutes: overrides the candidate's parsed duration.

    Raises:
        pydantic.ValidationError: if the candidate's coordinates are out of range.
    """
    start = start or _next_full_hour()
    minutes = duration_minutes or parse_duration(candidate.duration)
    return TimelineItem(
        id=f"rec-{candidate.id}-{uuid.uuid4().hex[:8]}",
        title=candidate.title,
        description=candidate.description or None,
        location=Location(
            name=candidate.location.name or candidate.title,
            lat=candidate.location.lat,
            lng=candidate.location.lng,
        ),
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        source=ItemSource.RECOMMENDATION,
        recommendation_id=candidate.id,
        image=candidate.image,
        is_locked=False,
    )
