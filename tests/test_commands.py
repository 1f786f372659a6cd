import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from gapfill.modules.itinerary.commands import (
    activity_to_item, add_to_itinerary, import_calendar, remove_item,
)
from gapfill.modules.itinerary.timeline import ItineraryTimeline
from gapfill.schemas.itinerary import ItemSource, RejectionReason


def _event(title, start, end, **extra):
    return {
        "title": title,
        "location": {"name": title, "lat": 48.8606, "lng": 2.3376},
        "start_time": start,
        "end_time": end,
        **extra,
    }


@pytest.fixture
def timeline():
    return ItineraryTimeline()


# ── add_to_itinerary ──────────────────────────────────────────────────────────

def test_add_valid_payload(timeline):
    result = add_to_itinerary(timeline, _event("Louvre", "2025-06-14T10:00:00", "2025-06-14T12:00:00"))
    assert result.success and result.error is None
    assert result.item.id.startswith("item-")
    assert result.item.start_time == datetime(2025, 6, 14, 10)
    assert len(timeline) == 1


def test_add_keeps_supplied_id(timeline):
    result = add_to_itinerary(
        timeline, _event("Louvre", "2025-06-14T10:00:00", "2025-06-14T12:00:00", id="louvre"),
    )
    assert result.item.id == "louvre"


def test_add_invalid_payload_is_structured_failure(timeline):
    result = add_to_itinerary(timeline, _event("Backwards", "2025-06-14T12:00:00", "2025-06-14T10:00:00"))
    assert not result.success
    assert "end_time" in result.error
    assert result.reason is None
    assert len(timeline) == 0


def test_add_missing_fields(timeline):
    result = add_to_itinerary(timeline, {"title": "No times"})
    assert not result.success
    assert result.error.startswith("Invalid itinerary item")


def test_add_non_mapping(timeline):
    assert not add_to_itinerary(timeline, ["not", "a", "dict"]).success


def test_add_overlap_reports_reason(timeline):
    add_to_itinerary(timeline, _event("A", "2025-06-14T10:00:00", "2025-06-14T12:00:00"))
    result = add_to_itinerary(timeline, _event("B", "2025-06-14T11:00:00", "2025-06-14T13:00:00"))
    assert not result.success
    assert result.reason == RejectionReason.OVERLAP
    assert "A" in result.error


def test_add_mixes_offset_and_naive_times(timeline):
    zulu = add_to_itinerary(timeline, _event("Zulu", "2025-06-14T10:00:00Z", "2025-06-14T11:00:00Z"))
    assert zulu.success
    start = datetime(2025, 6, 14, 10, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert zulu.item.start_time == start
    assert zulu.item.start_time.tzinfo is None

    def naive(title, offset_minutes, length_minutes):
        s = start + timedelta(minutes=offset_minutes)
        return _event(title, s.isoformat(), (s + timedelta(minutes=length_minutes)).isoformat())

    clash = add_to_itinerary(timeline, naive("Naive", 30, 60))
    assert not clash.success
    assert clash.reason == RejectionReason.OVERLAP

    assert add_to_itinerary(timeline, naive("After", 60, 45)).success
    assert len(timeline) == 2


# ── import_calendar ───────────────────────────────────────────────────────────

def test_import_skips_invalid_events(timeline):
    events = [
        _event("Standup", "2025-06-14T09:00:00", "2025-06-14T09:30:00", id="e1"),
        _event("Offsite", "2025-06-14T09:15:00", "2025-06-14T17:00:00", id="e2"),
        {"title": "Broken"},
        "garbage",
    ]
    result = import_calendar(timeline, events)

    assert result.success
    assert result.imported_count == 2
    assert len(result.errors) == 2
    assert all(e.startswith("Invalid event") for e in result.errors)
    for item in timeline:
        assert item.is_locked and item.source == ItemSource.GOOGLE_CALENDAR


def test_import_locks_even_if_payload_says_otherwise(timeline):
    import_calendar(timeline, [_event("X", "2025-06-14T09:00:00", "2025-06-14T10:00:00", is_locked=False)])
    assert timeline.items[0].is_locked


def test_import_all_invalid_fails(timeline):
    result = import_calendar(timeline, [{"title": "Broken"}])
    assert not result.success
    assert result.error.startswith("No valid events to import")
    assert len(timeline) == 0


def test_import_nothing(timeline):
    result = import_calendar(timeline, [])
    assert not result.success
    assert result.error == "No events to import"


# ── remove_item ───────────────────────────────────────────────────────────────

def test_remove_locked_and_missing(timeline):
    import_calendar(timeline, [_event("Locked", "2025-06-14T09:00:00", "2025-06-14T10:00:00", id="cal")])

    locked = remove_item(timeline, "cal")
    assert not locked.success and locked.reason == RejectionReason.IMMUTABLE

    missing = remove_item(timeline, "nope")
    assert not missing.success and missing.reason == RejectionReason.NOT_FOUND


def test_remove_unlocked(timeline):
    add_to_itinerary(timeline, _event("Mine", "2025-06-14T09:00:00", "2025-06-14T10:00:00", id="m"))
    assert remove_item(timeline, "m").success
    assert len(timeline) == 0


# ── activity_to_item ──────────────────────────────────────────────────────────

def test_activity_to_item_explicit(make_candidate):
    start = datetime(2025, 6, 14, 15)
    item = activity_to_item(make_candidate("42", "1h 30m", title="Cooking class"), start=start)
    assert item.start_time == start
    assert item.duration_minutes == 90
    assert item.source == ItemSource.RECOMMENDATION
    assert item.recommendation_id == "42"
    assert not item.is_locked


def test_activity_to_item_duration_override(make_candidate):
    item = activity_to_item(make_candidate("1", "3 hours"), start=datetime(2025, 6, 14, 9), duration_minutes=45)
    assert item.duration_minutes == 45


def test_activity_to_item_defaults_to_next_full_hour(make_candidate):
    before = datetime.now()
    item = activity_to_item(make_candidate("1", None))
    assert item.start_time > before
    assert item.start_time.minute == 0 and item.start_time.second == 0
    assert item.duration_minutes == 120


def test_activity_to_item_rejects_bad_coordinates(make_candidate):
    with pytest.raises(ValidationError):
        activity_to_item(make_candidate("x", lat=123.0, lng=0.0), start=datetime(2025, 6, 14, 9))
