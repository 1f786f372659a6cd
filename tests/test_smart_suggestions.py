import pytest

from gapfill.modules.planning.smart_suggestions import (
    find_empty_slots, format_distance, generate_smart_suggestions, item_from_suggestion,
)
from gapfill.modules.tool_usage.distance_tool import DistanceCache, DistanceTool
from gapfill.schemas.itinerary import ItemSource

PREV = (48.8606, 2.3376)   # Louvre
NEXT = (48.8575, 2.3592)   # Le Marais, ~1.6 km east


@pytest.fixture
def day_items(make_item):
    return [
        make_item("museum", (9,), (10,), lat=PREV[0], lng=PREV[1]),
        make_item("lunch", (12,), (13,), lat=NEXT[0], lng=NEXT[1]),
        make_item("call", (13, 10), (14,), lat=NEXT[0], lng=NEXT[1]),
    ]


def test_no_items_no_slots():
    assert find_empty_slots([]) == []


def test_single_item_has_no_slot(make_item):
    assert find_empty_slots([make_item("A", (10,), (11,))]) == []


def test_slots_only_between_items(day_items):
    slots = find_empty_slots(day_items)
    assert len(slots) == 1   # 13:00-13:10 is too short, day edges never count
    slot = slots[0]
    assert (slot.start.hour, slot.end.hour) == (10, 12)
    assert slot.available_minutes == 120
    assert slot.previous.id == "museum" and slot.next.id == "lunch"


def test_nested_item_does_not_open_a_slot(make_item):
    items = [make_item("all-day", (9,), (17,)), make_item("a", (10,), (11,)), make_item("b", (12,), (13,))]
    assert find_empty_slots(items) == []


def test_suggestions_nearest_first_top_three(day_items, make_candidate, distance_tool):
    pool = [
        make_candidate("far", "1 hour", lat=48.90, lng=2.40),
        make_candidate("at-next", "1 hour", lat=NEXT[0], lng=NEXT[1]),
        make_candidate("mid", "1 hour", lat=48.8590, lng=2.3480),
        make_candidate("at-prev", "1 hour", lat=PREV[0] + 0.0005, lng=PREV[1]),
        make_candidate("too-long", "2 hours"),   # 15 min buffer pushes it past noon
    ]
    found = generate_smart_suggestions(day_items, pool, distance_tool=distance_tool)

    assert [s.activity.id for s in found] == ["at-next", "at-prev", "mid"]
    assert found[0].closest == "next"
    assert found[1].closest == "previous"
    for s in found:
        assert s.suggested_start.hour == 10 and s.suggested_start.minute == 15
        assert s.suggested_end <= s.slot.end


def test_distances_stay_in_km_with_a_miles_tool(day_items, make_candidate):
    pool = [make_candidate("mid", "1 hour", lat=48.8590, lng=2.3480)]
    in_km = generate_smart_suggestions(day_items, pool, distance_tool=DistanceTool("km", DistanceCache()))
    in_miles = generate_smart_suggestions(day_items, pool, distance_tool=DistanceTool("miles", DistanceCache()))
    assert in_miles[0].distance_to_closest == pytest.approx(in_km[0].distance_to_closest)


def test_per_slot_limit(day_items, make_candidate, distance_tool):
    pool = [make_candidate(str(i), "30 minutes") for i in range(5)]
    assert len(generate_smart_suggestions(day_items, pool, per_slot=2, distance_tool=distance_tool)) == 2


def test_item_from_suggestion(day_items, make_candidate, distance_tool):
    (suggestion,) = generate_smart_suggestions(
        day_items, [make_candidate("7", "45 minutes", title="Tea room")], distance_tool=distance_tool,
    )
    item = item_from_suggestion(suggestion)
    assert item.source == ItemSource.RECOMMENDATION
    assert item.recommendation_id == "7"
    assert item.title == "Tea room"
    assert item.start_time == suggestion.suggested_start
    assert item.duration_minutes == 45
    assert item.id.startswith("smart-7-")


@pytest.mark.parametrize("km, text", [(0.4, "400m"), (2.345, "2.3km"), (None, ""), (float("inf"), "")])
def test_format_distance(km, text):
    assert format_distance(km) == text

