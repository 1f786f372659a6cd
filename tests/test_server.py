from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from gapfill.modules.session import SessionRegistry
from gapfill.schemas.activity import CandidateActivity, GeoPoint
from gapfill.server import create_app

DAY = "2025-06-14"


def _event(id, title, start, end, lat=48.8606, lng=2.3376):
    return {
        "id": id,
        "title": title,
        "location": {"name": title, "lat": lat, "lng": lng},
        "start_time": f"{DAY}T{start}",
        "end_time": f"{DAY}T{end}",
    }


def _candidate(id, duration, title=None):
    return {
        "id": id,
        "title": title or f"Activity {id}",
        "description": "",
        "location": {"lat": 48.8606, "lng": 2.3376},
        "duration": duration,
    }


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry))


@pytest.fixture
def calendar(client):
    body = {"events": [_event("cal-1", "Meeting", "09:00:00", "10:00:00"),
                       _event("cal-2", "Lunch", "14:00:00", "15:00:00")]}
    response = client.post("/sessions/s1/itinerary/import", json=body)
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["sessions"] == 0


def test_unknown_route_uses_error_body(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert "error" in response.json()


def test_import_reports_count(calendar, client):
    assert calendar["success"] is True
    assert calendar["imported_count"] == 2

    items = client.get("/sessions/s1/itinerary").json()["items"]
    assert [i["id"] for i in items] == ["cal-1", "cal-2"]
    assert all(i["is_locked"] and i["source"] == "google_calendar" for i in items)


def test_import_empty_list_is_400(client):
    response = client.post("/sessions/s1/itinerary/import", json={"events": []})
    assert response.status_code == 400
    assert response.json() == {"error": "No events to import"}


def test_add_then_overlap_conflict(calendar, client):
    ok = client.post("/sessions/s1/itinerary/items",
                     json={"item": _event("m", "Museum", "10:30:00", "12:00:00")})
    assert ok.status_code == 200
    assert ok.json()["item"]["id"] == "m"

    clash = client.post("/sessions/s1/itinerary/items",
                        json={"item": _event("x", "Clash", "11:00:00", "11:30:00")})
    assert clash.status_code == 409
    assert "Museum" in clash.json()["error"]


def test_add_invalid_item_is_400(client):
    response = client.post("/sessions/s1/itinerary/items",
                           json={"item": _event("b", "Backwards", "12:00:00", "10:00:00")})
    assert response.status_code == 400
    assert "end_time" in response.json()["error"]


def test_offset_and_naive_items_share_one_timeline(client):
    first = client.post("/sessions/tz/itinerary/items",
                        json={"item": {**_event("z", "Zulu", "10:00:00", "11:00:00"),
                                       "start_time": f"{DAY}T10:00:00Z", "end_time": f"{DAY}T11:00:00Z"}})
    assert first.status_code == 200

    local = datetime(2025, 6, 14, 10, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    overlapping = {**_event("n", "Naive", "00:00:00", "00:00:00"),
                   "start_time": (local + timedelta(minutes=30)).isoformat(),
                   "end_time": (local + timedelta(minutes=90)).isoformat()}
    clash = client.post("/sessions/tz/itinerary/items", json={"item": overlapping})
    assert clash.status_code == 409
    assert "Zulu" in clash.json()["error"]

    gaps = client.post("/sessions/tz/gaps", json={"date": local.date().isoformat()})
    assert gaps.status_code == 200


def test_remove_locked_and_missing(calendar, client):
    locked = client.delete("/sessions/s1/itinerary/items/cal-1")
    assert locked.status_code == 403

    missing = client.delete("/sessions/s1/itinerary/items/ghost")
    assert missing.status_code == 404
    assert "error" in missing.json()


def test_remove_own_item(client):
    client.post("/sessions/s1/itinerary/items", json={"item": _event("m", "Museum", "10:00:00", "11:00:00")})
    response = client.delete("/sessions/s1/itinerary/items/m")
    assert response.status_code == 200
    assert client.get("/sessions/s1/itinerary").json()["items"] == []


def test_gaps(calendar, client):
    body = client.post("/sessions/s1/gaps", json={"date": DAY}).json()
    assert body["date"] == DAY
    spans = [(g["start"][11:16], g["end"][11:16]) for g in body["gaps"]]
    assert spans == [("08:00", "09:00"), ("10:00", "14:00"), ("15:00", "22:00")]
    assert body["gaps"][0]["is_start_of_day"] is True
    assert body["gaps"][1]["preceding_id"] == "cal-1"


def test_suggestions_with_inline_candidates(calendar, client):
    body = {
        "date": DAY,
        "candidates": [_candidate("a", "1 hour"), _candidate("b", "2 hours")],
        "policy": "itinerary_fit",
    }
    response = client.post("/sessions/s1/suggestions", json=body)
    assert response.status_code == 200
    results = response.json()["results"]
    assert len(results) == 3

    midday = next(r for r in results if r["gap"]["start"].endswith("10:00:00"))
    assert {s["activity"]["id"] for s in midday["suggestions"]} == {"a", "b"}
    top = midday["suggestions"][0]
    assert top["suggested_start"].endswith("10:15:00")
    assert midday["confidence"] in ("high", "medium", "low")
    assert midday["total_activities_analyzed"] == 2


def test_suggestions_fetch_pool_by_location(calendar, client, registry):
    pool = [CandidateActivity(id="w", title="Walk", location=GeoPoint(lat=48.8606, lng=2.3376), duration="1 hour")]
    with patch("gapfill.server.ActivityTool") as tool_cls:
        tool_cls.return_value.fetch.return_value = pool
        response = client.post("/sessions/s1/suggestions",
                               json={"date": DAY, "location": "Paris", "preferences": ["Jazz"]})

    assert response.status_code == 200
    tool_cls.return_value.fetch.assert_called_once_with("Paris", ["Jazz"])
    assert registry.get("s1").candidates == pool
    offered = {s["activity"]["id"] for r in response.json()["results"] for s in r["suggestions"]}
    assert offered == {"w"}


def test_smart_mode(calendar, client):
    body = {"date": DAY, "candidates": [_candidate("a", "1 hour")], "mode": "smart"}
    suggestions = client.post("/sessions/s1/suggestions", json=body).json()["suggestions"]
    assert len(suggestions) == 1
    assert suggestions[0]["slot_start"].endswith("10:00:00")
    assert suggestions[0]["distance_to_closest"] == pytest.approx(0.0, abs=1e-6)


def test_unknown_mode_is_400(calendar, client):
    response = client.post("/sessions/s1/suggestions", json={"date": DAY, "candidates": [], "mode": "weird"})
    assert response.status_code == 400


def test_invalid_body_is_422(client):
    response = client.post("/sessions/s1/gaps", json={"date": "not-a-date"})
    assert response.status_code == 422
    assert "error" in response.json()


@pytest.mark.parametrize("method, path, body", [
    ("get", "/sessions/ghost/itinerary", None),
    ("post", "/sessions/ghost/gaps", {"date": DAY}),
    ("post", "/sessions/ghost/suggestions", {"date": DAY, "candidates": []}),
    ("delete", "/sessions/ghost/itinerary/items/x", None),
])
def test_read_routes_do_not_create_sessions(client, registry, method, path, body):
    kwargs = {"json": body} if body is not None else {}
    response = getattr(client, method)(path, **kwargs)
    assert response.status_code == 404
    assert response.json() == {"error": "Unknown session: ghost"}
    assert len(registry) == 0


def test_clear_session(calendar, client, registry):
    assert "s1" in registry
    assert client.delete("/sessions/s1").json() == {"success": True, "cleared": True}
    assert "s1" not in registry
    assert client.delete("/sessions/s1").json()["cleared"] is False
