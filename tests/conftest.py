import pytest
from datetime import date, datetime, timedelta

from gapfill.modules.tool_usage.distance_tool import DistanceCache, DistanceTool
from gapfill.schemas.activity import CandidateActivity, GeoPoint, Location
from gapfill.schemas.gaps import TimeGap
from gapfill.schemas.itinerary import ItemSource, TimelineItem

# Lower Manhattan / Brooklyn-side reference points (~6.3 km apart)
NYC_A = (40.7128, -74.0060)
NYC_B = (40.7306, -73.9352)


@pytest.fixture
def day():
    return date(2025, 6, 14)


@pytest.fixture
def at(day):
    """at(10) -> 10:00 on the test day, at(10, 30) -> 10:30."""
    def _at(hour: int, minute: int = 0) -> datetime:
        return datetime.combine(day, datetime.min.time()) + timedelta(hours=hour, minutes=minute)
    return _at


@pytest.fixture
def make_item(at):
    def _make(
        id: str,
        start: tuple,
        end: tuple,
        lat: float = NYC_A[0],
        lng: float = NYC_A[1],
        **extra,
    ) -> TimelineItem:
        return TimelineItem(
            id=id,
            title=extra.pop("title", f"Item {id}"),
            location=Location(name=f"Loc {id}", lat=lat, lng=lng),
            start_time=at(*start),
            end_time=at(*end),
            source=extra.pop("source", ItemSource.MANUAL),
            **extra,
        )
    return _make


@pytest.fixture
def make_candidate():
    def _make(
        id: str,
        duration: str | None = "1 hour",
        lat: float = NYC_A[0],
        lng: float = NYC_A[1],
        title: str | None = None,
        description: str = "",
    ) -> CandidateActivity:
        return CandidateActivity(
            id=id,
            title=title or f"Activity {id}",
            description=description,
            location=GeoPoint(lat=lat, lng=lng),
            duration=duration,
        )
    return _make


@pytest.fixture
def make_gap(at):
    def _make(start: tuple, end: tuple, preceding=None, following=None, buffer: int = 20) -> TimeGap:
        s, e = at(*start), at(*end)
        minutes = (e - s).total_seconds() / 60
        return TimeGap(
            id=f"gap-test-{s:%H%M}",
            start=s,
            end=e,
            duration_minutes=minutes,
            preceding=preceding,
            following=following,
            optimal_duration_minutes=max(0.0, minutes - buffer),
        )
    return _make


@pytest.fixture
def distance_tool():
    return DistanceTool(cache=DistanceCache())
