import pytest

from gapfill.modules.session import PlannerSession, SessionRegistry
from gapfill.modules.tool_usage.activity_tool import ActivityTool
from gapfill.schemas.itinerary import RejectionReason
from gapfill.schemas.options import PlannerOptions, RankingPolicy


def _calendar(day):
    d = day.isoformat()
    return [
        {"id": "cal-1", "title": "Morning meeting", "location": {"lat": 40.7128, "lng": -74.0060},
         "start_time": f"{d}T09:00:00", "end_time": f"{d}T10:00:00"},
        {"id": "cal-2", "title": "Late lunch", "location": {"lat": 40.7128, "lng": -74.0060},
         "start_time": f"{d}T14:00:00", "end_time": f"{d}T15:00:00"},
    ]


def test_suggest_accept_cycle(day, make_candidate):
    session = PlannerSession()
    assert session.import_calendar(_calendar(day)).imported_count == 2

    pool = [make_candidate("walk", "1 hour", title="Harbour walk"), make_candidate("tea", "45 minutes")]
    results = session.suggest(day, pool)
    gap_10_14 = next(r for r in results.values() if r.gap.start.hour == 10)
    best = gap_10_14.suggestions[0]

    accepted = session.accept(best)
    assert accepted.success
    assert accepted.item.recommendation_id == best.candidate.id
    assert accepted.item.start_time == best.suggested_start

    again = session.accept(best)
    assert not again.success
    assert again.reason == RejectionReason.DUPLICATE

    # the accepted activity is no longer offered
    offered = {s.candidate.id for r in session.suggest(day, pool).values() for s in r.suggestions}
    assert best.candidate.id not in offered


def test_suggest_uses_loaded_pool(day):
    session = PlannerSession()
    pool = session.load_candidates("Paris", tool=ActivityTool(webhook_url="UNSPECIFIED"))
    assert pool and session.candidates == pool
    results = session.suggest(day)
    assert sum(len(r.suggestions) for r in results.values()) > 0


def test_policy_override_per_call(day, make_candidate):
    session = PlannerSession(PlannerOptions(ranking_policy=RankingPolicy.DURATION_FIRST))
    (result,) = session.suggest(day, [make_candidate("m", "1 hour", title="Museum")],
                                policy=RankingPolicy.ITINERARY_FIT).values()
    fit = result.suggestions[0]
    assert fit.score == pytest.approx(
        fit.duration_score * 0.4 + fit.proximity_score * 0.3 + fit.time_of_day_score * 0.3
    )
    assert session.options.ranking_policy == RankingPolicy.DURATION_FIRST


def test_remove_locked_refused(day):
    session = PlannerSession()
    session.import_calendar(_calendar(day))
    assert session.remove("cal-1").reason == RejectionReason.IMMUTABLE


def test_reset_clears_timeline_and_cache(day, make_candidate):
    session = PlannerSession()
    session.import_calendar(_calendar(day))
    session.suggest(day, [make_candidate("x", "30 minutes")])
    assert len(session.cache) > 0

    session.reset()
    assert len(session.timeline) == 0
    assert len(session.cache) == 0


def test_sessions_are_isolated(day):
    a, b = PlannerSession(), PlannerSession()
    a.import_calendar(_calendar(day))
    assert len(b.timeline) == 0
    assert a.cache is not b.cache


def test_smart_suggestions_and_best_slot(day, make_candidate):
    session = PlannerSession()
    session.import_calendar(_calendar(day))
    pool = [make_candidate("c", "1 hour")]

    ideas = session.smart_suggestions(pool)
    assert [i.activity.id for i in ideas] == ["c"]
    assert ideas[0].slot.previous.id == "cal-1"

    best = session.best_slot(pool[0], day)
    assert best is not None
    assert best.suggested_start.date() == day


def test_registry():
    registry = SessionRegistry()
    first = registry.get_or_create("s1")
    assert registry.get_or_create("s1") is first
    assert "s1" in registry and len(registry) == 1
    assert registry.get("s2") is None
    assert registry.drop("s1")
    assert not registry.drop("s1")
