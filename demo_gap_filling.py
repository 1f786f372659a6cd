"""
demo_gap_filling.py
────────────────────────────────────────────────────────────────────────────
Walk-through of one planning day in Paris, one scenario at a time, with a
Press-Enter pause between each.

Scenarios:
  1. Calendar import: two fixed commitments arrive, locked
  2. Free time: the open windows of the day
  3. Suggestions: ranked activities for every window
  4. Accepting a suggestion, then trying to double-book it
  5. Trying to delete a calendar commitment
  6. Between-items ideas and the best slot for one activity

Run:
    python demo_gap_filling.py
────────────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import date

from gapfill.config import configure_logging
from gapfill.modules.planning.smart_suggestions import format_distance
from gapfill.modules.session import PlannerSession
from gapfill.modules.tool_usage.duration_tool import format_duration

WIDTH = 66
DAY = date(2025, 6, 14)


def _banner(title: str) -> None:
    print("\n" + "═" * WIDTH)
    print(f"  {title}")
    print("═" * WIDTH)


def _scene(number: int, title: str) -> None:
    print("\n" + "╔" + "═" * (WIDTH - 2) + "╗")
    print(f"║  SCENARIO {number}: {title:<{WIDTH - 16}}║")
    print("╚" + "═" * (WIDTH - 2) + "╝")


def _pause() -> None:
    try:
        input("\n  [ Press Enter for the next scenario... ]\n")
    except EOFError:
        print()


def _calendar_events() -> list[dict]:
    return [
        {
            "id": "cal-louvre",
            "title": "Louvre guided visit",
            "location": {"name": "Louvre", "lat": 48.8606, "lng": 2.3376},
            "start_time": f"{DAY.isoformat()}T10:00:00",
            "end_time": f"{DAY.isoformat()}T12:00:00",
        },
        {
            "id": "cal-dinner",
            "title": "Dinner with friends",
            "location": {"name": "Le Marais", "lat": 48.8575, "lng": 2.3592},
            "start_time": f"{DAY.isoformat()}T19:00:00",
            "end_time": f"{DAY.isoformat()}T21:00:00",
        },
        {"title": "Broken export row"},
    ]


def main() -> None:
    configure_logging("WARNING")
    session = PlannerSession()
    session.load_candidates("Paris")

    _banner(f"GAP FILLING DEMO  ·  {DAY:%A %d %B %Y}  ·  {len(session.candidates)} activities")

    _scene(1, "Calendar import")
    result = session.import_calendar(_calendar_events())
    print(f"  Imported {result.imported_count} event(s); skipped {len(result.errors)}:")
    for err in result.errors:
        print(f"    - {err}")
    for item in session.timeline:
        print(f"  [locked] {item.start_time:%H:%M}-{item.end_time:%H:%M}  {item.title}")
    _pause()

    _scene(2, "Free time")
    for gap in session.gaps(DAY):
        print(
            f"  {gap.start:%H:%M}-{gap.end:%H:%M}  {format_duration(gap.duration_minutes):>8}"
            f"  ({gap.context.value}, usable {format_duration(int(gap.optimal_duration_minutes))})"
        )
    _pause()

    _scene(3, "Suggestions")
    results = session.suggest(DAY)
    for res in results.values():
        print(f"\n  {res.gap.start:%H:%M}-{res.gap.end:%H:%M}  confidence: {res.confidence}")
        if not res.suggestions:
            print("    (nothing fits)")
        for fit in res.suggestions:
            print(
                f"    {fit.score:5.1f}  {fit.candidate.title:<28} "
                f"{fit.suggested_start:%H:%M}-{fit.suggested_end:%H:%M}  {fit.duration_fit.value}"
                f"  {format_distance(fit.nearest_distance)}"
            )
    _pause()

    _scene(4, "Accept, then double-book")
    best = next((r.suggestions[0] for r in results.values() if r.suggestions), None)
    if best is None:
        print("  No suggestion to accept.")
    else:
        first = session.accept(best)
        print(f"  Accept '{best.candidate.title}': {'OK' if first.success else first.error}")
        again = session.add({
            "title": "Impromptu coffee",
            "location": {"lat": 48.86, "lng": 2.34},
            "start_time": best.suggested_start.isoformat(),
            "end_time": best.suggested_end.isoformat(),
        })
        print(f"  Add overlapping coffee: {'OK' if again.success else again.error}")
    _pause()

    _scene(5, "Delete a calendar commitment")
    removal = session.remove("cal-louvre")
    print(f"  Remove 'cal-louvre': {'OK' if removal.success else removal.error}")
    _pause()

    _scene(6, "Between-items ideas and best slot")
    for idea in session.smart_suggestions():
        print(
            f"  {idea.suggested_start:%H:%M}  {idea.activity.title:<28} "
            f"{format_distance(idea.distance_to_closest)} from {idea.closest} item"
        )
    jazz = next((c for c in session.candidates if "Jazz" in c.title), None)
    if jazz is not None:
        slot = session.best_slot(jazz, DAY)
        where = f"{slot.suggested_start:%H:%M} (score {slot.score:.1f})" if slot else "nowhere"
        print(f"\n  Best slot for '{jazz.title}': {where}")

    _banner("DONE")


if __name__ == "__main__":
    main()
