"""
modules/planning/gap_filler.py
--------------------------------
End-to-end gap filling for one day:

    detect gaps → drop already-scheduled candidates → Stage 1 temporal
    filter (candidate_filter) → Stage 2 scoring (FitScorer) → top-K per gap

Each gap gets a GapFillingResult carrying its ranked suggestions, timing
and an overall confidence label derived from the mean per-suggestion
confidence:  > 0.7 → high,  > 0.4 → medium,  else (or none) → low.
"""

from __future__ import annotations
import logging
import time
from datetime import date
from typing import Iterable, Optional

from gapfill.modules.optimization.fit_scorer import FitScorer
from gapfill.modules.planning.candidate_filter import exclude_scheduled, filter_by_duration
from gapfill.modules.planning.gap_detector import detect_gaps_with
from gapfill.modules.tool_usage.distance_tool import DistanceCache, DistanceTool
from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.gaps import ConfidenceLevel, FitResult, GapFillingResult
from gapfill.schemas.itinerary import TimelineItem
from gapfill.schemas.options import PlannerOptions


logger = logging.getLogger(__name__)


def confidence_label(suggestions: list[FitResult]) -> ConfidenceLevel:
    if not suggestions:
        return "low"
    avg = sum(s.confidence for s in suggestions) / len(suggestions)
    if avg > 0.7:
        return "high"
    if avg > 0.4:
        return "medium"
    return "low"


def find_optimal_activities_for_gaps(
    items: Iterable[TimelineItem],
    day: date,
    candidates: Iterable[CandidateActivity],
    options: Optional[PlannerOptions] = None,
    cache: Optional[DistanceCache] = None,
    scorer: Optional[FitScorer] = None,
) -> dict[str, GapFillingResult]:
    """
    Ranked suggestions for every gap of `day`.

    Args:
        items:      current timeline items.
        day:        calendar date to fill.
        candidates: the candidate pool.
        options:    planner settings; config defaults when None.
        cache:      session distance cache (ignored when `scorer` is given).
        scorer:     pre-built scorer to reuse across calls.

    Returns:
        gap id → GapFillingResult, in chronological gap order.
    """
    options = options or PlannerOptions.from_config()
    scorer = scorer or FitScorer(
        options, DistanceTool(cache=cache, use_cache=options.enable_cache),
    )
    items = list(items)
    pool = exclude_scheduled(candidates, items)

    results: dict[str, GapFillingResult] = {}
    for gap in detect_gaps_with(items, day, options):
        started = time.perf_counter()
        admitted = filter_by_duration(gap, pool, options.buffer_minutes)
        suggestions = scorer.score(gap, admitted)
        results[gap.id] = GapFillingResult(
            gap=gap,
            suggestions=suggestions,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
            confidence=confidence_label(suggestions),
            total_activities_analyzed=len(pool),
        )

    logger.info(
        "Gap filling for %s: %d gap(s), %d candidate(s), %d suggestion(s)",
        day.isoformat(), len(results), len(pool),
        sum(len(r.suggestions) for r in results.values()),
    )
    return results
