"""
modules/optimization/fit_scorer.py
------------------------------------
Stage 2 of gap filling: rank admissible candidates against one gap.

Each candidate is scored on three independent axes (all 0–100):

  duration   : ratio = duration / gap.optimal_duration_minutes
                 [0.85, 1.00] → perfect  100
                 [0.65, 0.85) → good      80
                 > 1.00       → too-long   0
                 otherwise    → tight     60
  proximity  : per adjacent item present, band the distance
                 < 1 km → 100, < 2 km → 75, < 5 km → 50, else 25
               averaged over the items present; 50 with none.
  time of day: TimeOfDayTable (time_of_day.py) at the suggested start.

The overall score is the RankingPolicy blend (blending.py). Every suggestion
is anchored at gap.start + anchor buffer; candidates whose anchored end
would pass gap.end are dropped. Ranking is a stable sort on score, so ties
keep input order.
"""

from __future__ import annotations
import logging
import math
from datetime import timedelta
from typing import Iterable, Optional

from gapfill.modules.optimization.blending import blend, weights_for
from gapfill.modules.optimization.time_of_day import DEFAULT_TIME_OF_DAY_TABLE, TimeOfDayTable
from gapfill.modules.tool_usage.distance_tool import DistanceTool
from gapfill.modules.tool_usage.duration_tool import parse_duration
from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.gaps import DurationFit, FitResult, TimeGap
from gapfill.schemas.options import PlannerOptions, RankingPolicy


logger = logging.getLogger(__name__)

NEUTRAL_PROXIMITY_SCORE: float = 50.0

# (upper bound km, score); first bound the distance is below wins
_PROXIMITY_BANDS: list[tuple[float, float]] = [(1.0, 100.0), (2.0, 75.0), (5.0, 50.0)]
_FAR_PROXIMITY_SCORE: float = 25.0

_DURATION_SCORES: dict[DurationFit, float] = {
    DurationFit.PERFECT: 100.0,
    DurationFit.GOOD: 80.0,
    DurationFit.TIGHT: 60.0,
    DurationFit.TOO_LONG: 0.0,
}


def proximity_band(distance_km: float) -> float:
    for bound, score in _PROXIMITY_BANDS:
        if distance_km < bound:
            return score
    return _FAR_PROXIMITY_SCORE


def classify_duration(duration_minutes: float, optimal_minutes: float) -> tuple[DurationFit, float]:
    """Returns (fit label, utilisation ratio)."""
    ratio = duration_minutes / optimal_minutes if optimal_minutes > 0 else math.inf
    if ratio > 1.0:
        return DurationFit.TOO_LONG, ratio
    if ratio >= 0.85:
        return DurationFit.PERFECT, ratio
    if ratio >= 0.65:
        return DurationFit.GOOD, ratio
    return DurationFit.TIGHT, ratio


def suggestion_confidence(utilization: float, nearest_km: Optional[float]) -> float:
    """0–1 confidence from time usage and the nearest adjacent distance."""
    confidence = 0.0
    if utilization > 0.8:
        confidence += 0.4
    elif utilization > 0.5:
        confidence += 0.2

    if nearest_km is not None and math.isfinite(nearest_km):
        if nearest_km < 1:
            confidence += 0.4
        elif nearest_km < 3:
            confidence += 0.2
        confidence += min(0.2, 1 - nearest_km / 10)

    return max(0.0, min(1.0, confidence))


class FitScorer:
    """
    Scores CandidateActivity objects against a TimeGap.

    One scorer per session: it owns (through its DistanceTool) the distance
    cache used for proximity.
    """

    def __init__(
        self,
        options: PlannerOptions | None = None,
        distance_tool: DistanceTool | None = None,
        time_of_day_table: TimeOfDayTable | None = None,
    ):
        self.options = options or PlannerOptions.from_config()
        self.distance_tool = distance_tool or DistanceTool(use_cache=self.options.enable_cache)
        self.time_of_day_table = time_of_day_table or DEFAULT_TIME_OF_DAY_TABLE

    # ── Public ────────────────────────────────────────────────────────────────

    def score(
        self,
        gap: TimeGap,
        candidates: Iterable[CandidateActivity],
        policy: RankingPolicy | None = None,
        top_k: int | None = None,
    ) -> list[FitResult]:
        """Top-k ranked results (k defaults to options.max_suggestions_per_gap)."""
        limit = top_k if top_k is not None else self.options.max_suggestions_per_gap
        return self.score_all(gap, candidates, policy)[:max(0, limit)]

    def score_all(
        self,
        gap: TimeGap,
        candidates: Iterable[CandidateActivity],
        policy: RankingPolicy | None = None,
    ) -> list[FitResult]:
        """Every candidate that fits the gap, ranked by score descending."""
        policy = RankingPolicy(policy or self.options.ranking_policy)
        results = []
        for candidate in candidates:
            result = self.score_one(gap, candidate, policy)
            if result is not None:
                results.append(result)
        results.sort(key=lambda r: r.score, reverse=True)
        logger.debug(
            "Scored %d candidates for %s (%s); best=%s",
            len(results), gap.id, policy.value,
            f"{results[0].candidate.id}:{results[0].score:.1f}" if results else None,
        )
        return results

    def score_one(
        self,
        gap: TimeGap,
        candidate: CandidateActivity,
        policy: RankingPolicy | None = None,
    ) -> Optional[FitResult]:
        """Full scoring for one candidate; None when it cannot be placed in the gap."""
        policy = RankingPolicy(policy or self.options.ranking_policy)
        duration = parse_duration(candidate.duration)

        suggested_start = gap.start + timedelta(minutes=self.options.anchor_buffer_minutes)
        suggested_end = suggested_start + timedelta(minutes=duration)
        if suggested_end > gap.end:
            return None

        fit, ratio = classify_duration(duration, gap.optimal_duration_minutes)
        duration_score = _DURATION_SCORES[fit]
        proximity_score, d_prev, d_next = self.proximity(candidate, gap)
        tod_score = self.time_of_day_table.score(candidate, suggested_start)

        overall = blend([duration_score, proximity_score, tod_score], weights_for(policy))

        present = [d for d in (d_prev, d_next) if d is not None]
        return FitResult(
            candidate=candidate,
            gap=gap,
            duration_minutes=duration,
            utilization=ratio,
            duration_fit=fit,
            duration_score=duration_score,
            proximity_score=proximity_score,
            time_of_day_score=tod_score,
            score=overall,
            suggested_start=suggested_start,
            suggested_end=suggested_end,
            distance_to_previous=d_prev,
            distance_to_next=d_next,
            confidence=suggestion_confidence(ratio, min(present) if present else None),
        )

    def proximity(
        self,
        candidate: CandidateActivity,
        gap: TimeGap,
    ) -> tuple[float, Optional[float], Optional[float]]:
        """(proximity score, km from preceding item, km to following item)."""
        d_prev = d_next = None
        bands: list[float] = []
        if gap.preceding is not None:
            d_prev = self.distance_tool.calculate_km(gap.preceding.location, candidate.location)
            bands.append(proximity_band(d_prev))
        if gap.following is not None:
            d_next = self.distance_tool.calculate_km(candidate.location, gap.following.location)
            bands.append(proximity_band(d_next))
        score = sum(bands) / len(bands) if bands else NEUTRAL_PROXIMITY_SCORE
        return score, d_prev, d_next
