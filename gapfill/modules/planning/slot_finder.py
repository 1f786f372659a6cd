"""
modules/planning/slot_finder.py
---------------------------------
Best placement of a single candidate across the whole itinerary.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import date
from typing import Iterable, Optional

from gapfill.modules.optimization.fit_scorer import FitScorer
from gapfill.modules.planning.gap_detector import detect_gaps_with
from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.gaps import FitResult
from gapfill.schemas.itinerary import TimelineItem
from gapfill.schemas.options import PlannerOptions, RankingPolicy


def find_best_time_slot(
    candidate: CandidateActivity,
    items: Iterable[TimelineItem],
    preferred_date: Optional[date] = None,
    options: Optional[PlannerOptions] = None,
    scorer: Optional[FitScorer] = None,
) -> Optional[FitResult]:
    """
    Highest-scoring placement of `candidate` under ITINERARY_FIT.

    Days scanned: `preferred_date` if given, otherwise every day that has
    items, otherwise today. The earliest gap wins ties. None when the
    candidate fits nowhere.
    """
    options = replace(options or PlannerOptions.from_config(), ranking_policy=RankingPolicy.ITINERARY_FIT)
    scorer = scorer or FitScorer(options)
    items = list(items)

    if preferred_date is not None:
        days = [preferred_date]
    else:
        days = sorted({i.start_time.date() for i in items}) or [date.today()]

    best: Optional[FitResult] = None
    for day in days:
        for gap in detect_gaps_with(items, day, options):
            fit = scorer.score_one(gap, candidate, RankingPolicy.ITINERARY_FIT)
            if fit is not None and (best is None or fit.score > best.score):
                best = fit
    return best
