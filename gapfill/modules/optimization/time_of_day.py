"""
modules/optimization/time_of_day.py
-------------------------------------
Time-of-day appropriateness as an ordered rule table.

Rules are tried in order for the context of the suggested start; the first
rule whose keyword appears in one of its fields wins. No match → the
context's fallback score. Starts outside the active hours score
`out_of_hours_score`. This is an explainability heuristic, so plain
substring matching is intended ("bar" also hits "barbecue").

Replace or extend by building another TimeOfDayTable; the scorer only calls
table.score(candidate, start).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.gaps import DayContext


@dataclass(frozen=True)
class TimeOfDayRule:
    context: DayContext
    keywords: frozenset[str]
    score: float
    fields: tuple[str, ...] = ("title",)

    def matches(self, candidate: CandidateActivity) -> bool:
        for name in self.fields:
            text = (getattr(candidate, name, "") or "").lower()
            if any(k in text for k in self.keywords):
                return True
        return False


@dataclass
class TimeOfDayTable:
    rules: list[TimeOfDayRule] = field(default_factory=list)
    fallback: dict[DayContext, float] = field(default_factory=dict)
    out_of_hours_score: float = 60.0
    active_hours: tuple[int, int] = (8, 22)   # inclusive on both ends

    def context_for(self, start: datetime) -> Optional[DayContext]:
        lo, hi = self.active_hours
        if not lo <= start.hour <= hi:
            return None
        return DayContext.from_hour(start.hour)

    def score(self, candidate: CandidateActivity, start: datetime) -> float:
        context = self.context_for(start)
        if context is None:
            return self.out_of_hours_score
        for rule in self.rules:
            if rule.context == context and rule.matches(candidate):
                return rule.score
        return self.fallback.get(context, self.out_of_hours_score)


def _rule(context: DayContext, score: float, *keywords: str,
          fields: tuple[str, ...] = ("title",)) -> TimeOfDayRule:
    return TimeOfDayRule(context=context, keywords=frozenset(keywords), score=score, fields=fields)


DEFAULT_TIME_OF_DAY_TABLE = TimeOfDayTable(
    rules=[
        # Morning: markets, breakfast, tours
        _rule(DayContext.MORNING, 100, "market", "breakfast", "morning"),
        _rule(DayContext.MORNING, 100, "morning", fields=("description",)),
        _rule(DayContext.MORNING, 90, "tour", "walk"),
        # Afternoon: museums, workshops, lunch
        _rule(DayContext.AFTERNOON, 100, "lunch", "museum", "workshop", "class"),
        _rule(DayContext.AFTERNOON, 85, "food", "culinary"),
        # Evening: dining, entertainment, nightlife
        _rule(DayContext.EVENING, 100,
              "dinner", "wine", "jazz", "club", "bar", "evening", "night"),
        _rule(DayContext.EVENING, 100, "evening", "night", fields=("description",)),
        _rule(DayContext.EVENING, 90, "food", "restaurant"),
    ],
    fallback={
        DayContext.MORNING: 70,
        DayContext.AFTERNOON: 75,
        DayContext.EVENING: 70,
    },
)
