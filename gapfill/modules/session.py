"""
modules/session.py
--------------------
PlannerSession: single entry point for one traveller's planning session.

Owns exactly one ItineraryTimeline, one DistanceCache and one PlannerOptions
set; nothing is shared between sessions.

Lifecycle:
    session = PlannerSession()
    session.import_calendar(events)                 # locked calendar items
    session.load_candidates("Paris")                # pool from the webhook
    results = session.suggest(date(2025, 6, 1))     # gap id → GapFillingResult
    best = results[gap_id].suggestions[0]
    session.accept(best)                            # guarded insert
    session.remove(item_id)                         # refused for locked items
    session.reset()                                 # empty timeline + cache
"""

from __future__ import annotations
import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from gapfill.modules.itinerary import commands
from gapfill.modules.itinerary.commands import CommandResult
from gapfill.modules.itinerary.timeline import ItineraryTimeline
from gapfill.modules.optimization.fit_scorer import FitScorer
from gapfill.modules.planning.gap_filler import find_optimal_activities_for_gaps
from gapfill.modules.planning.slot_finder import find_best_time_slot
from gapfill.modules.planning.smart_suggestions import SmartSuggestion, generate_smart_suggestions
from gapfill.modules.tool_usage.activity_tool import ActivityTool
from gapfill.modules.tool_usage.distance_tool import DistanceCache, DistanceTool
from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.gaps import FitResult, GapFillingResult, TimeGap
from gapfill.schemas.options import PlannerOptions, RankingPolicy


logger = logging.getLogger(__name__)


class PlannerSession:

    def __init__(
        self,
        options: Optional[PlannerOptions] = None,
        session_id: Optional[str] = None,
        cache: Optional[DistanceCache] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.options = options or PlannerOptions.from_config()
        self.cache = cache if cache is not None else DistanceCache()
        self.timeline = ItineraryTimeline()
        self.candidates: list[CandidateActivity] = []
        self._distance_tool = DistanceTool(cache=self.cache, use_cache=self.options.enable_cache)

    # ── Candidate pool ────────────────────────────────────────────────────────

    def load_candidates(
        self,
        location: str,
        preferences: Optional[list[str]] = None,
        tool: Optional[ActivityTool] = None,
    ) -> list[CandidateActivity]:
        self.candidates = (tool or ActivityTool()).fetch(location, preferences)
        return self.candidates

    # ── Queries ───────────────────────────────────────────────────────────────

    def gaps(self, day: date) -> list[TimeGap]:
        return self.timeline.gaps(day, self.options)

    def suggest(
        self,
        day: date,
        candidates: Optional[Iterable[CandidateActivity]] = None,
        policy: Optional[RankingPolicy] = None,
    ) -> dict[str, GapFillingResult]:
        """Ranked suggestions per gap; `candidates` defaults to the loaded pool."""
        options = self.options if policy is None else replace(self.options, ranking_policy=policy)
        return find_optimal_activities_for_gaps(
            self.timeline.items, day,
            self.candidates if candidates is None else candidates,
            options=options,
            scorer=FitScorer(options, self._distance_tool),
        )

    def smart_suggestions(
        self, candidates: Optional[Iterable[CandidateActivity]] = None,
    ) -> list[SmartSuggestion]:
        return generate_smart_suggestions(
            self.timeline.items,
            self.candidates if candidates is None else candidates,
            min_slot_minutes=self.options.min_slot_minutes,
            buffer_minutes=self.options.anchor_buffer_minutes,
            distance_tool=self._distance_tool,
        )

    def best_slot(self, candidate: CandidateActivity, preferred_date: Optional[date] = None) -> Optional[FitResult]:
        options = replace(self.options, ranking_policy=RankingPolicy.ITINERARY_FIT)
        return find_best_time_slot(
            candidate, self.timeline.items, preferred_date, options,
            scorer=FitScorer(options, self._distance_tool),
        )

    # ── Commands ──────────────────────────────────────────────────────────────

    def accept(self, fit: FitResult) -> CommandResult:
        """Schedule a suggestion at its suggested interval."""
        try:
            item = commands.activity_to_item(
                fit.candidate, start=fit.suggested_start, duration_minutes=fit.duration_minutes,
            )
        except ValidationError as exc:
            return CommandResult(
                success=False,
                error=f"Cannot schedule {fit.candidate.id}: {exc.errors()[0]['msg']}",
            )
        return commands.add_to_itinerary(self.timeline, item)

    def add(self, payload: Mapping[str, Any]) -> CommandResult:
        return commands.add_to_itinerary(self.timeline, payload)

    def remove(self, item_id: str) -> CommandResult:
        return commands.remove_item(self.timeline, item_id)

    def import_calendar(self, events: Iterable[Any]) -> CommandResult:
        return commands.import_calendar(self.timeline, events)

    def reset(self) -> None:
        """Drop every item (locked ones too) and the distance cache."""
        self.timeline.clear()
        self.cache.clear()
        logger.info("Session %s reset", self.session_id)


class SessionRegistry:
    """In-process map of session id → PlannerSession, used by the HTTP layer."""

    def __init__(self, options: Optional[PlannerOptions] = None):
        self.options = options
        self._sessions: dict[str, PlannerSession] = {}

    def get_or_create(self, session_id: str) -> PlannerSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = PlannerSession(self.options, session_id=session_id)
            self._sessions[session_id] = session
            logger.info("Created session %s", session_id)
        return session

    def get(self, session_id: str) -> Optional[PlannerSession]:
        return self._sessions.get(session_id)

    def drop(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
