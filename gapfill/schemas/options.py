"""
schemas/options.py
------------------
PlannerOptions: every tunable of the engine, overridable as a single unit.

    opts = PlannerOptions.from_config()                       # env/config defaults
    opts = replace(opts, ranking_policy=RankingPolicy.DISTANCE_FIRST)

Two buffers and two minimum thresholds:
  buffer_minutes: gap-local "can it fit with transit" buffer (20)
  anchor_buffer_minutes: offset of a suggested start from gap start (15)
  min_gap_minutes: whole-day "worth reporting as a gap" threshold
  min_slot_minutes: between-items slot threshold (smart suggestions)
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from gapfill import config


class RankingPolicy(str, Enum):
    DURATION_FIRST = "duration_first"   # 0.7 duration + 0.3 proximity
    DISTANCE_FIRST = "distance_first"   # 0.7 proximity + 0.3 duration
    ITINERARY_FIT = "itinerary_fit"     # 0.4 duration + 0.3 proximity + 0.3 time-of-day


@dataclass(frozen=True)
class PlannerOptions:
    buffer_minutes: int = config.GAP_BUFFER_MINUTES
    anchor_buffer_minutes: int = config.ANCHOR_BUFFER_MINUTES
    min_gap_minutes: int = config.MIN_GAP_MINUTES
    min_slot_minutes: int = config.MIN_SLOT_MINUTES
    max_suggestions_per_gap: int = config.MAX_SUGGESTIONS_PER_GAP
    ranking_policy: RankingPolicy = config.RANKING_POLICY
    day_start_hour: int = config.DAY_START_HOUR
    day_end_hour: int = config.DAY_END_HOUR
    enable_cache: bool = config.ENABLE_DISTANCE_CACHE

    def __post_init__(self) -> None:
        # config supplies the policy as a plain string
        object.__setattr__(self, "ranking_policy", RankingPolicy(self.ranking_policy))

        if not 0 <= self.day_start_hour < self.day_end_hour <= 24:
            raise ValueError(
                f"Day window must satisfy 0 <= start < end <= 24, "
                f"got {self.day_start_hour}..{self.day_end_hour}"
            )
        for name in ("buffer_minutes", "anchor_buffer_minutes",
                     "min_gap_minutes", "min_slot_minutes"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.max_suggestions_per_gap < 1:
            raise ValueError(
                f"max_suggestions_per_gap must be >= 1, got {self.max_suggestions_per_gap}"
            )

    @classmethod
    def from_config(cls) -> "PlannerOptions":
        """Options seeded from gapfill.config (the field defaults)."""
        return cls()
