"""
modules/optimization/blending.py
----------------------------------
Weighted combination of the three fit axes.

    score = Σ_v W_v × s_v        with Σ W_v = 1,  s_v ∈ [0, 100]

Axis order everywhere: (duration, proximity, time_of_day).

Weight table per RankingPolicy:
    DURATION_FIRST : 0.7 / 0.3 / 0.0   best fit inside one gap (default)
    DISTANCE_FIRST : 0.3 / 0.7 / 0.0   callers minimising travel
    ITINERARY_FIT  : 0.4 / 0.3 / 0.3   whole-itinerary fit
"""

from __future__ import annotations

from gapfill.schemas.options import RankingPolicy


AxisWeights = tuple[float, float, float]

RANKING_WEIGHTS: dict[RankingPolicy, AxisWeights] = {
    RankingPolicy.DURATION_FIRST: (0.7, 0.3, 0.0),
    RankingPolicy.DISTANCE_FIRST: (0.3, 0.7, 0.0),
    RankingPolicy.ITINERARY_FIT:  (0.4, 0.3, 0.3),
}


def weights_for(policy: RankingPolicy) -> AxisWeights:
    return RANKING_WEIGHTS[RankingPolicy(policy)]


def blend(values: list[float], weights: list[float] | AxisWeights) -> float:
    """
    Weighted sum of axis scores.

    Raises:
        ValueError: If lengths differ or weights do not sum to ~1.0.
    """
    if len(values) != len(weights):
        raise ValueError(
            f"values length ({len(values)}) must equal weights length ({len(weights)})"
        )
    weight_sum = sum(weights)
    if abs(weight_sum - 1.0) > 1e-4:
        raise ValueError(f"Weights must sum to 1.0, got {weight_sum:.6f}: {list(weights)}")
    return sum(w * v for w, v in zip(weights, values))
