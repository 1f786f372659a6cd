"""
modules/tool_usage/distance_tool.py
-------------------------------------
Arithmetic tool: great-circle distance between two geographic coordinates.
Local computation, no external API.

Primary path is geopy's great-circle distance on a 6371 km sphere; the
haversine formula on the same sphere is the fallback, so both agree up to
floating rounding. Invalid coordinates never raise: they yield math.inf
("unreachable"), since distances are only used for ranking.

Results are memoised in a bounded DistanceCache keyed by coordinates rounded
to 6 decimals (~0.11 m). Pass an explicit cache per session; bare
calculate_distance() calls share a process default (clear_distance_cache()).

Scoring always works in kilometres (DistanceTool.calculate_km); the
configured unit only affects DistanceTool.calculate, which is for display.
"""

from __future__ import annotations
import logging
import math
from typing import Any, Optional

from geopy.distance import great_circle

from gapfill import config


logger = logging.getLogger(__name__)

# Earth radius constants
_EARTH_RADIUS_KM = 6371.0
_KM_TO_MILES = 0.621371

Coordinate = tuple[float, float]   # (lat, lng)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Compute great-circle distance between two points using the Haversine formula.

    Args:
        lat1, lon1: Coordinates of point A (decimal degrees).
        lat2, lon2: Coordinates of point B (decimal degrees).

    Returns:
        Distance in kilometres.
    """
    r = _EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    return 2 * r * math.asin(min(1.0, math.sqrt(a)))


def to_coordinate(point: Any) -> Optional[Coordinate]:
    """
    Extract (lat, lng) from a model with lat/lng attributes or a 2-sequence.
    Returns None when the value is malformed or out of range.
    """
    if point is None:
        return None
    if hasattr(point, "lat") and hasattr(point, "lng"):
        lat, lng = point.lat, point.lng
    else:
        try:
            lat, lng = point
        except (TypeError, ValueError):
            return None
    for v in (lat, lng):
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return float(lat), float(lng)


# ─────────────────────────────────────────────────────────────────────────────
# Cache
# ─────────────────────────────────────────────────────────────────────────────

class DistanceCache:
    """
    Bounded memo of directional distances.
    Eviction drops the oldest inserted key once max_size is reached.
    """

    def __init__(self, max_size: int = config.DISTANCE_CACHE_SIZE):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self._store: dict[tuple[float, float, float, float], float] = {}

    @staticmethod
    def make_key(origin: Coordinate, dest: Coordinate) -> tuple[float, float, float, float]:
        return (
            round(origin[0], 6), round(origin[1], 6),
            round(dest[0], 6), round(dest[1], 6),
        )

    def get(self, origin: Coordinate, dest: Coordinate) -> Optional[float]:
        return self._store.get(self.make_key(origin, dest))

    def set(self, origin: Coordinate, dest: Coordinate, distance_km: float) -> None:
        key = self.make_key(origin, dest)
        if key not in self._store and len(self._store) >= self.max_size:
            self._store.pop(next(iter(self._store)), None)
        self._store[key] = distance_km

    def clear(self) -> None:
        self._store.clear()

    def stats(self) -> dict[str, int]:
        return {"size": len(self._store), "max_size": self.max_size}

    def __len__(self) -> int:
        return len(self._store)


# Used by calculate_distance calls that pass no cache.
_default_cache = DistanceCache()


def clear_distance_cache() -> None:
    _default_cache.clear()


# ─────────────────────────────────────────────────────────────────────────────
# Distance
# ─────────────────────────────────────────────────────────────────────────────

def _compute_km(origin: Coordinate, dest: Coordinate) -> float:
    try:
        km = great_circle(origin, dest, radius=_EARTH_RADIUS_KM).km
        if not math.isfinite(km) or km < 0:
            raise ValueError(f"Invalid distance calculated: {km}")
        return km
    except ValueError as exc:
        logger.warning("great_circle failed (%s); using haversine fallback", exc)
        return haversine_km(origin[0], origin[1], dest[0], dest[1])


def calculate_distance(
    origin: Any,
    dest: Any,
    cache: Optional[DistanceCache] = None,
    use_cache: bool = True,
) -> float:
    """
    Distance in kilometres between two coordinates.

    Args:
        origin, dest: objects with lat/lng attributes, or (lat, lng) pairs.
        cache:        session cache; the process default is used when None.
        use_cache:    False bypasses memoisation entirely.

    Returns:
        Kilometres, or math.inf when either coordinate is invalid.
    """
    a = to_coordinate(origin)
    b = to_coordinate(dest)
    if a is None or b is None:
        logger.warning("Invalid coordinates for distance: %r -> %r", origin, dest)
        return math.inf

    store = (cache if cache is not None else _default_cache) if use_cache else None
    if store is not None:
        cached = store.get(a, b)
        if cached is not None:
            return cached

    km = _compute_km(a, b)
    if store is not None:
        store.set(a, b, km)
    return km


class DistanceTool:
    """
    Wraps distance calculation logic.
    Provides a consistent interface matching the Tool-usage Module pattern.
    Each tool owns its cache, so one tool per session keeps sessions isolated.
    """

    def __init__(
        self,
        unit: str = config.DISTANCE_UNIT,
        cache: Optional[DistanceCache] = None,
        use_cache: bool = True,
    ):
        self.unit = unit if unit in ("km", "miles") else "km"
        self.cache = cache if cache is not None else DistanceCache()
        self.use_cache = use_cache

    def calculate_km(self, origin: Any, dest: Any) -> float:
        """Kilometres regardless of self.unit (math.inf when invalid)."""
        return calculate_distance(origin, dest, cache=self.cache, use_cache=self.use_cache)

    def calculate(self, origin: Any, dest: Any) -> float:
        """Distance between two points in self.unit (math.inf when invalid)."""
        km = self.calculate_km(origin, dest)
        if self.unit == "miles":
            return km * _KM_TO_MILES
        return km
