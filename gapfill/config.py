"""
config.py
---------
Central configuration for the gap-filling engine.
Every value is read from the environment once, at import time, with a fixed
default. Engine call sites never read these directly: they receive a
PlannerOptions bundle (schemas/options.py) built from them.
"""

import logging
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# ── Gap detection ─────────────────────────────────────────────────────────────
# Whole-day window in local hours; gaps are reported only inside it.
DAY_START_HOUR: int = int(os.getenv("DAY_START_HOUR", "8"))
DAY_END_HOUR: int   = int(os.getenv("DAY_END_HOUR", "22"))

# "Is this worth reporting as a gap at all" threshold (whole-day detector).
MIN_GAP_MINUTES: int  = int(os.getenv("MIN_GAP_MINUTES", "30"))
# Threshold for between-item slots used by the smart-suggestions path.
MIN_SLOT_MINUTES: int = int(os.getenv("MIN_SLOT_MINUTES", "30"))

# ── Buffers [minutes] ─────────────────────────────────────────────────────────
# Gap-local transit buffer: subtracted from a gap before anything may fit in it.
GAP_BUFFER_MINUTES: int    = int(os.getenv("GAP_BUFFER_MINUTES", "20"))
# Offset from gap start at which a suggestion is anchored.
ANCHOR_BUFFER_MINUTES: int = int(os.getenv("ANCHOR_BUFFER_MINUTES", "15"))

# ── Ranking ───────────────────────────────────────────────────────────────────
# Options: "duration_first" | "distance_first" | "itinerary_fit"
RANKING_POLICY: str          = os.getenv("RANKING_POLICY", "duration_first")
MAX_SUGGESTIONS_PER_GAP: int = int(os.getenv("MAX_SUGGESTIONS_PER_GAP", "3"))

# ── Distance cache ────────────────────────────────────────────────────────────
ENABLE_DISTANCE_CACHE: bool = _env_bool("ENABLE_DISTANCE_CACHE", "true")
DISTANCE_CACHE_SIZE: int    = int(os.getenv("DISTANCE_CACHE_SIZE", "1000"))
DISTANCE_UNIT: str          = os.getenv("DISTANCE_UNIT", "km")   # "km" | "miles"; display only, scoring is km

# ── Recommendation webhook ────────────────────────────────────────────────────
# "UNSPECIFIED" makes ActivityTool serve its built-in stub dataset.
RECOMMENDATION_WEBHOOK_URL: str = os.getenv("RECOMMENDATION_WEBHOOK_URL", "UNSPECIFIED")
WEBHOOK_TIMEOUT_S: int          = int(os.getenv("WEBHOOK_TIMEOUT_S", "30"))
# Optional HTTP basic auth for the webhook; both must be set to be used.
WEBHOOK_USER: str     = os.getenv("WEBHOOK_USER", "")
WEBHOOK_PASSWORD: str = os.getenv("WEBHOOK_PASSWORD", "")

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Install a root handler. Called by entry points only, never by library code."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
