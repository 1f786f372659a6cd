"""
modules/tool_usage/duration_tool.py
-------------------------------------
Arithmetic tool: turns free-text activity durations into whole minutes.

Supported:
  "2 hours", "1.5 hours", "3h"      → hour token
  "45 minutes", "30 min", "20m"     → minute token
  "1h 30m", "2h 15min"              → both tokens, summed
  "2", "1.25"                       → bare number read as hours
Anything else (None, "", "abc") falls back to DEFAULT_DURATION_MINUTES.

parse_duration is total: it never raises and always returns a positive int.
"""

from __future__ import annotations
import math
import re
from typing import Any


DEFAULT_DURATION_MINUTES: int = 120

_HOUR_RE = re.compile(r"(\d+(?:\.\d+)?)\s*h(?:ours?)?")
_MINUTE_RE = re.compile(r"(\d+)\s*m(?:in(?:utes?)?)?")
_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")


def _parse_minutes(text: Any) -> int:
    """Minutes read from text, or 0 when nothing usable is found."""
    if not isinstance(text, str):
        return 0
    normalized = text.lower().strip()
    if not normalized:
        return 0

    total = 0.0
    hour_match = _HOUR_RE.search(normalized)
    minute_match = _MINUTE_RE.search(normalized)
    try:
        if hour_match:
            total += float(hour_match.group(1)) * 60
        if minute_match:
            total += int(minute_match.group(1))

        if total == 0:
            number_match = _NUMBER_RE.search(normalized)
            if number_match:
                total = float(number_match.group(1)) * 60   # assume hours
    except (ValueError, OverflowError):
        # oversized digit runs
        return 0

    if not math.isfinite(total):
        return 0
    return max(0, int(round(total)))


def parse_duration(text: Any) -> int:
    return _parse_minutes(text) or DEFAULT_DURATION_MINUTES


def is_parseable(text: Any) -> bool:
    """True when parse_duration would not fall back to the default."""
    return _parse_minutes(text) > 0


def format_duration(minutes: float) -> str:
    """45 → "45min", 120 → "2h", 90 → "1h 30min"."""
    total = round(minutes)
    if total < 60:
        return f"{total}min"
    hours, remaining = divmod(total, 60)
    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h {remaining}min"
