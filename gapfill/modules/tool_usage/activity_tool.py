"""
modules/tool_usage/activity_tool.py
-------------------------------------
Fetches the candidate activity pool from the recommendation webhook.

The webhook is an external AI planning service. It answers either with the
"stations" shape

    {"output": {"location": "...", "stations": [
        {"type": "attraction", "title": ..., "description": ...,
         "coordinates": [lat, lng], "start": 10.0, "end": 12.5, "image": ...}]}}

(or a list of such objects), or with a flat activity list, bare or under one
of the keys activities / data / recommendations / results. Records missing a
title or description are dropped with a WARNING. Coordinates are NOT
range-checked here: the distance tool degrades bad ones to "unreachable".

When RECOMMENDATION_WEBHOOK_URL is "UNSPECIFIED" a built-in stub pool is
returned instead.
"""

from __future__ import annotations
import logging
import uuid
from typing import Any, Optional

import requests
from pydantic import ValidationError

from gapfill import config
from gapfill.schemas.activity import CandidateActivity, GeoPoint


logger = logging.getLogger(__name__)

_STATION_TYPES = ("attraction", "restaurant")
_LIST_KEYS = ("activities", "data", "recommendations", "results")
_PLACEHOLDER_IMAGE = "/assets/placeholder.jpg"


def _stub_pool() -> list[CandidateActivity]:
    rows = [
        ("1", "Hidden City Food Tour",
         "Explore local markets and hidden eateries with a local guide.",
         48.8566, 2.3522, "3 hours", "€45", 45.0, "foodie"),
        ("2", "Street Art Cycling Ride",
         "Bike through vibrant neighbourhoods to see murals and street art.",
         48.8666, 2.3300, "2.5 hours", "€35", 35.0, "active"),
        ("3", "Rooftop Wine Tasting",
         "Sample local wines on a rooftop terrace with city views.",
         48.8606, 2.3376, "2 hours", "€55", 55.0, "nightlife"),
        ("4", "Artisan Workshop Visit",
         "Meet local craftspeople and try traditional techniques.",
         48.8534, 2.3488, "2 hours", "€40", 40.0, "cultural"),
        ("5", "Jazz Club Evening",
         "Authentic jazz in an intimate underground club. Includes a welcome drink.",
         48.8584, 2.3470, "3 hours", "€30", 30.0, "nightlife"),
        ("6", "Historic Walking Tour",
         "Hidden courtyards and secret passages with a local historian.",
         48.8530, 2.3499, "2.5 hours", "€25", 25.0, "cultural"),
        ("7", "Morning Market Breakfast",
         "Coffee and pastries among the stalls of a covered morning market.",
         48.8625, 2.3622, "45 minutes", "€15", 15.0, "foodie"),
    ]
    return [
        CandidateActivity(
            id=aid, title=title, description=desc,
            location=GeoPoint(lat=lat, lng=lng),
            duration=duration, price=price, price_amount=amount, category=category,
        )
        for aid, title, desc, lat, lng, duration, price, amount, category in rows
    ]


class ActivityTool:
    """
    Wraps the recommendation webhook.
    One POST per fetch; the caller decides how often to refresh the pool.
    """

    def __init__(
        self,
        webhook_url: str = config.RECOMMENDATION_WEBHOOK_URL,
        timeout_s: int = config.WEBHOOK_TIMEOUT_S,
        user: str = config.WEBHOOK_USER,
        password: str = config.WEBHOOK_PASSWORD,
    ):
        self.webhook_url = webhook_url
        self.timeout_s = timeout_s
        self.auth = (user, password) if user and password else None

    def fetch(self, location: str, preferences: Optional[list[str]] = None) -> list[CandidateActivity]:
        """
        Fetch candidate activities for a destination.

        Args:
            location:    free-text destination or user query.
            preferences: favourite activity titles used to personalise results.

        Returns:
            Parsed candidates; malformed records are skipped.

        Raises:
            requests.HTTPError / requests.RequestException: on transport failure.
        """
        if self.webhook_url == "UNSPECIFIED":
            logger.info("Recommendation webhook not configured; returning stub pool")
            return _stub_pool()

        chat_input = location
        if preferences:
            chat_input += (
                f". The user's favourite activities are: {', '.join(preferences)}. "
                "Use these preferences to personalise the recommendations."
            )
        body = {"chatInput": chat_input, "sessionID": uuid.uuid4().hex}

        response = requests.post(self.webhook_url, json=body, auth=self.auth, timeout=self.timeout_s)
        response.raise_for_status()
        activities = self.parse_response(response.json())
        logger.info("Fetched %d candidate activities for %r", len(activities), location)
        return activities

    # ── Parsing ───────────────────────────────────────────────────────────────

    @classmethod
    def parse_response(cls, payload: Any) -> list[CandidateActivity]:
        """Normalise either response shape into CandidateActivity objects."""
        envelopes = payload if isinstance(payload, list) else [payload]
        stations = [
            station
            for env in envelopes
            if isinstance(env, dict) and isinstance(env.get("output"), dict)
            for station in (env["output"].get("stations") or [])
        ]
        if stations:
            parsed = [cls._parse_station(s, idx) for idx, s in enumerate(stations)]
        else:
            parsed = [cls._parse_record(r, idx) for idx, r in enumerate(cls._flat_records(payload))]
        return [p for p in parsed if p is not None]

    @staticmethod
    def _flat_records(payload: Any) -> list[Any]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in _LIST_KEYS:
                if isinstance(payload.get(key), list):
                    return payload[key]
        logger.warning("Unexpected webhook response format: %.200r", payload)
        return []

    @staticmethod
    def _image(raw: Any) -> str:
        if isinstance(raw, str) and raw.strip().startswith(("http://", "https://")):
            return raw.strip()
        return _PLACEHOLDER_IMAGE

    @classmethod
    def _parse_station(cls, station: Any, index: int) -> Optional[CandidateActivity]:
        if not isinstance(station, dict) or station.get("type") not in _STATION_TYPES:
            return None
        if not station.get("title") or not station.get("description"):
            logger.warning("Skipping station with missing title or description: %.200r", station)
            return None

        coords = station.get("coordinates")
        lat, lng = (coords[0], coords[1]) if isinstance(coords, list) and len(coords) >= 2 else (0.0, 0.0)

        duration: Optional[str] = None
        try:
            hours = float(station["end"]) - float(station["start"])
            minutes = round(hours * 60)
            duration = f"{minutes} minutes" if minutes < 60 else f"{hours:.1f} hours"
        except (KeyError, TypeError, ValueError):
            pass   # parse_duration falls back to its default

        return cls._build(
            station, index,
            id=station.get("id") or f"station-{index}",
            title=station["title"],
            description=station["description"],
            location={"lat": lat, "lng": lng, "name": station.get("title", "")},
            duration=duration,
            image=cls._image(station.get("image")),
            category=station.get("type"),
        )

    @classmethod
    def _parse_record(cls, item: Any, index: int) -> Optional[CandidateActivity]:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object activity record: %.200r", item)
            return None
        if not item.get("title") or not item.get("description"):
            logger.warning("Skipping activity with missing title or description: %.200r", item)
            return None

        loc = item.get("location") if isinstance(item.get("location"), dict) else {}
        return cls._build(
            item, index,
            id=item.get("id") or f"activity-{index}",
            title=item["title"],
            description=item["description"],
            location={
                "lat": loc.get("lat", item.get("locationLat", 0.0)),
                "lng": loc.get("lng", item.get("locationLng", 0.0)),
            },
            duration=item.get("duration") or "1-2 hours",
            price=item.get("price") or "$$",
            image=cls._image(item.get("image")),
            category=item.get("category"),
        )

    @staticmethod
    def _build(raw: Any, index: int, **fields: Any) -> Optional[CandidateActivity]:
        try:
            return CandidateActivity(**fields)
        except ValidationError as exc:
            logger.warning("Skipping malformed activity #%d (%s): %.200r", index, exc.errors()[0]["msg"], raw)
            return None
