"""
HTTP surface for the planner. Thin: every route resolves a PlannerSession
from the in-process registry and delegates to it. Only adding and importing
items create a session; every other session route answers 404 for an
unknown id.

All routes run on the event loop, so a session is only ever touched by one
thread. The webhook fetch is the one blocking call and goes to the
threadpool on its own.

Run:  python -m gapfill.server      (or: uvicorn gapfill.server:app)
"""

from __future__ import annotations
import logging
import datetime as dt
import math
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from gapfill import __version__, config
from gapfill.modules.itinerary.commands import CommandResult
from gapfill.modules.session import PlannerSession, SessionRegistry
from gapfill.modules.tool_usage.activity_tool import ActivityTool
from gapfill.schemas.activity import CandidateActivity
from gapfill.schemas.gaps import FitResult, GapFillingResult, TimeGap
from gapfill.schemas.itinerary import RejectionReason
from gapfill.schemas.options import RankingPolicy


logger = logging.getLogger(__name__)

_REJECTION_STATUS = {
    RejectionReason.OVERLAP: 409,
    RejectionReason.DUPLICATE: 409,
    RejectionReason.IMMUTABLE: 403,
    RejectionReason.NOT_FOUND: 404,
}


class ItemRequest(BaseModel):
    item: Dict[str, Any]


class ImportRequest(BaseModel):
    events: List[Dict[str, Any]]


class GapsRequest(BaseModel):
    date: dt.date


class SuggestionsRequest(BaseModel):
    date: dt.date
    candidates: Optional[List[CandidateActivity]] = None
    location: Optional[str] = None            # fetch the pool from the webhook first
    preferences: List[str] = []
    policy: Optional[RankingPolicy] = None
    mode: str = "gaps"                        # "gaps" | "smart"


# ── Serialisation ─────────────────────────────────────────────────────────────

def _km(value: Optional[float]) -> Optional[float]:
    return value if value is not None and math.isfinite(value) else None


def _gap_json(gap: TimeGap) -> dict:
    return {
        "id": gap.id,
        "start": gap.start.isoformat(),
        "end": gap.end.isoformat(),
        "duration_minutes": gap.duration_minutes,
        "optimal_duration_minutes": gap.optimal_duration_minutes,
        "context": gap.context.value,
        "preceding_id": gap.preceding.id if gap.preceding else None,
        "following_id": gap.following.id if gap.following else None,
        "is_start_of_day": gap.is_start_of_day,
        "is_end_of_day": gap.is_end_of_day,
    }


def _fit_json(fit: FitResult) -> dict:
    return {
        "activity": fit.candidate.model_dump(mode="json"),
        "score": fit.score,
        "duration_fit": fit.duration_fit.value,
        "duration_score": fit.duration_score,
        "proximity_score": fit.proximity_score,
        "time_of_day_score": fit.time_of_day_score,
        "utilization": fit.utilization,
        "confidence": fit.confidence,
        "suggested_start": fit.suggested_start.isoformat(),
        "suggested_end": fit.suggested_end.isoformat(),
        "distance_to_previous": _km(fit.distance_to_previous),
        "distance_to_next": _km(fit.distance_to_next),
    }


def _result_json(result: GapFillingResult) -> dict:
    return {
        "gap": _gap_json(result.gap),
        "suggestions": [_fit_json(s) for s in result.suggestions],
        "confidence": result.confidence,
        "processing_time_ms": result.processing_time_ms,
        "total_activities_analyzed": result.total_activities_analyzed,
    }


def _command_response(result: CommandResult) -> dict:
    if not result.success:
        status = _REJECTION_STATUS.get(result.reason, 400) if result.reason else 400
        raise HTTPException(status_code=status, detail=result.error)
    body: dict[str, Any] = {"success": True}
    if result.item is not None:
        body["item"] = result.item.model_dump(mode="json")
    if result.imported_count:
        body["imported_count"] = result.imported_count
    if result.errors:
        body["errors"] = result.errors
    return body


# ── App ───────────────────────────────────────────────────────────────────────

def create_app(registry: Optional[SessionRegistry] = None) -> FastAPI:
    registry = registry or SessionRegistry()
    app = FastAPI(title="Gap-filling Planner API", version=__version__)
    app.state.registry = registry

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {"msg": "Invalid request"}
        return JSONResponse(status_code=422, content={"error": first.get("msg", "Invalid request")})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/")
    async def root():
        return {"message": "Gap-filling planner is running", "sessions": len(registry)}

    @app.get("/sessions/{session_id}/itinerary")
    async def get_itinerary(session_id: str):
        session = _existing(registry, session_id)
        return {
            "session_id": session_id,
            "items": [i.model_dump(mode="json") for i in session.timeline.items],
        }

    @app.post("/sessions/{session_id}/itinerary/items")
    async def add_item(session_id: str, request: ItemRequest):
        return _command_response(registry.get_or_create(session_id).add(request.item))

    @app.delete("/sessions/{session_id}/itinerary/items/{item_id}")
    async def remove_item(session_id: str, item_id: str):
        return _command_response(_existing(registry, session_id).remove(item_id))

    @app.post("/sessions/{session_id}/itinerary/import")
    async def import_events(session_id: str, request: ImportRequest):
        if not request.events:
            raise HTTPException(status_code=400, detail="No events to import")
        return _command_response(registry.get_or_create(session_id).import_calendar(request.events))

    @app.post("/sessions/{session_id}/gaps")
    async def list_gaps(session_id: str, request: GapsRequest):
        gaps = _existing(registry, session_id).gaps(request.date)
        return {"date": request.date.isoformat(), "gaps": [_gap_json(g) for g in gaps]}

    @app.post("/sessions/{session_id}/suggestions")
    async def suggestions(session_id: str, request: SuggestionsRequest):
        session = _existing(registry, session_id)
        if request.location:
            # only the blocking webhook call leaves the event loop; sessions stay single-threaded
            session.candidates = await run_in_threadpool(
                ActivityTool().fetch, request.location, request.preferences,
            )
        candidates = request.candidates

        if request.mode == "smart":
            found = session.smart_suggestions(candidates)
            return {"suggestions": [
                {
                    "activity": s.activity.model_dump(mode="json"),
                    "slot_start": s.slot.start.isoformat(),
                    "slot_end": s.slot.end.isoformat(),
                    "distance_to_closest": _km(s.distance_to_closest),
                    "closest": s.closest,
                    "suggested_start": s.suggested_start.isoformat(),
                    "suggested_end": s.suggested_end.isoformat(),
                }
                for s in found
            ]}
        if request.mode != "gaps":
            raise HTTPException(status_code=400, detail=f"Unknown mode: {request.mode}")

        results = session.suggest(request.date, candidates, request.policy)
        return {
            "date": request.date.isoformat(),
            "results": [_result_json(r) for r in results.values()],
        }

    @app.delete("/sessions/{session_id}")
    async def clear_session(session_id: str):
        session = registry.get(session_id)
        if session is not None:
            session.reset()
            registry.drop(session_id)
        return {"success": True, "cleared": session is not None}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    config.configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
