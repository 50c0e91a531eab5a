import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, status

from checkin.config import Settings, get_settings
from checkin.database import get_db
from checkin.eligibility import (
    evaluate_eligibility,
    evaluate_window_with_settings,
    evaluate_work_progress,
)
from checkin.models import (
    DeviceLocation,
    Eligibility,
    GeoPoint,
    JobSession,
    TrackingWindow,
    WorkProgress,
)
from checkin.scheduler import (
    get_watcher,
    start_watcher,
    stop_all_watchers,
    stop_watcher,
    utc_now,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_clock():
    """Clock used for every evaluation; overridden in tests."""
    return utc_now


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.put("/sessions/{session_id}")
async def put_session(session_id: int, payload: dict[str, Any]) -> JobSession:
    """
    Store the latest backend snapshot of a job session.
    Malformed fields are kept as unknown rather than rejected.
    """
    db = get_db()
    session = JobSession.from_payload(session_id, payload)
    db.sessions.put(session_id, session)
    logger.info("Stored snapshot for session %s", session_id)
    return session


@router.put("/sessions/{session_id}/location")
async def put_session_location(
    session_id: int, location: DeviceLocation
) -> dict[str, Any]:
    """Store the job site location. Unusable coordinates clear it."""
    db = get_db()
    point = GeoPoint.from_raw(location.latitude, location.longitude)
    if point is None:
        db.locations.delete(session_id)
        return {"status": "location_unavailable"}
    db.locations.put(session_id, point)
    return {"status": "stored", "latitude": point.latitude, "longitude": point.longitude}


@router.get("/sessions/{session_id}/tracking-window")
async def get_tracking_window(
    session_id: int,
    settings: Settings = Depends(get_settings),
    clock=Depends(get_clock),
) -> TrackingWindow:
    session = get_db().sessions.get(session_id)
    return evaluate_window_with_settings(session, clock(), settings)


@router.post("/sessions/{session_id}/eligibility")
async def post_eligibility(
    session_id: int,
    device: DeviceLocation,
    settings: Settings = Depends(get_settings),
    clock=Depends(get_clock),
) -> Eligibility:
    """
    Decide whether the doctor can start tracking or check in right now
    from the given device position.
    """
    db = get_db()
    return evaluate_eligibility(
        db.sessions.get(session_id),
        clock(),
        device.model_dump(),
        db.locations.get(session_id),
        settings,
    )


@router.get("/sessions/{session_id}/progress")
async def get_work_progress(
    session_id: int,
    settings: Settings = Depends(get_settings),
    clock=Depends(get_clock),
) -> WorkProgress:
    session = get_db().sessions.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        )
    progress = evaluate_work_progress(
        session,
        clock(),
        duration_hours=settings.work_duration_hours,
        utc_offset_minutes=settings.utc_offset_minutes,
    )
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} has not been checked in",
        )
    return progress


@router.post("/sessions/{session_id}/watch")
async def watch_session(
    session_id: int,
    settings: Settings = Depends(get_settings),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    """Start periodic re-evaluation of a session. Idempotent."""
    if get_db().sessions.get(session_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        )

    existing = get_watcher(session_id)
    if existing is not None and existing.running:
        return {"status": "already_watching", "interval_seconds": existing.interval_seconds}

    watcher = start_watcher(session_id, settings=settings, clock=clock)
    return {"status": "watching", "interval_seconds": watcher.interval_seconds}


@router.get("/sessions/{session_id}/watch")
async def get_watched_window(session_id: int) -> TrackingWindow:
    window = get_db().windows.get(session_id)
    if window is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No evaluation recorded for session {session_id}",
        )
    return window


@router.delete("/sessions/{session_id}/watch")
async def unwatch_session(session_id: int) -> dict[str, str]:
    if not await stop_watcher(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} is not being watched",
        )
    return {"status": "stopped"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await stop_all_watchers()


def create_app() -> FastAPI:
    logging.basicConfig(level=get_settings().log_level)
    app = FastAPI(title="Check-in eligibility", lifespan=lifespan)
    app.include_router(router)
    return app
