"""
Session Lifecycle API Endpoints

Cancel, reschedule and complete sessions, record notes and attendance, and
read the caller's calendar.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from coaching_engine.api.auth import get_current_actor
from coaching_engine.api.dependencies import CoachingServices, get_services
from coaching_engine.api.schemas import DataResponse, SessionOut, UtcDatetime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/coaching", tags=["sessions"])


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RescheduleRequest(BaseModel):
    new_starts_at: UtcDatetime


class NotesRequest(BaseModel):
    notes: Optional[str] = None
    recording_url: Optional[str] = Field(None, max_length=1000)
    action_items: Optional[List[Any]] = None


class AttendanceEntry(BaseModel):
    user_id: str
    attended: bool


class AttendanceRequest(BaseModel):
    attendance: List[AttendanceEntry]


def _session_data(session) -> DataResponse:
    return DataResponse(data=SessionOut.model_validate(session))


@router.get("/sessions/upcoming", response_model=DataResponse)
async def get_upcoming_sessions(
    limit: int = Query(20, ge=1, le=100),
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Future scheduled sessions the caller coaches, owns or attends"""
    sessions = await services.lifecycle.get_upcoming_sessions(actor_id, limit=limit)
    return DataResponse(data=[SessionOut.model_validate(s) for s in sessions])


@router.get("/calendar", response_model=DataResponse)
async def get_calendar(
    start: UtcDatetime = Query(..., alias="from"),
    end: UtcDatetime = Query(..., alias="to"),
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Sessions of the caller's programs that start within [from, to)"""
    sessions = await services.lifecycle.get_calendar(actor_id, start, end)
    return DataResponse(
        data=[SessionOut.model_validate(s) for s in sessions],
        metadata={"from": start.isoformat(), "to": end.isoformat(), "count": len(sessions)},
    )


@router.get("/sessions/{session_id}", response_model=DataResponse)
async def get_session(
    session_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    return _session_data(await services.lifecycle.get_session_for(actor_id, session_id))


@router.post("/sessions/{session_id}/cancel", response_model=DataResponse)
async def cancel_session(
    session_id: str,
    request: Optional[CancelRequest] = None,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """
    Cancel a scheduled session.

    Cancelling an already cancelled or completed session answers 400
    INVALID_SESSION_STATE.
    """
    reason = request.reason if request is not None else None
    return _session_data(await services.lifecycle.cancel_session(actor_id, session_id, reason=reason))


@router.post("/sessions/{session_id}/reschedule", response_model=DataResponse)
async def reschedule_session(
    session_id: str,
    request: RescheduleRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Move a scheduled session; the first original start is kept"""
    session = await services.lifecycle.reschedule_session(actor_id, session_id, request.new_starts_at)
    return _session_data(session)


@router.post("/sessions/{session_id}/complete", response_model=DataResponse)
async def complete_session(
    session_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    return _session_data(await services.lifecycle.complete_session(actor_id, session_id))


@router.patch("/sessions/{session_id}/notes", response_model=DataResponse)
async def add_session_notes(
    session_id: str,
    request: NotesRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Record notes, a recording link and action items (coach only)"""
    session = await services.lifecycle.add_session_notes(
        actor_id,
        session_id,
        notes=request.notes,
        recording_url=request.recording_url,
        action_items=request.action_items,
    )
    return _session_data(session)


@router.patch("/sessions/{session_id}/attendance", response_model=DataResponse)
async def mark_attendance(
    session_id: str,
    request: AttendanceRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    updated = await services.lifecycle.mark_attendance(
        actor_id, session_id, [(entry.user_id, entry.attended) for entry in request.attendance]
    )
    return DataResponse(data={"updated": updated})
