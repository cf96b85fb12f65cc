"""
Booking API Endpoints

- POST /api/v1/coaching/enrollments/{enrollment_id}/book
- POST /api/v1/coaching/sessions/{session_id}/register
- DELETE /api/v1/coaching/sessions/{session_id}/register
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from coaching_engine.api.auth import get_current_actor
from coaching_engine.api.dependencies import CoachingServices, get_services
from coaching_engine.api.schemas import AttendeeOut, DataResponse, SessionOut, UtcDatetime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/coaching", tags=["bookings"])


class BookRequest(BaseModel):
    """Request model for reserving a 1:1 slot"""
    starts_at: UtcDatetime = Field(..., description="Slot start as returned by the slots endpoint")
    week_number: Optional[int] = Field(None, ge=1)


@router.post(
    "/enrollments/{enrollment_id}/book",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_slot(
    enrollment_id: str,
    request: BookRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """
    Reserve a slot for an enrollment.

    A slot taken concurrently answers 409 SLOT_UNAVAILABLE with
    retryable=true; the client should refresh slots and pick again.
    """
    result = await services.booking.reserve_slot(
        actor_id, enrollment_id, request.starts_at, week_number=request.week_number
    )
    session = result.unwrap()
    return DataResponse(data=SessionOut.model_validate(session))


@router.post(
    "/sessions/{session_id}/register",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_session(
    session_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Register the caller for a group session"""
    attendee = await services.booking.register_for_session(actor_id, session_id)
    return DataResponse(data=AttendeeOut.model_validate(attendee))


@router.delete("/sessions/{session_id}/register", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_registration(
    session_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Withdraw the caller's registration from a group session"""
    await services.booking.cancel_group_registration(actor_id, session_id)
