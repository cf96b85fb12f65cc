"""
Program Setup & Enrollment API Endpoints

Program configuration, weekly availability, blackouts, curriculum and
enrollment intake.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from coaching_engine.api.auth import get_current_actor
from coaching_engine.api.dependencies import CoachingServices, get_services
from coaching_engine.api.schemas import (
    AvailabilityRuleOut,
    BlackoutOut,
    DataResponse,
    EnrollmentOut,
    ProgramOut,
    UtcDatetime,
)
from coaching_engine.services.program_service import RuleInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/coaching", tags=["programs"])


class ProgramCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    interaction_type: str = Field(..., description="ONE_ON_ONE or GROUP")
    format: str = Field(..., description="SINGLE_SESSION, FIXED_PACKAGE, SUBSCRIPTION, GROUP_COHORT or GROUP_OPEN")
    timezone: str = "UTC"
    session_duration_minutes: Optional[int] = None
    total_sessions: Optional[int] = None
    max_participants: Optional[int] = None
    buffer_minutes: int = 0
    advance_booking_days: int = 30
    min_notice_hours: int = 24
    curriculum: Optional[List[Dict[str, Any]]] = None
    cancellation_credit_policy: Optional[str] = None


class ProgramUpdateRequest(BaseModel):
    """Only the fields present in the body are changed"""
    title: Optional[str] = None
    timezone: Optional[str] = None
    session_duration_minutes: Optional[int] = None
    total_sessions: Optional[int] = None
    max_participants: Optional[int] = None
    buffer_minutes: Optional[int] = None
    advance_booking_days: Optional[int] = None
    min_notice_hours: Optional[int] = None
    cancellation_credit_policy: Optional[str] = None
    is_active: Optional[bool] = None


class RuleRequest(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday")
    start_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    end_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")


class AvailabilityRequest(BaseModel):
    rules: List[RuleRequest]


class CurriculumRequest(BaseModel):
    curriculum: Optional[List[Dict[str, Any]]] = None


class BlackoutRequest(BaseModel):
    start_date: date
    end_date: date
    program_id: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=500)


class EnrollmentRequest(BaseModel):
    """Sent once the payment collaborator has confirmed the purchase"""
    cohort_id: Optional[str] = None
    payment_ref: Optional[str] = None
    package_expires_at: Optional[UtcDatetime] = None


@router.post("/programs", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def create_program(
    request: ProgramCreateRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Create a program coached by the caller"""
    program = await services.programs.create_program(actor_id, **request.model_dump())
    return DataResponse(data=ProgramOut.model_validate(program))


@router.get("/programs/mine", response_model=DataResponse)
async def list_my_programs(
    include_retired: bool = Query(False),
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Programs coached by the caller"""
    programs = await services.programs.list_programs_for_coach(actor_id, include_retired=include_retired)
    return DataResponse(data=[ProgramOut.model_validate(p) for p in programs], metadata={"count": len(programs)})


@router.get("/programs/{program_id}", response_model=DataResponse)
async def get_program(program_id: str, services: CoachingServices = Depends(get_services)):
    return DataResponse(data=ProgramOut.model_validate(await services.programs.get_program(program_id)))


@router.patch("/programs/{program_id}", response_model=DataResponse)
async def update_program(
    program_id: str,
    request: ProgramUpdateRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    changes = request.model_dump(include=request.model_fields_set)
    program = await services.programs.update_program(actor_id, program_id, **changes)
    return DataResponse(data=ProgramOut.model_validate(program))


@router.delete("/programs/{program_id}", status_code=status.HTTP_204_NO_CONTENT)
async def retire_program(
    program_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Retire a program; enrolled members keep their sessions"""
    await services.programs.retire_program(actor_id, program_id)


@router.put("/programs/{program_id}/curriculum", response_model=DataResponse)
async def update_curriculum(
    program_id: str,
    request: CurriculumRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    program = await services.programs.update_curriculum(actor_id, program_id, request.curriculum)
    return DataResponse(data=ProgramOut.model_validate(program))


@router.put("/programs/{program_id}/availability", response_model=DataResponse)
async def set_availability(
    program_id: str,
    request: AvailabilityRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Replace the program's weekly availability rules"""
    rules = await services.programs.set_availability(
        actor_id,
        program_id,
        [RuleInput(r.day_of_week, r.start_time, r.end_time) for r in request.rules],
    )
    return DataResponse(data=[AvailabilityRuleOut.model_validate(r) for r in rules])


@router.get("/programs/{program_id}/availability", response_model=DataResponse)
async def list_availability(program_id: str, services: CoachingServices = Depends(get_services)):
    rules = await services.programs.list_availability(program_id)
    return DataResponse(data=[AvailabilityRuleOut.model_validate(r) for r in rules])


@router.post("/blackouts", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def add_blackout(
    request: BlackoutRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """
    Block out a date range.

    Without program_id the blackout covers every program the caller coaches.
    """
    blackout = await services.programs.add_blackout(
        actor_id,
        request.start_date,
        request.end_date,
        program_id=request.program_id,
        reason=request.reason,
    )
    return DataResponse(data=BlackoutOut.model_validate(blackout))


@router.delete("/blackouts/{blackout_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blackout(
    blackout_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    await services.programs.delete_blackout(actor_id, blackout_id)


@router.post(
    "/programs/{program_id}/enrollments",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def confirm_enrollment(
    program_id: str,
    request: EnrollmentRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Enroll the caller in a program after payment confirmation"""
    enrollment = await services.enrollments.confirm_enrollment(
        program_id,
        actor_id,
        cohort_id=request.cohort_id,
        payment_ref=request.payment_ref,
        package_expires_at=request.package_expires_at,
    )
    return DataResponse(data=EnrollmentOut.model_validate(enrollment))


@router.get("/programs/{program_id}/enrollments", response_model=DataResponse)
async def list_program_enrollments(
    program_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    enrollments = await services.enrollments.list_enrollments_for_program(actor_id, program_id)
    return DataResponse(data=[EnrollmentOut.model_validate(e) for e in enrollments])


@router.get("/enrollments", response_model=DataResponse)
async def list_my_enrollments(
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    enrollments = await services.enrollments.list_my_enrollments(actor_id)
    return DataResponse(data=[EnrollmentOut.model_validate(e) for e in enrollments])


@router.get("/enrollments/{enrollment_id}", response_model=DataResponse)
async def get_enrollment(
    enrollment_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Enrollment with its remaining credit"""
    enrollment = await services.enrollments.get_enrollment(actor_id, enrollment_id)
    credits = await services.enrollments.get_credit_state(actor_id, enrollment_id)
    return DataResponse(
        data=EnrollmentOut.model_validate(enrollment),
        metadata={"sessions_remaining": credits.remaining, "unlimited": credits.unlimited},
    )
