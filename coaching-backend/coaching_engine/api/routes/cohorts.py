"""
Cohort API Endpoints

Cohorts of GROUP_COHORT programs and the group sessions a coach schedules
for cohorts and GROUP_OPEN programs.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from coaching_engine.api.auth import get_current_actor
from coaching_engine.api.dependencies import CoachingServices, get_services
from coaching_engine.api.schemas import CohortOut, DataResponse, SessionOut, UtcDatetime

router = APIRouter(prefix="/api/v1/coaching", tags=["cohorts"])


class CohortCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    start_date: date
    end_date: Optional[date] = None
    max_participants: Optional[int] = Field(None, gt=0)
    enrollment_open: bool = True
    enrollment_deadline: Optional[UtcDatetime] = None


class CohortUpdateRequest(BaseModel):
    """Fields left out of the request body are not changed"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    end_date: Optional[date] = None
    max_participants: Optional[int] = Field(None, gt=0)
    enrollment_open: Optional[bool] = None


class GroupSessionRequest(BaseModel):
    starts_at: UtcDatetime
    week_number: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None


@router.post(
    "/programs/{program_id}/cohorts",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_cohort(
    program_id: str,
    request: CohortCreateRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    cohort = await services.cohorts.create_cohort(actor_id, program_id, **request.model_dump())
    return DataResponse(data=CohortOut.model_validate(cohort))


@router.get("/programs/{program_id}/cohorts", response_model=DataResponse)
async def list_cohorts(program_id: str, services: CoachingServices = Depends(get_services)):
    cohorts = await services.cohorts.list_cohorts(program_id)
    return DataResponse(data=[CohortOut.model_validate(c) for c in cohorts])


@router.patch("/cohorts/{cohort_id}", response_model=DataResponse)
async def update_cohort(
    cohort_id: str,
    request: CohortUpdateRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    changes = request.model_dump(include=request.model_fields_set)
    cohort = await services.cohorts.update_cohort(actor_id, cohort_id, **changes)
    return DataResponse(data=CohortOut.model_validate(cohort))


@router.delete("/cohorts/{cohort_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cohort(
    cohort_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    await services.cohorts.delete_cohort(actor_id, cohort_id)


@router.post(
    "/cohorts/{cohort_id}/sessions",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_group_session(
    cohort_id: str,
    request: GroupSessionRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Schedule a session for every member of a cohort"""
    session = await services.cohorts.add_group_session(actor_id, cohort_id, **request.model_dump())
    return DataResponse(data=SessionOut.model_validate(session))


@router.post(
    "/programs/{program_id}/sessions",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_open_session(
    program_id: str,
    request: GroupSessionRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Schedule a drop-in session for a GROUP_OPEN program"""
    session = await services.cohorts.add_open_session(actor_id, program_id, **request.model_dump())
    return DataResponse(data=SessionOut.model_validate(session))
