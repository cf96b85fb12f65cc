"""
Submission & Progress API Endpoints

- POST /api/v1/coaching/enrollments/{enrollment_id}/submit
- PATCH /api/v1/coaching/submissions/{submission_id}/review
- GET /api/v1/coaching/enrollments/{enrollment_id}/submissions
- GET /api/v1/coaching/programs/{program_id}/submissions
- GET /api/v1/coaching/enrollments/{enrollment_id}/progress
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from coaching_engine.api.auth import get_current_actor
from coaching_engine.api.dependencies import CoachingServices, get_services
from coaching_engine.api.schemas import (
    DataResponse,
    EnrollmentOut,
    ProgressOut,
    SessionOut,
    SubmissionOut,
    WeekProgressOut,
)

router = APIRouter(prefix="/api/v1/coaching", tags=["submissions"])


class SubmitRequest(BaseModel):
    week_number: Optional[int] = Field(None, ge=1)
    session_id: Optional[str] = None
    content: Optional[str] = None
    file_url: Optional[str] = Field(None, max_length=1000)


class ReviewRequest(BaseModel):
    feedback: str = Field(..., min_length=1)


@router.post(
    "/enrollments/{enrollment_id}/submit",
    response_model=DataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_work(
    enrollment_id: str,
    request: SubmitRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Submit a deliverable (enrollment owner only)"""
    submission = await services.submissions.submit_work(actor_id, enrollment_id, **request.model_dump())
    return DataResponse(data=SubmissionOut.model_validate(submission))


@router.patch("/submissions/{submission_id}/review", response_model=DataResponse)
async def review_work(
    submission_id: str,
    request: ReviewRequest,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """Record coach feedback on a submission"""
    submission = await services.submissions.review_work(actor_id, submission_id, request.feedback)
    return DataResponse(data=SubmissionOut.model_validate(submission))


@router.get("/enrollments/{enrollment_id}/submissions", response_model=DataResponse)
async def list_enrollment_submissions(
    enrollment_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    submissions = await services.submissions.list_submissions_for_enrollment(actor_id, enrollment_id)
    return DataResponse(data=[SubmissionOut.model_validate(s) for s in submissions])


@router.get("/programs/{program_id}/submissions", response_model=DataResponse)
async def list_program_submissions(
    program_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    submissions = await services.submissions.list_submissions_for_program(actor_id, program_id)
    return DataResponse(data=[SubmissionOut.model_validate(s) for s in submissions])


@router.get("/enrollments/{enrollment_id}/progress", response_model=DataResponse)
async def get_enrollment_progress(
    enrollment_id: str,
    actor_id: str = Depends(get_current_actor),
    services: CoachingServices = Depends(get_services),
):
    """
    Week-by-week curriculum progress.

    Progress is derived from sessions and submissions on every request.
    """
    progress = await services.submissions.get_enrollment_progress(actor_id, enrollment_id)
    weeks = [
        WeekProgressOut(
            week=item.week.to_dict(),
            session=SessionOut.model_validate(item.session) if item.session is not None else None,
            submissions=[SubmissionOut.model_validate(s) for s in item.submissions],
            is_completed=item.is_completed,
            is_current=item.is_current,
            has_submission=item.has_submission,
            has_feedback=item.has_feedback,
        )
        for item in progress.weeks
    ]
    return DataResponse(
        data=ProgressOut(
            enrollment=EnrollmentOut.model_validate(progress.enrollment),
            current_week=progress.current_week,
            weeks=weeks,
        )
    )
