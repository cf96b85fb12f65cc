"""Pydantic response models shared by the coaching routers"""
from datetime import date, datetime, time
from typing import Annotated, Any, Dict, List, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict

from coaching_engine.scheduling.availability import ensure_utc

UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class DataResponse(BaseModel):
    """Standard response wrapper"""
    data: Any
    metadata: Optional[Dict[str, Any]] = None


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SlotOut(BaseModel):
    starts_at: UtcDatetime
    ends_at: UtcDatetime


class ProgramOut(OrmModel):
    id: UUID
    coach_id: str
    title: str
    interaction_type: str
    format: str
    session_duration_minutes: Optional[int] = None
    total_sessions: Optional[int] = None
    max_participants: Optional[int] = None
    timezone: str
    buffer_minutes: int
    advance_booking_days: int
    min_notice_hours: int
    curriculum: Optional[List[Dict[str, Any]]] = None
    cancellation_credit_policy: Optional[str] = None
    is_active: bool


class AvailabilityRuleOut(OrmModel):
    id: UUID
    program_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool


class BlackoutOut(OrmModel):
    id: UUID
    coach_id: str
    program_id: Optional[UUID] = None
    start_date: date
    end_date: date
    reason: Optional[str] = None


class CohortOut(OrmModel):
    id: UUID
    program_id: UUID
    name: str
    start_date: date
    end_date: Optional[date] = None
    max_participants: Optional[int] = None
    enrollment_open: bool
    enrollment_deadline: Optional[UtcDatetime] = None


class EnrollmentOut(OrmModel):
    id: UUID
    program_id: UUID
    user_id: str
    cohort_id: Optional[UUID] = None
    format: str
    status: str
    sessions_included: Optional[int] = None
    sessions_used: int
    package_expires_at: Optional[UtcDatetime] = None


class SessionOut(OrmModel):
    id: UUID
    program_id: UUID
    cohort_id: Optional[UUID] = None
    enrollment_id: Optional[UUID] = None
    starts_at: UtcDatetime
    ends_at: UtcDatetime
    timezone: str
    status: str
    week_number: Optional[int] = None
    original_starts_at: Optional[UtcDatetime] = None
    cancel_reason: Optional[str] = None
    cancelled_at: Optional[UtcDatetime] = None
    notes: Optional[str] = None
    recording_url: Optional[str] = None
    action_items: Optional[List[Any]] = None


class AttendeeOut(OrmModel):
    id: UUID
    session_id: UUID
    enrollment_id: UUID
    user_id: str
    attended: bool


class SubmissionOut(OrmModel):
    id: UUID
    program_id: UUID
    enrollment_id: UUID
    session_id: Optional[UUID] = None
    user_id: str
    week_number: Optional[int] = None
    content: Optional[str] = None
    file_url: Optional[str] = None
    submitted_at: UtcDatetime
    feedback: Optional[str] = None
    feedback_at: Optional[UtcDatetime] = None
    reviewed_by_id: Optional[str] = None


class WeekProgressOut(BaseModel):
    week: Dict[str, Any]
    session: Optional[SessionOut] = None
    submissions: List[SubmissionOut]
    is_completed: bool
    is_current: bool
    has_submission: bool
    has_feedback: bool


class ProgressOut(BaseModel):
    enrollment: EnrollmentOut
    current_week: Optional[int] = None
    weeks: List[WeekProgressOut]
