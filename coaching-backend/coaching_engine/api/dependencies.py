"""Service container shared by the API routers"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from coaching_engine.services.base import Clock
from coaching_engine.services.booking_coordinator import BookingCoordinator
from coaching_engine.services.cohort_manager import CohortManager
from coaching_engine.services.enrollment_service import EnrollmentService
from coaching_engine.services.notifications import NotificationSink
from coaching_engine.services.program_service import ProgramService
from coaching_engine.services.session_lifecycle import SessionLifecycle
from coaching_engine.services.slot_service import SlotService
from coaching_engine.services.submission_workflow import SubmissionWorkflow


@dataclass
class CoachingServices:
    slots: SlotService
    booking: BookingCoordinator
    lifecycle: SessionLifecycle
    cohorts: CohortManager
    submissions: SubmissionWorkflow
    programs: ProgramService
    enrollments: EnrollmentService


def build_services(
    session_factory: Optional[async_sessionmaker] = None,
    notifier: Optional[NotificationSink] = None,
    clock: Optional[Clock] = None,
    feedback_overwrite: Optional[bool] = None,
) -> CoachingServices:
    """Wire every service to the same database, sink and clock"""
    common = {"session_factory": session_factory, "notifier": notifier, "clock": clock}
    return CoachingServices(
        slots=SlotService(**common),
        booking=BookingCoordinator(**common),
        lifecycle=SessionLifecycle(**common),
        cohorts=CohortManager(**common),
        submissions=SubmissionWorkflow(feedback_overwrite=feedback_overwrite, **common),
        programs=ProgramService(**common),
        enrollments=EnrollmentService(**common),
    )


# Global services instance
_services: Optional[CoachingServices] = None


def configure_services(services: CoachingServices) -> None:
    global _services
    _services = services


def get_services() -> CoachingServices:
    """FastAPI dependency: get or create the global service container."""
    global _services
    if _services is None:
        _services = build_services()
    return _services
