"""
Submission Workflow

Members hand in work for a curriculum week or a session; the coach answers
with feedback. Also serves the per-enrollment curriculum progress view.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy import select

from coaching_engine.config import get_settings
from coaching_engine.errors import Conflict, Unauthorized, ValidationError
from coaching_engine.models import Enrollment, Program, Session, SessionAttendee, Submission
from coaching_engine.scheduling.curriculum import WeekProgress, current_week, find_week, parse_curriculum, week_progress
from coaching_engine.services import notifications
from coaching_engine.services.base import (
    CoachingService,
    get_enrollment,
    get_program,
    get_session,
    get_submission,
    require_coach,
    require_owner_or_coach,
)

logger = logging.getLogger(__name__)


async def ensure_participant(db, session: Session, enrollment: Enrollment) -> None:
    """
    Raises:
        ValidationError: The enrollment does not take part in the session
    """
    if session.program_id != enrollment.program_id:
        raise ValidationError("Session belongs to another program")
    if session.enrollment_id is not None:
        taking_part = session.enrollment_id == enrollment.id
    elif session.cohort_id is not None:
        taking_part = session.cohort_id == enrollment.cohort_id
    else:
        registered = await db.execute(
            select(SessionAttendee.id).where(
                SessionAttendee.session_id == session.id,
                SessionAttendee.enrollment_id == enrollment.id,
            )
        )
        taking_part = registered.first() is not None
    if not taking_part:
        raise ValidationError(
            "Enrollment does not take part in this session",
            details={"session_id": str(session.id), "enrollment_id": str(enrollment.id)},
        )


@dataclass
class EnrollmentProgress:
    enrollment: Enrollment
    current_week: Optional[int]
    weeks: List[WeekProgress]


class SubmissionWorkflow(CoachingService):
    """Deliverable submission and review"""

    def __init__(self, *args, feedback_overwrite: Optional[bool] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.feedback_overwrite = (
            get_settings().feedback_overwrite if feedback_overwrite is None else feedback_overwrite
        )

    async def submit_work(
        self,
        actor_id: str,
        enrollment_id: Any,
        week_number: Optional[int] = None,
        session_id: Optional[Any] = None,
        content: Optional[str] = None,
        file_url: Optional[str] = None,
    ) -> Submission:
        """
        Submit work for a week or a session (enrollment owner only).

        Several submissions for the same week are allowed.

        Raises:
            ValidationError: Neither week nor session, no content or file,
                unknown week, or a session the enrollment does not take part in
            NotFound, Unauthorized
        """
        if week_number is None and session_id is None:
            raise ValidationError("A submission needs a week_number or a session_id")
        if not (content and content.strip()) and not file_url:
            raise ValidationError("A submission needs content or a file_url")

        async with self.session_factory() as db:
            async with db.begin():
                enrollment = await get_enrollment(db, enrollment_id)
                if actor_id != enrollment.user_id:
                    raise Unauthorized(
                        "Only the enrolled member can submit work",
                        details={"enrollment_id": str(enrollment.id)},
                    )
                program = await get_program(db, enrollment.program_id)

                session = None
                if session_id is not None:
                    session = await get_session(db, session_id)
                    await ensure_participant(db, session, enrollment)
                    if week_number is None:
                        week_number = session.week_number

                curriculum = parse_curriculum(program.curriculum)
                if week_number is not None and curriculum and find_week(curriculum, week_number) is None:
                    raise ValidationError(
                        f"Week {week_number} is not part of the curriculum",
                        details={"week_number": week_number},
                    )

                submission = Submission(
                    program_id=program.id,
                    enrollment_id=enrollment.id,
                    session_id=session.id if session is not None else None,
                    user_id=enrollment.user_id,
                    week_number=week_number,
                    content=content,
                    file_url=file_url,
                    submitted_at=self.now(),
                )
                db.add(submission)
                await db.flush()

        logger.info(f"Submission {submission.id} for enrollment {enrollment.id}, week {week_number}")
        await self.notify(
            notifications.SUBMISSION_CREATED,
            {
                "submission_id": str(submission.id),
                "enrollment_id": str(enrollment.id),
                "week_number": week_number,
                "coach_id": program.coach_id,
            },
        )
        return submission

    async def review_work(self, actor_id: str, submission_id: Any, feedback: str) -> Submission:
        """
        Record coach feedback on a submission (coach only).

        Raises:
            ValidationError: Empty feedback
            Conflict: Already reviewed and overwriting is disabled
            NotFound, Unauthorized
        """
        if not feedback or not feedback.strip():
            raise ValidationError("Feedback cannot be empty")

        async with self.session_factory() as db:
            async with db.begin():
                submission = await get_submission(db, submission_id)
                program = await get_program(db, submission.program_id)
                require_coach(actor_id, program)

                if submission.feedback_at is not None and not self.feedback_overwrite:
                    raise Conflict(
                        "Submission has already been reviewed",
                        details={"submission_id": str(submission.id)},
                    )

                submission.feedback = feedback
                submission.feedback_at = self.now()
                submission.reviewed_by_id = actor_id

        logger.info(f"Submission {submission.id} reviewed by {actor_id}")
        await self.notify(
            notifications.SUBMISSION_REVIEWED,
            {
                "submission_id": str(submission.id),
                "enrollment_id": str(submission.enrollment_id),
                "user_id": submission.user_id,
            },
        )
        return submission

    async def list_submissions_for_enrollment(self, actor_id: str, enrollment_id: Any) -> List[Submission]:
        async with self.session_factory() as db:
            enrollment = await get_enrollment(db, enrollment_id)
            program = await get_program(db, enrollment.program_id)
            require_owner_or_coach(actor_id, enrollment, program)
            result = await db.execute(
                select(Submission)
                .where(Submission.enrollment_id == enrollment.id)
                .order_by(Submission.submitted_at)
            )
            return list(result.scalars().all())

    async def list_submissions_for_program(self, actor_id: str, program_id: Any) -> List[Submission]:
        async with self.session_factory() as db:
            program = await get_program(db, program_id)
            require_coach(actor_id, program)
            result = await db.execute(
                select(Submission)
                .where(Submission.program_id == program.id)
                .order_by(Submission.submitted_at.desc())
            )
            return list(result.scalars().all())

    async def get_enrollment_progress(self, actor_id: str, enrollment_id: Any) -> EnrollmentProgress:
        """
        Curriculum progress of an enrollment, recomputed from its sessions
        and submissions on every call.
        """
        async with self.session_factory() as db:
            enrollment = await get_enrollment(db, enrollment_id)
            program = await db.get(Program, enrollment.program_id)
            require_owner_or_coach(actor_id, enrollment, program)

            session_filter = Session.enrollment_id == enrollment.id
            if enrollment.cohort_id is not None:
                session_filter = Session.cohort_id == enrollment.cohort_id
            sessions = list(
                (await db.execute(select(Session).where(session_filter).order_by(Session.starts_at))).scalars().all()
            )
            submissions = list(
                (
                    await db.execute(
                        select(Submission)
                        .where(Submission.enrollment_id == enrollment.id)
                        .order_by(Submission.submitted_at)
                    )
                ).scalars().all()
            )

        curriculum = parse_curriculum(program.curriculum)
        return EnrollmentProgress(
            enrollment=enrollment,
            current_week=current_week(curriculum, sessions),
            weeks=week_progress(curriculum, sessions, submissions),
        )
