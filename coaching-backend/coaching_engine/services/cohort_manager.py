"""
Cohort Manager

Group variant of scheduling: the coach creates cohorts and puts sessions on
their calendar directly. Sessions are shared rather than exclusive, so no
slot check or credit is involved; capacity is enforced when members
register.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy import func, select

from coaching_engine.enums import CoachingFormat, InteractionType, SessionStatus
from coaching_engine.errors import ValidationError
from coaching_engine.models import Cohort, Enrollment, Program, Session
from coaching_engine.scheduling.availability import ensure_utc
from coaching_engine.scheduling.curriculum import parse_curriculum, session_duration_for
from coaching_engine.services.base import (
    CoachingService,
    get_cohort,
    get_program,
    require_coach,
    require_positive,
)

logger = logging.getLogger(__name__)

_UNSET = object()


def ensure_group_program(program: Program, expected_format: Optional[CoachingFormat] = None) -> None:
    if program.interaction_type != InteractionType.GROUP.value:
        raise ValidationError(
            "Cohorts and group sessions require a GROUP program",
            details={"program_id": str(program.id)},
        )
    if expected_format is not None and program.format != expected_format.value:
        raise ValidationError(
            f"Program format is {program.format}, expected {expected_format.value}",
            details={"program_id": str(program.id)},
        )


def group_session_duration(program: Program, week_number: Optional[int]) -> timedelta:
    minutes = session_duration_for(
        parse_curriculum(program.curriculum), program.session_duration_minutes, week_number
    )
    if not minutes or minutes <= 0:
        raise ValidationError(
            "Program has no session duration configured",
            details={"program_id": str(program.id), "week_number": week_number},
        )
    return timedelta(minutes=minutes)


class CohortManager(CoachingService):
    """Cohorts and coach-scheduled group sessions"""

    async def create_cohort(
        self,
        actor_id: str,
        program_id: Any,
        name: str,
        start_date: date,
        end_date: Optional[date] = None,
        max_participants: Optional[int] = None,
        enrollment_open: bool = True,
        enrollment_deadline: Optional[datetime] = None,
    ) -> Cohort:
        """
        Create a cohort for a GROUP_COHORT program (coach only).

        Raises:
            ValidationError: Not a cohort program, empty name, end before start
                or non-positive capacity
            NotFound, Unauthorized
        """
        if not name or not name.strip():
            raise ValidationError("Cohort name is required")
        if end_date is not None and end_date < start_date:
            raise ValidationError("Cohort end_date must not be before start_date")
        require_positive(max_participants, "max_participants")

        async with self.session_factory() as db:
            async with db.begin():
                program = await get_program(db, program_id)
                require_coach(actor_id, program)
                ensure_group_program(program, CoachingFormat.GROUP_COHORT)

                cohort = Cohort(
                    program_id=program.id,
                    name=name.strip(),
                    start_date=start_date,
                    end_date=end_date,
                    max_participants=max_participants,
                    enrollment_open=enrollment_open,
                    enrollment_deadline=ensure_utc(enrollment_deadline) if enrollment_deadline else None,
                )
                db.add(cohort)
                await db.flush()

        logger.info(f"Created cohort {cohort.id} '{cohort.name}' for program {program.id}")
        return cohort

    async def update_cohort(
        self,
        actor_id: str,
        cohort_id: Any,
        name: Optional[str] = None,
        end_date: Any = _UNSET,
        max_participants: Any = _UNSET,
        enrollment_open: Optional[bool] = None,
    ) -> Cohort:
        """Edit cohort settings (coach only). Pass None to clear end_date or capacity."""
        async with self.session_factory() as db:
            async with db.begin():
                cohort = await get_cohort(db, cohort_id)
                program = await get_program(db, cohort.program_id)
                require_coach(actor_id, program)

                if name is not None:
                    if not name.strip():
                        raise ValidationError("Cohort name is required")
                    cohort.name = name.strip()
                if end_date is not _UNSET:
                    if end_date is not None and end_date < cohort.start_date:
                        raise ValidationError("Cohort end_date must not be before start_date")
                    cohort.end_date = end_date
                if max_participants is not _UNSET:
                    require_positive(max_participants, "max_participants")
                    cohort.max_participants = max_participants
                if enrollment_open is not None:
                    cohort.enrollment_open = enrollment_open

        return cohort

    async def delete_cohort(self, actor_id: str, cohort_id: Any) -> None:
        """
        Delete a cohort that has no scheduled sessions (coach only).

        Raises:
            ValidationError: Cohort still has scheduled sessions
        """
        async with self.session_factory() as db:
            async with db.begin():
                cohort = await get_cohort(db, cohort_id)
                program = await get_program(db, cohort.program_id)
                require_coach(actor_id, program)

                scheduled = (
                    await db.execute(
                        select(func.count(Session.id)).where(
                            Session.cohort_id == cohort.id,
                            Session.status == SessionStatus.SCHEDULED.value,
                        )
                    )
                ).scalar_one()
                if scheduled:
                    raise ValidationError(
                        f"Cohort has {scheduled} scheduled sessions; cancel them first",
                        details={"cohort_id": str(cohort.id)},
                    )
                await db.delete(cohort)

        logger.info(f"Deleted cohort {cohort_id}")

    async def list_cohorts(self, program_id: Any) -> List[Cohort]:
        async with self.session_factory() as db:
            program = await get_program(db, program_id)
            result = await db.execute(
                select(Cohort).where(Cohort.program_id == program.id).order_by(Cohort.start_date)
            )
            return list(result.scalars().all())

    async def count_members(self, cohort_id: Any) -> int:
        async with self.session_factory() as db:
            cohort = await get_cohort(db, cohort_id)
            return (
                await db.execute(select(func.count(Enrollment.id)).where(Enrollment.cohort_id == cohort.id))
            ).scalar_one()

    async def add_group_session(
        self,
        actor_id: str,
        cohort_id: Any,
        starts_at: datetime,
        week_number: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Session:
        """
        Schedule a session for a cohort (coach only).

        The session has a cohort and no enrollment; no credit is touched and
        capacity is not checked here.

        Raises:
            ValidationError: Start in the past or no session duration
            NotFound, Unauthorized
        """
        starts_at = ensure_utc(starts_at)

        async with self.session_factory() as db:
            cohort = await get_cohort(db, cohort_id)
            program_id = cohort.program_id

        async with self.program_transaction(program_id) as (db, program):
            require_coach(actor_id, program)
            ensure_group_program(program)
            if starts_at <= self.now():
                raise ValidationError("Group sessions must start in the future")

            session = Session(
                program_id=program.id,
                cohort_id=cohort.id,
                enrollment_id=None,
                starts_at=starts_at,
                ends_at=starts_at + group_session_duration(program, week_number),
                timezone=program.timezone,
                status=SessionStatus.SCHEDULED.value,
                week_number=week_number,
                notes=notes,
            )
            db.add(session)
            await db.flush()

        logger.info(f"Added group session {session.id} to cohort {cohort.id} at {starts_at.isoformat()}")
        return session

    async def add_open_session(
        self,
        actor_id: str,
        program_id: Any,
        starts_at: datetime,
        week_number: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Session:
        """Schedule a drop-in session for a GROUP_OPEN program (coach only)."""
        starts_at = ensure_utc(starts_at)

        async with self.program_transaction(program_id) as (db, program):
            require_coach(actor_id, program)
            ensure_group_program(program, CoachingFormat.GROUP_OPEN)
            if starts_at <= self.now():
                raise ValidationError("Group sessions must start in the future")

            session = Session(
                program_id=program.id,
                starts_at=starts_at,
                ends_at=starts_at + group_session_duration(program, week_number),
                timezone=program.timezone,
                status=SessionStatus.SCHEDULED.value,
                week_number=week_number,
                notes=notes,
            )
            db.add(session)
            await db.flush()

        logger.info(f"Added open group session {session.id} to program {program.id}")
        return session
