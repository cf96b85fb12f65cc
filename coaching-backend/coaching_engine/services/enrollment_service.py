"""
Enrollment Service

Creates enrollments when the payment collaborator confirms a purchase and
maintains their status afterwards.
"""
import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import select, update

from coaching_engine.enums import EnrollmentStatus
from coaching_engine.errors import Conflict, ValidationError
from coaching_engine.models import Enrollment
from coaching_engine.scheduling.availability import ensure_utc
from coaching_engine.scheduling.credits import CreditState
from coaching_engine.scheduling.formats import GroupCohort, format_for_program
from coaching_engine.services.base import (
    CoachingService,
    get_cohort,
    get_enrollment,
    get_program,
    require_coach,
    require_owner_or_coach,
)

logger = logging.getLogger(__name__)


class EnrollmentService(CoachingService):
    """Enrollment intake and upkeep"""

    async def confirm_enrollment(
        self,
        program_id: Any,
        user_id: str,
        cohort_id: Optional[Any] = None,
        payment_ref: Optional[str] = None,
        package_expires_at: Optional[datetime] = None,
    ) -> Enrollment:
        """
        Create an ACTIVE enrollment for a confirmed payment.

        The program's format is snapshotted and the credit allowance set from
        it: one for SINGLE_SESSION, total_sessions for FIXED_PACKAGE,
        unlimited otherwise.

        Raises:
            ValidationError: Inactive program, cohort missing for a cohort
                program, or cohort from another program
            Conflict: Cohort closed or full
            NotFound: Unknown program or cohort
        """
        async with self.program_transaction(program_id) as (db, program):
            if not program.is_active:
                raise ValidationError("Program is not accepting enrollments")

            variant = format_for_program(program)
            cohort = None
            if isinstance(variant, GroupCohort):
                if cohort_id is None:
                    raise ValidationError("Cohort programs need a cohort_id")
                cohort = await get_cohort(db, cohort_id)
                if cohort.program_id != program.id:
                    raise ValidationError("Cohort belongs to another program")
                await self._ensure_cohort_open(db, cohort)
            elif cohort_id is not None:
                raise ValidationError("Only GROUP_COHORT programs take a cohort_id")

            enrollment = Enrollment(
                program_id=program.id,
                user_id=user_id,
                cohort_id=cohort.id if cohort is not None else None,
                format=variant.kind.value,
                status=EnrollmentStatus.ACTIVE.value,
                sessions_included=variant.sessions_included,
                sessions_used=0,
                package_expires_at=ensure_utc(package_expires_at) if package_expires_at else None,
                payment_ref=payment_ref,
                enrolled_at=self.now(),
            )
            db.add(enrollment)
            await db.flush()

        logger.info(
            f"Enrollment {enrollment.id} created for user {user_id} in program {program.id} "
            f"({enrollment.format}, sessions_included={enrollment.sessions_included})"
        )
        return enrollment

    async def _ensure_cohort_open(self, db, cohort) -> None:
        if not cohort.enrollment_open:
            raise Conflict("Cohort enrollment is closed", details={"cohort_id": str(cohort.id)})
        if cohort.enrollment_deadline is not None and ensure_utc(cohort.enrollment_deadline) < self.now():
            raise Conflict("Cohort enrollment deadline has passed", details={"cohort_id": str(cohort.id)})
        if cohort.max_participants is not None:
            members = len(
                (await db.execute(select(Enrollment.id).where(Enrollment.cohort_id == cohort.id))).all()
            )
            if members >= cohort.max_participants:
                raise Conflict("Cohort is full", details={"cohort_id": str(cohort.id)})

    async def get_enrollment(self, actor_id: str, enrollment_id: Any) -> Enrollment:
        async with self.session_factory() as db:
            enrollment = await get_enrollment(db, enrollment_id)
            program = await get_program(db, enrollment.program_id)
            require_owner_or_coach(actor_id, enrollment, program)
            return enrollment

    async def get_credit_state(self, actor_id: str, enrollment_id: Any) -> CreditState:
        return CreditState.of(await self.get_enrollment(actor_id, enrollment_id))

    async def list_enrollments_for_program(self, actor_id: str, program_id: Any) -> List[Enrollment]:
        async with self.session_factory() as db:
            program = await get_program(db, program_id)
            require_coach(actor_id, program)
            result = await db.execute(
                select(Enrollment).where(Enrollment.program_id == program.id).order_by(Enrollment.enrolled_at)
            )
            return list(result.scalars().all())

    async def list_my_enrollments(self, user_id: str) -> List[Enrollment]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Enrollment).where(Enrollment.user_id == user_id).order_by(Enrollment.enrolled_at.desc())
            )
            return list(result.scalars().all())

    async def expire_packages(self, now: Optional[datetime] = None) -> int:
        """
        Move ACTIVE enrollments past package_expires_at to EXPIRED.

        Returns:
            Number of enrollments expired
        """
        now = ensure_utc(now or self.now())
        async with self.session_factory() as db:
            async with db.begin():
                result = await db.execute(
                    update(Enrollment)
                    .where(
                        Enrollment.status == EnrollmentStatus.ACTIVE.value,
                        Enrollment.package_expires_at.is_not(None),
                        Enrollment.package_expires_at <= now,
                    )
                    .values(status=EnrollmentStatus.EXPIRED.value)
                    .execution_options(synchronize_session=False)
                )
                expired = result.rowcount or 0

        if expired:
            logger.info(f"Expired {expired} enrollment packages")
        return expired
