"""
Booking Coordinator

Reserves 1:1 slots exactly once under concurrent demand and registers
members for group sessions.

A slot offered by SlotService is only a hint: by the time the caller books,
someone else may have taken it or the coach may have changed availability.
book_one_on_one re-runs the slot check inside the same transaction that
inserts the session and consumes the credit, so a lost race surfaces as
SlotUnavailable and nothing is written.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple

from sqlalchemy import func, select

from coaching_engine.enums import EnrollmentStatus, InteractionType, SessionStatus
from coaching_engine.errors import (
    Conflict,
    CreditExhausted,
    EnrollmentInactive,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from coaching_engine.models import Enrollment, Session, SessionAttendee
from coaching_engine.scheduling.availability import ensure_utc
from coaching_engine.scheduling.credits import CreditState, has_credit, reserve_credit
from coaching_engine.scheduling.formats import format_for_program, is_group
from coaching_engine.services import notifications
from coaching_engine.services.base import (
    CoachingService,
    ended_error,
    get_cohort,
    get_enrollment,
    get_session,
    require_owner_or_coach,
    settle_elapsed,
)
from coaching_engine.services.slot_service import check_slot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingResult:
    """
    Outcome of a booking attempt.

    Either session is set, or reason says why the slot could not be taken.
    An unavailable result is a normal outcome of concurrent booking: the
    caller should fetch fresh slots and try again.
    """

    session: Optional[Session] = None
    reason: Optional[str] = None
    starts_at: Optional[datetime] = None

    @property
    def booked(self) -> bool:
        return self.session is not None

    def unwrap(self) -> Session:
        """Return the session or raise SlotUnavailable"""
        if self.session is None:
            raise SlotUnavailable(
                "The requested slot is no longer available",
                details={
                    "reason": self.reason,
                    "starts_at": self.starts_at.isoformat() if self.starts_at else None,
                },
            )
        return self.session


def ensure_can_book(enrollment: Enrollment, now: datetime) -> None:
    """
    Raises:
        CreditExhausted: No credit remains (an exhausted package is also
            COMPLETED, so this is checked first)
        EnrollmentInactive: Enrollment is not ACTIVE or its package expired
    """
    if not has_credit(CreditState.of(enrollment)):
        raise CreditExhausted(
            f"All {enrollment.sessions_included} sessions have been used",
            details={
                "enrollment_id": str(enrollment.id),
                "sessions_included": enrollment.sessions_included,
                "sessions_used": enrollment.sessions_used,
            },
        )
    if enrollment.status != EnrollmentStatus.ACTIVE.value:
        raise EnrollmentInactive(
            f"Enrollment is {enrollment.status}",
            details={"enrollment_id": str(enrollment.id), "status": enrollment.status},
        )
    if enrollment.package_expires_at is not None and ensure_utc(enrollment.package_expires_at) <= now:
        raise EnrollmentInactive(
            "Enrollment package has expired",
            details={"enrollment_id": str(enrollment.id)},
        )


class BookingCoordinator(CoachingService):
    """Transactional reserve-or-reject booking"""

    async def reserve_slot(
        self,
        actor_id: str,
        enrollment_id: Any,
        starts_at: datetime,
        week_number: Optional[int] = None,
    ) -> BookingResult:
        """
        Try to reserve a 1:1 slot for an enrollment.

        Args:
            actor_id: Caller (enrollment owner or program coach)
            enrollment_id: Enrollment to book against
            starts_at: Requested start, as offered by get_available_slots
            week_number: Curriculum week the session covers

        Returns:
            BookingResult with the created session, or the reason the slot
            is unavailable

        Raises:
            NotFound, Unauthorized, EnrollmentInactive, CreditExhausted,
            ValidationError
        """
        starts_at = ensure_utc(starts_at)
        program_id = await self.program_id_of_enrollment(enrollment_id)

        async with self.program_transaction(program_id) as (db, program):
            enrollment = await get_enrollment(db, enrollment_id, for_update=True)
            require_owner_or_coach(actor_id, enrollment, program)

            if is_group(format_for_program(program)) or program.interaction_type != InteractionType.ONE_ON_ONE.value:
                raise ValidationError(
                    "Group programs are booked by registering for a session",
                    details={"program_id": str(program.id)},
                )

            now = self.now()
            ensure_can_book(enrollment, now)

            check = await check_slot(db, program, starts_at, now, week_number)
            if not check.ok:
                logger.warning(
                    f"Slot {starts_at.isoformat()} unavailable for enrollment {enrollment.id}: {check.reason}"
                )
                return BookingResult(reason=check.reason, starts_at=starts_at)

            session = Session(
                program_id=program.id,
                enrollment_id=enrollment.id,
                starts_at=check.slot.start,
                ends_at=check.slot.end,
                timezone=program.timezone,
                status=SessionStatus.SCHEDULED.value,
                week_number=week_number,
            )
            db.add(session)
            reserve_credit(CreditState.of(enrollment)).apply_to(enrollment)
            await db.flush()

        logger.info(
            f"Booked session {session.id} for enrollment {enrollment.id} at {session.starts_at.isoformat()} "
            f"(credits {enrollment.sessions_used}/{enrollment.sessions_included})"
        )
        await self.notify(
            notifications.SESSION_BOOKED,
            {
                "session_id": str(session.id),
                "program_id": str(program.id),
                "enrollment_id": str(enrollment.id),
                "user_id": enrollment.user_id,
                "coach_id": program.coach_id,
                "starts_at": session.starts_at.isoformat(),
            },
        )
        return BookingResult(session=session, starts_at=starts_at)

    async def book_one_on_one(
        self,
        actor_id: str,
        enrollment_id: Any,
        starts_at: datetime,
        week_number: Optional[int] = None,
    ) -> Session:
        """
        Book a 1:1 session.

        Raises:
            SlotUnavailable: The slot was taken or no longer matches
                availability (retryable)
            NotFound, Unauthorized, EnrollmentInactive, CreditExhausted,
            ValidationError
        """
        result = await self.reserve_slot(actor_id, enrollment_id, starts_at, week_number)
        return result.unwrap()

    async def register_for_session(self, actor_id: str, session_id: Any) -> SessionAttendee:
        """
        Register the caller for a group session.

        Re-registering returns the existing registration. No credit is
        consumed.

        Raises:
            NotFound: Unknown session, or the caller has no active enrollment
            ValidationError: Session is not a scheduled group session
            InvalidSessionState: Session has already ended
            Conflict: Session is full (retryable)
        """
        program_id = await self.program_id_of_session(session_id)

        created = False
        async with self.program_transaction(program_id) as (db, program):
            session = await get_session(db, session_id, for_update=True)
            if not session.is_group:
                raise ValidationError("1:1 sessions do not take registrations")
            if session.status != SessionStatus.SCHEDULED.value:
                raise ValidationError(f"Session is {session.status}")

            ended = settle_elapsed(session, self.now())
            if not ended:
                attendee, created = await self._add_attendee(db, program, session, actor_id)

        if ended:
            raise ended_error(session)
        if not created:
            return attendee

        logger.info(f"User {actor_id} registered for group session {session.id}")
        await self.notify(
            notifications.ATTENDEE_REGISTERED,
            {"session_id": str(session.id), "user_id": actor_id, "coach_id": program.coach_id},
        )
        return attendee

    async def _add_attendee(self, db, program, session: Session, actor_id: str) -> Tuple[SessionAttendee, bool]:
        """Existing registration, or a new one within capacity"""
        stmt = select(Enrollment).where(
            Enrollment.program_id == program.id,
            Enrollment.user_id == actor_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        if session.cohort_id is not None:
            stmt = stmt.where(Enrollment.cohort_id == session.cohort_id)
        enrollment = (await db.execute(stmt.limit(1))).scalar_one_or_none()
        if enrollment is None:
            raise NotFound(
                "No active enrollment for this session",
                details={"session_id": str(session.id)},
            )

        existing = (
            await db.execute(
                select(SessionAttendee).where(
                    SessionAttendee.session_id == session.id,
                    SessionAttendee.enrollment_id == enrollment.id,
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            return existing, False

        if session.cohort_id is not None:
            capacity = (await get_cohort(db, session.cohort_id)).max_participants
        else:
            capacity = format_for_program(program).capacity

        if capacity is not None:
            taken = (
                await db.execute(
                    select(func.count(SessionAttendee.id)).where(SessionAttendee.session_id == session.id)
                )
            ).scalar_one()
            if taken >= capacity:
                raise Conflict(
                    "Session is full",
                    details={"session_id": str(session.id), "max_participants": capacity},
                )

        attendee = SessionAttendee(
            session_id=session.id,
            enrollment_id=enrollment.id,
            user_id=actor_id,
            attended=False,
        )
        db.add(attendee)
        await db.flush()
        return attendee, True

    async def cancel_group_registration(self, actor_id: str, session_id: Any) -> None:
        """
        Remove the caller's registration for a group session.

        Raises:
            NotFound: Unknown session or not registered
        """
        program_id = await self.program_id_of_session(session_id)

        async with self.program_transaction(program_id) as (db, program):
            session = await get_session(db, session_id)
            attendee = (
                await db.execute(
                    select(SessionAttendee).where(
                        SessionAttendee.session_id == session.id,
                        SessionAttendee.user_id == actor_id,
                    )
                )
            ).scalars().first()
            if attendee is None:
                raise NotFound(
                    "Not registered for this session",
                    details={"session_id": str(session.id)},
                )
            await db.delete(attendee)

        logger.info(f"User {actor_id} cancelled registration for group session {session.id}")
        await self.notify(
            notifications.ATTENDEE_UNREGISTERED,
            {"session_id": str(session.id), "user_id": actor_id, "coach_id": program.coach_id},
        )
