"""
Session Lifecycle

SCHEDULED -> COMPLETED | CANCELLED. Both end states are terminal.
Rescheduling keeps the session (id, linked submissions) and only moves its
time; the first start is remembered in original_starts_at.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_, select, update

from coaching_engine.config import CANCELLATION_POLICIES, RESTORE, get_settings
from coaching_engine.enums import SessionStatus
from coaching_engine.errors import InvalidSessionState, NotFound, SlotUnavailable, ValidationError
from coaching_engine.models import Enrollment, Program, Session, SessionAttendee
from coaching_engine.scheduling.availability import ensure_utc
from coaching_engine.scheduling.credits import CreditState, release_credit
from coaching_engine.services import notifications
from coaching_engine.services.base import (
    CoachingService,
    ended_error,
    get_enrollment,
    get_session,
    is_coach,
    require_coach,
    require_owner_or_coach,
    settle_elapsed,
)
from coaching_engine.services.slot_service import check_slot

logger = logging.getLogger(__name__)


def ensure_scheduled(session: Session) -> None:
    if session.status != SessionStatus.SCHEDULED.value:
        raise InvalidSessionState(
            f"Session is already {session.status}",
            details={"session_id": str(session.id), "status": session.status},
        )


def cancellation_policy(program: Program) -> str:
    """Program's own policy, else the configured default"""
    policy = program.cancellation_credit_policy or get_settings().cancellation_credit_policy
    if policy not in CANCELLATION_POLICIES:
        raise ValidationError(f"Invalid cancellation credit policy: {policy}")
    return policy


def session_payload(session: Session, program: Program) -> Dict[str, Any]:
    return {
        "session_id": str(session.id),
        "program_id": str(program.id),
        "enrollment_id": str(session.enrollment_id) if session.enrollment_id else None,
        "cohort_id": str(session.cohort_id) if session.cohort_id else None,
        "coach_id": program.coach_id,
        "starts_at": ensure_utc(session.starts_at).isoformat(),
        "status": session.status,
    }


class SessionLifecycle(CoachingService):
    """Transitions and edits of committed sessions"""

    async def _authorize(self, db, actor_id: str, session: Session, program: Program) -> Optional[Enrollment]:
        """Coach may act on any session; members only on their own 1:1 session"""
        if session.enrollment_id is None:
            require_coach(actor_id, program)
            return None
        enrollment = await get_enrollment(db, session.enrollment_id, for_update=True)
        require_owner_or_coach(actor_id, enrollment, program)
        return enrollment

    async def cancel_session(self, actor_id: str, session_id: Any, reason: Optional[str] = None) -> Session:
        """
        Cancel a scheduled session.

        For a 1:1 session on a credit-bearing enrollment the program's
        cancellation credit policy decides whether the credit comes back
        (RESTORE) or stays consumed (FORFEIT).

        Raises:
            InvalidSessionState: Session is already COMPLETED or CANCELLED,
                or its end time has passed
            NotFound, Unauthorized
        """
        program_id = await self.program_id_of_session(session_id)

        restored = False
        async with self.program_transaction(program_id) as (db, program):
            session = await get_session(db, session_id, for_update=True)
            enrollment = await self._authorize(db, actor_id, session, program)
            ensure_scheduled(session)

            ended = settle_elapsed(session, self.now())
            if not ended:
                session.status = SessionStatus.CANCELLED.value
                session.cancelled_at = self.now()
                session.cancel_reason = reason

                if enrollment is not None and cancellation_policy(program) == RESTORE:
                    state = CreditState.of(enrollment)
                    if not state.unlimited and state.sessions_used > 0:
                        release_credit(state).apply_to(enrollment)
                        restored = True

        if ended:
            raise ended_error(session)

        logger.info(
            f"Cancelled session {session.id} by {actor_id}"
            + (" (credit restored)" if restored else "")
        )
        payload = session_payload(session, program)
        payload.update({"reason": reason, "credit_restored": restored})
        await self.notify(notifications.SESSION_CANCELLED, payload)
        return session

    async def reschedule_session(self, actor_id: str, session_id: Any, new_starts_at: datetime) -> Session:
        """
        Move a scheduled session to a new start, keeping its duration.

        1:1 sessions are re-validated like a booking, ignoring the session
        being moved. Group sessions only need a future start.

        Raises:
            InvalidSessionState: Session is not SCHEDULED or has already ended
            SlotUnavailable: New time is not bookable (retryable)
            ValidationError: Group session moved into the past
            NotFound, Unauthorized
        """
        new_starts_at = ensure_utc(new_starts_at)
        program_id = await self.program_id_of_session(session_id)

        async with self.program_transaction(program_id) as (db, program):
            session = await get_session(db, session_id, for_update=True)
            await self._authorize(db, actor_id, session, program)
            ensure_scheduled(session)

            now = self.now()
            old_starts_at = ensure_utc(session.starts_at)
            duration = ensure_utc(session.ends_at) - old_starts_at

            ended = settle_elapsed(session, now)
            if not ended:
                if session.is_group:
                    if new_starts_at <= now:
                        raise ValidationError("Group sessions cannot be moved into the past")
                    new_ends_at = new_starts_at + duration
                else:
                    check = await check_slot(
                        db, program, new_starts_at, now, session.week_number, exclude_session_id=session.id
                    )
                    if not check.ok:
                        raise SlotUnavailable(
                            "The requested time is not available",
                            details={"reason": check.reason, "starts_at": new_starts_at.isoformat()},
                        )
                    new_ends_at = check.slot.end

                if session.original_starts_at is None:
                    session.original_starts_at = old_starts_at
                session.starts_at = new_starts_at
                session.ends_at = new_ends_at

        if ended:
            raise ended_error(session)

        logger.info(f"Rescheduled session {session.id} from {old_starts_at.isoformat()} to {new_starts_at.isoformat()}")
        payload = session_payload(session, program)
        payload["previous_starts_at"] = old_starts_at.isoformat()
        await self.notify(notifications.SESSION_RESCHEDULED, payload)
        return session

    async def complete_session(self, actor_id: str, session_id: Any) -> Session:
        """
        Mark a scheduled session as held (coach only).

        Raises:
            InvalidSessionState: Session is not SCHEDULED
            NotFound, Unauthorized
        """
        program_id = await self.program_id_of_session(session_id)

        async with self.program_transaction(program_id) as (db, program):
            session = await get_session(db, session_id, for_update=True)
            require_coach(actor_id, program)
            ensure_scheduled(session)
            session.status = SessionStatus.COMPLETED.value

        logger.info(f"Session {session.id} marked completed by {actor_id}")
        await self.notify(notifications.SESSION_COMPLETED, session_payload(session, program))
        return session

    async def complete_elapsed_sessions(self, now: Optional[datetime] = None) -> int:
        """
        Complete every SCHEDULED session whose end time has passed.

        Returns:
            Number of sessions completed
        """
        now = ensure_utc(now or self.now())
        async with self.session_factory() as db:
            async with db.begin():
                result = await db.execute(
                    update(Session)
                    .where(Session.status == SessionStatus.SCHEDULED.value, Session.ends_at <= now)
                    .values(status=SessionStatus.COMPLETED.value)
                    .execution_options(synchronize_session=False)
                )
                completed = result.rowcount or 0

        if completed:
            logger.info(f"Auto-completed {completed} elapsed sessions")
        return completed

    async def add_session_notes(
        self,
        actor_id: str,
        session_id: Any,
        notes: Optional[str] = None,
        recording_url: Optional[str] = None,
        action_items: Optional[List[Any]] = None,
    ) -> Session:
        """Attach coach notes, a recording link or action items (coach only)"""
        async with self.session_factory() as db:
            async with db.begin():
                session = await get_session(db, session_id, for_update=True)
                program = await db.get(Program, session.program_id)
                require_coach(actor_id, program)
                if notes is not None:
                    session.notes = notes
                if recording_url is not None:
                    session.recording_url = recording_url
                if action_items is not None:
                    session.action_items = list(action_items)

        return session

    async def mark_attendance(
        self,
        actor_id: str,
        session_id: Any,
        attendance: Iterable[Tuple[str, bool]],
    ) -> int:
        """
        Record who attended a group session (coach only).

        Args:
            attendance: (user_id, attended) pairs

        Returns:
            Number of attendee rows updated
        """
        updated = 0
        async with self.session_factory() as db:
            async with db.begin():
                session = await get_session(db, session_id)
                program = await db.get(Program, session.program_id)
                require_coach(actor_id, program)

                for user_id, attended in attendance:
                    result = await db.execute(
                        update(SessionAttendee)
                        .where(SessionAttendee.session_id == session.id, SessionAttendee.user_id == user_id)
                        .values(attended=bool(attended))
                        .execution_options(synchronize_session=False)
                    )
                    updated += result.rowcount or 0

        return updated

    async def get_calendar(self, actor_id: str, start: datetime, end: datetime) -> List[Session]:
        """All sessions of the caller's programs between start and end"""
        start, end = ensure_utc(start), ensure_utc(end)
        if end <= start:
            raise ValidationError("Calendar range end must be after its start")

        async with self.session_factory() as db:
            result = await db.execute(
                select(Session)
                .join(Program, Program.id == Session.program_id)
                .where(Program.coach_id == actor_id, Session.starts_at < end, Session.ends_at > start)
                .order_by(Session.starts_at)
            )
            return list(result.scalars().all())

    async def get_upcoming_sessions(self, actor_id: str, limit: int = 20) -> List[Session]:
        """
        Future SCHEDULED sessions the caller coaches, owns, or is registered for.
        """
        now = self.now()
        async with self.session_factory() as db:
            owned = select(Enrollment.id).where(Enrollment.user_id == actor_id)
            registered = select(SessionAttendee.session_id).where(SessionAttendee.user_id == actor_id)
            coached = select(Program.id).where(Program.coach_id == actor_id)
            result = await db.execute(
                select(Session)
                .where(
                    Session.status == SessionStatus.SCHEDULED.value,
                    Session.starts_at >= now,
                    or_(
                        Session.enrollment_id.in_(owned),
                        Session.id.in_(registered),
                        Session.program_id.in_(coached),
                    ),
                )
                .order_by(Session.starts_at)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_session_for(self, actor_id: str, session_id: Any) -> Session:
        """
        A single session, visible to its coach, its owner or its attendees.

        Raises:
            NotFound: Unknown session, or not visible to the caller
        """
        async with self.session_factory() as db:
            session = await get_session(db, session_id)
            program = await db.get(Program, session.program_id)
            if is_coach(actor_id, program):
                return session
            if session.enrollment_id is not None:
                enrollment = await get_enrollment(db, session.enrollment_id)
                if enrollment.user_id == actor_id:
                    return session
            else:
                registered = (
                    await db.execute(
                        select(SessionAttendee.id).where(
                            SessionAttendee.session_id == session.id,
                            SessionAttendee.user_id == actor_id,
                        )
                    )
                ).first()
                if registered is not None:
                    return session
        raise NotFound.for_entity("Session", session_id)
