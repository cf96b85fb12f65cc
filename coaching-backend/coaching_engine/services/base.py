"""
Shared service plumbing

Row loaders, authorization checks and the per-program transaction used by
every operation that mutates a program's calendar or credit counters.
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coaching_engine.database import AsyncSessionLocal
from coaching_engine.enums import SessionStatus
from coaching_engine.errors import InvalidSessionState, NotFound, Unauthorized, ValidationError
from coaching_engine.models import Enrollment, Program, Session, Submission, Cohort
from coaching_engine.scheduling.availability import ensure_utc
from coaching_engine.services.notifications import NotificationSink, notify

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_uuid(value: Any, entity: str) -> UUID:
    """Parse an id, treating malformed ids as unknown"""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFound.for_entity(entity, value)


class ProgramLocks:
    """
    In-process mutex per program.

    Complements the row lock taken on the program inside the transaction,
    which SQLite does not honour. Locks are kept per event loop and only
    while some task holds or waits on them.
    """

    def __init__(self):
        self._locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, weakref.WeakValueDictionary]" = (
            weakref.WeakKeyDictionary()
        )

    def for_program(self, program_id: Any) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        locks = self._locks.setdefault(loop, weakref.WeakValueDictionary())
        key = str(program_id)
        lock = locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            locks[key] = lock
        return lock

    def tracked(self) -> int:
        """Number of live locks for the running loop"""
        return len(self._locks.get(asyncio.get_running_loop(), ()))


# Shared by every service in the process
program_locks = ProgramLocks()


async def get_program(db: AsyncSession, program_id: Any, for_update: bool = False) -> Program:
    stmt = select(Program).where(Program.id == as_uuid(program_id, "Program"))
    if for_update:
        stmt = stmt.with_for_update()
    program = (await db.execute(stmt)).scalar_one_or_none()
    if program is None:
        raise NotFound.for_entity("Program", program_id)
    return program


async def get_enrollment(db: AsyncSession, enrollment_id: Any, for_update: bool = False) -> Enrollment:
    stmt = select(Enrollment).where(Enrollment.id == as_uuid(enrollment_id, "Enrollment"))
    if for_update:
        stmt = stmt.with_for_update()
    enrollment = (await db.execute(stmt)).scalar_one_or_none()
    if enrollment is None:
        raise NotFound.for_entity("Enrollment", enrollment_id)
    return enrollment


async def get_session(db: AsyncSession, session_id: Any, for_update: bool = False) -> Session:
    stmt = select(Session).where(Session.id == as_uuid(session_id, "Session"))
    if for_update:
        stmt = stmt.with_for_update()
    session = (await db.execute(stmt)).scalar_one_or_none()
    if session is None:
        raise NotFound.for_entity("Session", session_id)
    return session


async def get_cohort(db: AsyncSession, cohort_id: Any) -> Cohort:
    cohort = await db.get(Cohort, as_uuid(cohort_id, "Cohort"))
    if cohort is None:
        raise NotFound.for_entity("Cohort", cohort_id)
    return cohort


async def get_submission(db: AsyncSession, submission_id: Any) -> Submission:
    submission = await db.get(Submission, as_uuid(submission_id, "Submission"))
    if submission is None:
        raise NotFound.for_entity("Submission", submission_id)
    return submission


def is_coach(actor_id: str, program: Program) -> bool:
    return actor_id is not None and actor_id == program.coach_id


def require_coach(actor_id: str, program: Program) -> None:
    if not is_coach(actor_id, program):
        raise Unauthorized(
            "Only the program's coach can perform this action",
            details={"program_id": str(program.id)},
        )


def require_owner_or_coach(actor_id: str, enrollment: Enrollment, program: Program) -> None:
    if actor_id is None or (actor_id != enrollment.user_id and not is_coach(actor_id, program)):
        raise Unauthorized(
            "Caller is neither the enrollment owner nor the program's coach",
            details={"enrollment_id": str(enrollment.id)},
        )


def has_ended(session: Session, now: datetime) -> bool:
    return ensure_utc(session.ends_at) <= ensure_utc(now)


def settle_elapsed(session: Session, now: datetime) -> bool:
    """
    Complete a SCHEDULED session whose end has passed.

    Returns True when the session was settled; the caller commits the
    transition and then rejects its own change with ended_error().
    """
    if session.status == SessionStatus.SCHEDULED.value and has_ended(session, now):
        session.status = SessionStatus.COMPLETED.value
        return True
    return False


def ended_error(session: Session) -> InvalidSessionState:
    return InvalidSessionState(
        "Session has already ended",
        details={"session_id": str(session.id), "status": SessionStatus.COMPLETED.value},
    )


def require_positive(value: Optional[int], name: str) -> None:
    if value is not None and value <= 0:
        raise ValidationError(f"{name} must be positive", details={name: value})


class CoachingService:
    """Base for services that open their own database sessions"""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        notifier: Optional[NotificationSink] = None,
        clock: Optional[Clock] = None,
        locks: Optional[ProgramLocks] = None,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.notifier = notifier
        self.clock = clock or utc_now
        self.locks = locks or program_locks

    def now(self) -> datetime:
        return self.clock()

    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        await notify(self.notifier, event, payload)

    async def program_id_of_session(self, session_id: Any) -> UUID:
        async with self.session_factory() as db:
            return (await get_session(db, session_id)).program_id

    async def program_id_of_enrollment(self, enrollment_id: Any) -> UUID:
        async with self.session_factory() as db:
            return (await get_enrollment(db, enrollment_id)).program_id

    @asynccontextmanager
    async def program_transaction(self, program_id: Any) -> AsyncIterator[Tuple[AsyncSession, Program]]:
        """
        Atomic unit for calendar and credit mutations of one program.

        Holds the program's in-process lock, opens a transaction and locks
        the program row. Everything done inside commits together or not at
        all.
        """
        async with self.locks.for_program(program_id):
            async with self.session_factory() as db:
                async with db.begin():
                    program = await get_program(db, program_id, for_update=True)
                    yield db, program
