"""
Slot Service

Loads a program's availability and calendar and runs the pure slot
generator over them. The booking coordinator and the session lifecycle
re-run the same check inside their transactions.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from coaching_engine.enums import SessionStatus
from coaching_engine.errors import ValidationError
from coaching_engine.models import AvailabilityRule, BlackoutPeriod, Program, Session
from coaching_engine.scheduling.availability import (
    Blackout,
    WeeklyRule,
    has_rule_for,
    ensure_utc,
    is_blacked_out,
    local_date,
    windows_for,
)
from coaching_engine.scheduling.curriculum import parse_curriculum, session_duration_for
from coaching_engine.scheduling.slots import (
    OUTSIDE_AVAILABILITY,
    BookingPolicy,
    Slot,
    busy_ranges,
    generate_slots,
    slot_violation,
)
from coaching_engine.services.base import CoachingService, get_program

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotCheck:
    """Outcome of validating one requested slot"""

    slot: Slot
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


def booking_policy(program: Program, week_number: Optional[int] = None) -> BookingPolicy:
    """Timing policy of a program, with the week's duration override applied"""
    curriculum = parse_curriculum(program.curriculum)
    return BookingPolicy(
        duration_minutes=session_duration_for(curriculum, program.session_duration_minutes, week_number),
        buffer_minutes=program.buffer_minutes or 0,
        min_notice_hours=program.min_notice_hours or 0,
        advance_booking_days=program.advance_booking_days or 0,
    )


async def load_rules(db: AsyncSession, program: Program) -> List[WeeklyRule]:
    result = await db.execute(
        select(AvailabilityRule).where(
            AvailabilityRule.program_id == program.id,
            AvailabilityRule.is_active.is_(True),
        )
    )
    return [WeeklyRule.from_row(row) for row in result.scalars().all()]


async def load_blackouts(
    db: AsyncSession,
    program: Program,
    first_day: date,
    last_day: date,
) -> List[Blackout]:
    """Blackouts of the program or coach-wide that touch [first_day, last_day]"""
    result = await db.execute(
        select(BlackoutPeriod).where(
            BlackoutPeriod.coach_id == program.coach_id,
            or_(BlackoutPeriod.program_id.is_(None), BlackoutPeriod.program_id == program.id),
            BlackoutPeriod.start_date <= last_day,
            BlackoutPeriod.end_date >= first_day,
        )
    )
    return [Blackout.from_row(row) for row in result.scalars().all()]


async def load_busy_sessions(
    db: AsyncSession,
    program: Program,
    range_start: datetime,
    range_end: datetime,
) -> List[Session]:
    """SCHEDULED sessions of the program intersecting the range"""
    result = await db.execute(
        select(Session).where(
            Session.program_id == program.id,
            Session.status == SessionStatus.SCHEDULED.value,
            Session.starts_at < range_end,
            Session.ends_at > range_start,
        )
    )
    return list(result.scalars().all())


async def slots_for_day(
    db: AsyncSession,
    program: Program,
    day: date,
    now: datetime,
    week_number: Optional[int] = None,
    exclude_session_id: Optional[Any] = None,
) -> List[Slot]:
    """
    Bookable slots for a program on a local calendar date.

    Args:
        db: Open database session
        program: Program row
        day: Date in the program's timezone
        now: Current time
        week_number: Curriculum week whose duration override applies
        exclude_session_id: Session to ignore as busy (the one being moved)
    """
    policy = booking_policy(program, week_number)
    if not policy.is_bookable:
        logger.debug(f"Program {program.id} has no session duration; no slots for {day}")
        return []

    rules = await load_rules(db, program)
    blackouts = await load_blackouts(db, program, day, day)
    windows = windows_for(day, rules, blackouts, program.timezone, program.id)
    if not windows:
        return []

    range_start = min(w[0] for w in windows) - policy.buffer
    range_end = max(w[1] for w in windows) + policy.buffer
    busy = await load_busy_sessions(db, program, range_start, range_end)

    return generate_slots(windows, policy, busy_ranges(busy, exclude_session_id), now)


async def check_slot(
    db: AsyncSession,
    program: Program,
    starts_at: datetime,
    now: datetime,
    week_number: Optional[int] = None,
    exclude_session_id: Optional[Any] = None,
) -> SlotCheck:
    """
    Validate a requested start against current availability and sessions.

    The start must be one of the slots slot generation would offer right
    now; when it is not, the reason names the first violated rule.
    """
    starts_at = ensure_utc(starts_at)
    policy = booking_policy(program, week_number)
    requested = Slot(start=starts_at, end=starts_at + policy.duration)
    day = local_date(starts_at, program.timezone)

    offered = await slots_for_day(db, program, day, now, week_number, exclude_session_id)
    if requested in offered:
        return SlotCheck(slot=requested)

    rules = await load_rules(db, program)
    blackouts = await load_blackouts(db, program, day, day)
    windows = windows_for(day, rules, blackouts, program.timezone, program.id)
    busy = await load_busy_sessions(
        db, program, requested.start - policy.buffer, requested.end + policy.buffer
    )
    reason = slot_violation(
        requested.start, requested.end, windows, busy_ranges(busy, exclude_session_id), policy, now
    )
    # Inside a window but between generated starts
    return SlotCheck(slot=requested, reason=reason or OUTSIDE_AVAILABILITY)


class SlotService(CoachingService):
    """Read-only slot queries"""

    async def get_available_slots(
        self,
        program_id: Any,
        day: date,
        week_number: Optional[int] = None,
    ) -> List[Slot]:
        """
        Bookable slots for a program on a date.

        Returns an empty list (not an error) for a past date, a day without a
        rule, a blacked-out day or a program without a usable duration.

        Raises:
            NotFound: Unknown program
        """
        now = self.now()
        async with self.session_factory() as db:
            program = await get_program(db, program_id)
            if day < local_date(now, program.timezone):
                return []
            slots = await slots_for_day(db, program, day, now, week_number)

        logger.debug(f"Program {program_id} has {len(slots)} slots on {day}")
        return slots

    async def get_available_month(self, program_id: Any, year: int, month: int) -> List[str]:
        """
        Dates of a month that may have slots.

        A date is listed when its weekday has an active rule, it is not
        blacked out and it lies between today and the advance horizon. This
        over-approximates get_available_slots: existing bookings are not
        considered, so a listed date can still have no free slot.

        Raises:
            NotFound: Unknown program
            ValidationError: Month outside 1-12
        """
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}. Must be between 1 and 12")

        now = self.now()
        first_day = date(year, month, 1)
        last_day = date(year, month, calendar.monthrange(year, month)[1])

        async with self.session_factory() as db:
            program = await get_program(db, program_id)
            rules = await load_rules(db, program)
            blackouts = await load_blackouts(db, program, first_day, last_day)

        policy = booking_policy(program)
        today = local_date(now, program.timezone)
        horizon = local_date(policy.latest_end(now), program.timezone)

        dates = []
        day = max(first_day, today)
        while day <= min(last_day, horizon):
            if has_rule_for(day, rules) and not is_blacked_out(day, blackouts, program.id):
                dates.append(day.isoformat())
            day += timedelta(days=1)

        return dates
