"""
Program Service

Coach-side configuration of programs: timing policy, weekly availability,
blackouts and curriculum.
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import delete, select

from coaching_engine.config import CANCELLATION_POLICIES
from coaching_engine.enums import InteractionType
from coaching_engine.errors import NotFound, ValidationError
from coaching_engine.models import AvailabilityRule, BlackoutPeriod, Program
from coaching_engine.scheduling.curriculum import parse_curriculum
from coaching_engine.scheduling.formats import build_format
from coaching_engine.services.base import (
    CoachingService,
    as_uuid,
    get_program,
    require_coach,
    require_positive,
)

logger = logging.getLogger(__name__)

# Columns update_program may change
EDITABLE_FIELDS = {
    "title",
    "session_duration_minutes",
    "total_sessions",
    "max_participants",
    "timezone",
    "buffer_minutes",
    "advance_booking_days",
    "min_notice_hours",
    "cancellation_credit_policy",
    "is_active",
}


@dataclass(frozen=True)
class RuleInput:
    day_of_week: int
    start_time: str  # "HH:MM"
    end_time: str


def parse_clock(value: Any) -> time:
    """Parse "HH:MM" (or accept a time)"""
    if isinstance(value, time):
        return value
    try:
        hours, minutes = str(value).split(":")
        return time(int(hours), int(minutes))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")


def validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {name}")
    return name


def validate_policy_fields(fields: Dict[str, Any]) -> None:
    for name in ("buffer_minutes", "advance_booking_days", "min_notice_hours"):
        value = fields.get(name)
        if value is not None and value < 0:
            raise ValidationError(f"{name} must not be negative", details={name: value})
    require_positive(fields.get("session_duration_minutes"), "session_duration_minutes")
    if fields.get("timezone") is not None:
        validate_timezone(fields["timezone"])
    policy = fields.get("cancellation_credit_policy")
    if policy is not None and policy not in CANCELLATION_POLICIES:
        raise ValidationError(
            f"Invalid cancellation_credit_policy: {policy}. Must be one of: {', '.join(CANCELLATION_POLICIES)}"
        )


def validate_rules(rules: Iterable[RuleInput]) -> List[Dict[str, Any]]:
    """
    Check a full weekly rule set.

    Raises:
        ValidationError: Day out of range, bad time, start not before end, or
            two rules on the same day
    """
    parsed = []
    seen_days = set()
    for rule in rules:
        if not 0 <= rule.day_of_week <= 6:
            raise ValidationError(f"day_of_week must be 0-6, got {rule.day_of_week}")
        if rule.day_of_week in seen_days:
            raise ValidationError(f"More than one rule for day {rule.day_of_week}")
        start, end = parse_clock(rule.start_time), parse_clock(rule.end_time)
        if start >= end:
            raise ValidationError(
                f"Rule for day {rule.day_of_week} must start before it ends",
                details={"start_time": rule.start_time, "end_time": rule.end_time},
            )
        seen_days.add(rule.day_of_week)
        parsed.append({"day_of_week": rule.day_of_week, "start_time": start, "end_time": end})
    return parsed


class ProgramService(CoachingService):
    """Program configuration (coach only)"""

    async def create_program(
        self,
        coach_id: str,
        title: str,
        interaction_type: str,
        format: str,
        timezone: str = "UTC",
        session_duration_minutes: Optional[int] = None,
        total_sessions: Optional[int] = None,
        max_participants: Optional[int] = None,
        buffer_minutes: int = 0,
        advance_booking_days: int = 30,
        min_notice_hours: int = 24,
        curriculum: Optional[List[Dict[str, Any]]] = None,
        cancellation_credit_policy: Optional[str] = None,
    ) -> Program:
        """
        Create a program.

        Raises:
            ValidationError: Format and interaction type disagree, or a
                policy value is invalid
        """
        if not title or not title.strip():
            raise ValidationError("Program title is required")

        variant = build_format(format, total_sessions, max_participants)
        try:
            interaction = InteractionType(interaction_type)
        except ValueError:
            raise ValidationError(f"Invalid interaction type: {interaction_type}")
        if variant.interaction is not interaction:
            raise ValidationError(
                f"Format {format} requires interaction type {variant.interaction.value}"
            )

        validate_policy_fields(
            {
                "timezone": timezone,
                "session_duration_minutes": session_duration_minutes,
                "buffer_minutes": buffer_minutes,
                "advance_booking_days": advance_booking_days,
                "min_notice_hours": min_notice_hours,
                "cancellation_credit_policy": cancellation_credit_policy,
            }
        )
        weeks = parse_curriculum(curriculum)

        async with self.session_factory() as db:
            async with db.begin():
                program = Program(
                    coach_id=coach_id,
                    title=title.strip(),
                    interaction_type=interaction.value,
                    format=variant.kind.value,
                    timezone=timezone,
                    session_duration_minutes=session_duration_minutes,
                    total_sessions=total_sessions,
                    max_participants=max_participants,
                    buffer_minutes=buffer_minutes,
                    advance_booking_days=advance_booking_days,
                    min_notice_hours=min_notice_hours,
                    curriculum=[w.to_dict() for w in weeks] if curriculum is not None else None,
                    cancellation_credit_policy=cancellation_credit_policy,
                    is_active=True,
                )
                db.add(program)
                await db.flush()

        logger.info(f"Created program {program.id} ({program.format}) for coach {coach_id}")
        return program

    async def get_program(self, program_id: Any) -> Program:
        async with self.session_factory() as db:
            return await get_program(db, program_id)

    async def list_programs_for_coach(self, coach_id: str, include_retired: bool = False) -> List[Program]:
        """Programs coached by the caller, newest first"""
        async with self.session_factory() as db:
            stmt = select(Program).where(Program.coach_id == coach_id)
            if not include_retired:
                stmt = stmt.where(Program.is_active.is_(True))
            result = await db.execute(stmt.order_by(Program.created_at.desc(), Program.title))
            return list(result.scalars().all())

    async def retire_program(self, actor_id: str, program_id: Any) -> Program:
        """
        Stop a program from taking new enrollments (coach only).

        Existing enrollments, sessions and submissions are kept, so members
        already enrolled can finish their package.
        """
        async with self.program_transaction(program_id) as (db, program):
            require_coach(actor_id, program)
            program.is_active = False

        logger.info(f"Program {program.id} retired by {actor_id}")
        return program

    async def update_program(self, actor_id: str, program_id: Any, **fields: Any) -> Program:
        """
        Change program configuration.

        Raises:
            ValidationError: Unknown field or invalid value
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        validate_policy_fields(fields)

        async with self.program_transaction(program_id) as (db, program):
            require_coach(actor_id, program)
            for name, value in fields.items():
                setattr(program, name, value)
            # Re-check the format invariants with the new values
            build_format(program.format, program.total_sessions, program.max_participants)

        return program

    async def update_curriculum(
        self,
        actor_id: str,
        program_id: Any,
        curriculum: Optional[List[Dict[str, Any]]],
    ) -> Program:
        weeks = parse_curriculum(curriculum)
        async with self.program_transaction(program_id) as (db, program):
            require_coach(actor_id, program)
            program.curriculum = [w.to_dict() for w in weeks] if curriculum is not None else None
        return program

    async def set_availability(
        self,
        actor_id: str,
        program_id: Any,
        rules: Iterable[RuleInput],
    ) -> List[AvailabilityRule]:
        """Replace all weekly rules of a program"""
        parsed = validate_rules(rules)

        async with self.program_transaction(program_id) as (db, program):
            require_coach(actor_id, program)
            await db.execute(delete(AvailabilityRule).where(AvailabilityRule.program_id == program.id))
            created = [AvailabilityRule(program_id=program.id, is_active=True, **values) for values in parsed]
            db.add_all(created)
            await db.flush()

        logger.info(f"Program {program_id} availability set to {len(created)} rules")
        return sorted(created, key=lambda r: r.day_of_week)

    async def list_availability(self, program_id: Any) -> List[AvailabilityRule]:
        async with self.session_factory() as db:
            program = await get_program(db, program_id)
            result = await db.execute(
                select(AvailabilityRule)
                .where(AvailabilityRule.program_id == program.id)
                .order_by(AvailabilityRule.day_of_week)
            )
            return list(result.scalars().all())

    async def add_blackout(
        self,
        actor_id: str,
        start_date: date,
        end_date: date,
        program_id: Optional[Any] = None,
        reason: Optional[str] = None,
    ) -> BlackoutPeriod:
        """
        Block out an inclusive date range for one program, or for all of
        the caller's programs when program_id is None.
        """
        if end_date < start_date:
            raise ValidationError("Blackout end_date must not be before start_date")

        async with self.session_factory() as db:
            async with db.begin():
                if program_id is not None:
                    program = await get_program(db, program_id)
                    require_coach(actor_id, program)
                blackout = BlackoutPeriod(
                    coach_id=actor_id,
                    program_id=as_uuid(program_id, "Program") if program_id is not None else None,
                    start_date=start_date,
                    end_date=end_date,
                    reason=reason,
                )
                db.add(blackout)
                await db.flush()

        logger.info(f"Blackout {start_date}..{end_date} added by {actor_id} (program {program_id or 'all'})")
        return blackout

    async def delete_blackout(self, actor_id: str, blackout_id: Any) -> None:
        async with self.session_factory() as db:
            async with db.begin():
                blackout = await db.get(BlackoutPeriod, as_uuid(blackout_id, "BlackoutPeriod"))
                if blackout is None or blackout.coach_id != actor_id:
                    raise NotFound.for_entity("BlackoutPeriod", blackout_id)
                await db.delete(blackout)
