"""
Availability Model

Weekly recurring rules and blackout exclusions, and the arithmetic that
turns them into concrete UTC windows for a calendar date in the program's
timezone.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timezone as dt_timezone
from typing import Any, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

Window = Tuple[datetime, datetime]


@dataclass(frozen=True)
class WeeklyRule:
    """A weekly window, day_of_week 0=Sunday ... 6=Saturday"""

    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Any) -> "WeeklyRule":
        return cls(
            day_of_week=row.day_of_week,
            start_time=row.start_time,
            end_time=row.end_time,
            is_active=bool(row.is_active),
        )


@dataclass(frozen=True)
class Blackout:
    """Inclusive date range; program_id None means coach-wide"""

    start_date: date
    end_date: date
    program_id: Optional[Any] = None

    @classmethod
    def from_row(cls, row: Any) -> "Blackout":
        return cls(start_date=row.start_date, end_date=row.end_date, program_id=row.program_id)

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def applies_to(self, program_id: Optional[Any]) -> bool:
        return self.program_id is None or program_id is None or self.program_id == program_id


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC value.

    Naive values are taken to already be UTC (SQLite drops tzinfo on read).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=dt_timezone.utc)
    return value.astimezone(dt_timezone.utc)


def day_of_week(day: date) -> int:
    """Day index with 0=Sunday, matching AvailabilityRule.day_of_week"""
    return (day.weekday() + 1) % 7


def local_to_utc(day: date, at: time, tz_name: str) -> datetime:
    """Interpret a wall-clock time on a date in tz_name and return it in UTC"""
    return datetime.combine(day, at, tzinfo=ZoneInfo(tz_name)).astimezone(dt_timezone.utc)


def local_date(moment: datetime, tz_name: str) -> date:
    """Calendar date of a moment as seen in tz_name"""
    return ensure_utc(moment).astimezone(ZoneInfo(tz_name)).date()


def is_blacked_out(day: date, blackouts: Iterable[Blackout], program_id: Optional[Any] = None) -> bool:
    """True if any blackout covering the program (or coach-wide) includes day"""
    return any(b.covers(day) and b.applies_to(program_id) for b in blackouts)


def active_rules_for(day: date, rules: Iterable[WeeklyRule]) -> List[WeeklyRule]:
    dow = day_of_week(day)
    return sorted(
        (r for r in rules if r.is_active and r.day_of_week == dow),
        key=lambda r: r.start_time,
    )


def has_rule_for(day: date, rules: Iterable[WeeklyRule]) -> bool:
    return bool(active_rules_for(day, rules))


def windows_for(
    day: date,
    rules: Iterable[WeeklyRule],
    blackouts: Iterable[Blackout] = (),
    tz_name: str = "UTC",
    program_id: Optional[Any] = None,
) -> List[Window]:
    """
    Availability windows for a calendar date.

    Args:
        day: Date in the program's local calendar
        rules: Weekly rules of the program
        blackouts: Blackouts of the program's coach
        tz_name: IANA timezone of the program
        program_id: Program the windows are for (filters program-specific blackouts)

    Returns:
        List of (start, end) UTC datetimes, ordered by start. Empty when the
        weekday has no active rule or the date is blacked out.
    """
    if is_blacked_out(day, blackouts, program_id):
        return []

    return [
        (local_to_utc(day, rule.start_time, tz_name), local_to_utc(day, rule.end_time, tz_name))
        for rule in active_rules_for(day, rules)
    ]
