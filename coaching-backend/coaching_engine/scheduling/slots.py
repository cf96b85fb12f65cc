"""
Slot Generator

Derives bookable slots from availability windows, the program's timing
policy and the sessions already holding the calendar. The same checks back
the commit-time re-validation in the booking coordinator.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from coaching_engine.scheduling.availability import Window, ensure_utc

Busy = Tuple[datetime, datetime]

OUTSIDE_AVAILABILITY = "outside_availability"
TOO_SOON = "min_notice"
TOO_FAR = "advance_window"
BUFFER_CONFLICT = "conflict"
NO_DURATION = "no_duration"


@dataclass(frozen=True)
class Slot:
    """A candidate bookable window (UTC)"""

    start: datetime
    end: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"starts_at": self.start.isoformat(), "ends_at": self.end.isoformat()}


@dataclass(frozen=True)
class BookingPolicy:
    """Timing rules of a program for one booking context"""

    duration_minutes: Optional[int]
    buffer_minutes: int = 0
    min_notice_hours: int = 0
    advance_booking_days: int = 0

    @property
    def is_bookable(self) -> bool:
        return bool(self.duration_minutes) and self.duration_minutes > 0

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes or 0)

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_minutes)

    def earliest_start(self, now: datetime) -> datetime:
        return ensure_utc(now) + timedelta(hours=self.min_notice_hours)

    def latest_end(self, now: datetime) -> datetime:
        return ensure_utc(now) + timedelta(days=self.advance_booking_days)


def conflicts_with(start: datetime, end: datetime, busy: Iterable[Busy], buffer: timedelta) -> bool:
    """True if [start, end) padded by buffer intersects any busy range"""
    padded_start = start - buffer
    padded_end = end + buffer
    return any(padded_start < b_end and padded_end > b_start for b_start, b_end in busy)


def slot_violation(
    start: datetime,
    end: datetime,
    windows: Sequence[Window],
    busy: Iterable[Busy],
    policy: BookingPolicy,
    now: datetime,
) -> Optional[str]:
    """
    Check one candidate against every slot rule.

    Returns:
        None when the slot is bookable, otherwise the first violated rule
    """
    if not policy.is_bookable:
        return NO_DURATION
    if not any(w_start <= start and end <= w_end for w_start, w_end in windows):
        return OUTSIDE_AVAILABILITY
    if start < policy.earliest_start(now):
        return TOO_SOON
    if end > policy.latest_end(now):
        return TOO_FAR
    if conflicts_with(start, end, busy, policy.buffer):
        return BUFFER_CONFLICT
    return None


def generate_slots(
    windows: Sequence[Window],
    policy: BookingPolicy,
    busy: Iterable[Busy],
    now: datetime,
) -> List[Slot]:
    """
    Generate the bookable slots inside the given windows.

    Candidates start at each window's start and advance by duration plus
    buffer, so back-to-back slots keep the buffer between them. A candidate
    must end inside its window.

    Args:
        windows: UTC availability windows for one day
        policy: Duration, buffer, notice and advance rules
        busy: (start, end) of SCHEDULED sessions that hold the calendar
        now: Current time

    Returns:
        Slots ordered by start; empty when the policy has no usable duration
    """
    if not policy.is_bookable:
        return []

    busy = [(ensure_utc(s), ensure_utc(e)) for s, e in busy]
    step = policy.duration + policy.buffer
    slots: List[Slot] = []

    for w_start, w_end in sorted(windows):
        cursor = w_start
        while cursor + policy.duration <= w_end:
            end = cursor + policy.duration
            if slot_violation(cursor, end, [(w_start, w_end)], busy, policy, now) is None:
                slots.append(Slot(start=cursor, end=end))
            cursor += step

    return slots


def busy_ranges(sessions: Iterable[Any], exclude_id: Optional[Any] = None) -> List[Busy]:
    """(start, end) ranges of session rows, optionally skipping one session"""
    return [
        (ensure_utc(s.starts_at), ensure_utc(s.ends_at))
        for s in sessions
        if exclude_id is None or s.id != exclude_id
    ]
