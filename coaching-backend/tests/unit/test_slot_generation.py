"""
Unit tests for slot generation

Tests stepping, notice and advance bounds, buffer conflicts and the
Monday 09:00-12:00 scenario with "now" on the preceding Sunday 10:00 UTC.
"""
import pytest
from datetime import date, datetime, time, timedelta, timezone

from coaching_engine.scheduling.availability import WeeklyRule, windows_for
from coaching_engine.scheduling.slots import (
    BUFFER_CONFLICT,
    NO_DURATION,
    OUTSIDE_AVAILABILITY,
    TOO_FAR,
    TOO_SOON,
    BookingPolicy,
    busy_ranges,
    conflicts_with,
    generate_slots,
    slot_violation,
)

MONDAY = date(2026, 11, 2)
SUNDAY_10AM = datetime(2026, 11, 1, 10, 0, tzinfo=timezone.utc)


def utc(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def monday_windows(start=time(9, 0), end=time(12, 0)):
    return windows_for(MONDAY, [WeeklyRule(1, start, end)])


SCENARIO_POLICY = BookingPolicy(
    duration_minutes=60, buffer_minutes=15, min_notice_hours=24, advance_booking_days=14
)


class TestMondayScenario:
    """60-minute sessions, 15-minute buffer, 24h notice, 14-day horizon"""

    def test_notice_floor_excludes_nine_oclock(self):
        """
        Candidates are 09:00, 10:15 and 11:30. 09:00 starts before the
        Monday 10:00 notice floor and 11:30 would end at 12:30, after the
        window closes, so only 10:15 is bookable.
        """
        slots = generate_slots(monday_windows(), SCENARIO_POLICY, [], SUNDAY_10AM)

        assert [s.start for s in slots] == [utc(MONDAY, 10, 15)]
        assert slots[0].end == utc(MONDAY, 11, 15)

    def test_candidates_step_by_duration_plus_buffer(self):
        """With the window open until 12:30 and no notice pressure, all three candidates fit"""
        early = SUNDAY_10AM - timedelta(days=1)

        slots = generate_slots(monday_windows(end=time(12, 30)), SCENARIO_POLICY, [], early)

        assert [s.start for s in slots] == [utc(MONDAY, 9, 0), utc(MONDAY, 10, 15), utc(MONDAY, 11, 30)]

    def test_every_slot_satisfies_the_bounds(self):
        slots = generate_slots(monday_windows(end=time(12, 30)), SCENARIO_POLICY, [], SUNDAY_10AM)

        for slot in slots:
            assert slot.start >= SUNDAY_10AM + timedelta(hours=24)
            assert slot.end <= SUNDAY_10AM + timedelta(days=14)
            assert slot.end <= utc(MONDAY, 12, 30)


class TestNoticeAndAdvance:
    def test_slot_exactly_at_notice_floor_is_bookable(self):
        """now + min_notice == start is allowed"""
        now = utc(MONDAY, 9, 0) - timedelta(hours=24)

        slots = generate_slots(monday_windows(), SCENARIO_POLICY, [], now)

        assert slots[0].start == utc(MONDAY, 9, 0)

    def test_one_minute_inside_notice_is_rejected(self):
        now = utc(MONDAY, 9, 0) - timedelta(hours=24) + timedelta(minutes=1)
        start = utc(MONDAY, 9, 0)

        reason = slot_violation(start, start + timedelta(hours=1), monday_windows(), [], SCENARIO_POLICY, now)

        assert reason == TOO_SOON

    def test_slot_past_advance_horizon_is_rejected(self):
        policy = BookingPolicy(duration_minutes=60, min_notice_hours=0, advance_booking_days=1)
        start = utc(MONDAY, 11, 0)

        reason = slot_violation(start, start + timedelta(hours=1), monday_windows(), [], policy, SUNDAY_10AM)

        assert reason == TOO_FAR

    def test_slot_ending_exactly_at_horizon_is_allowed(self):
        now = utc(MONDAY, 11, 0) - timedelta(days=1)
        policy = BookingPolicy(duration_minutes=60, min_notice_hours=0, advance_booking_days=1)
        start = utc(MONDAY, 10, 0)

        assert slot_violation(start, start + timedelta(hours=1), monday_windows(), [], policy, now) is None


class TestBusyRanges:
    """Existing sessions plus buffer block candidates"""

    def test_booked_slot_is_not_offered(self):
        busy = [(utc(MONDAY, 10, 15), utc(MONDAY, 11, 15))]

        slots = generate_slots(monday_windows(end=time(12, 30)), SCENARIO_POLICY, busy, SUNDAY_10AM)

        # 11:30 keeps exactly one buffer after the booked session
        assert [s.start for s in slots] == [utc(MONDAY, 11, 30)]

    def test_buffer_is_applied_around_existing_sessions(self):
        policy = BookingPolicy(duration_minutes=60, buffer_minutes=15, min_notice_hours=0, advance_booking_days=14)
        busy = [(utc(MONDAY, 10, 0), utc(MONDAY, 11, 0))]

        # Ends 14 minutes before the busy session starts
        assert conflicts_with(utc(MONDAY, 8, 46), utc(MONDAY, 9, 46), busy, policy.buffer)
        # Ends exactly one buffer before it
        assert not conflicts_with(utc(MONDAY, 8, 45), utc(MONDAY, 9, 45), busy, policy.buffer)

    def test_conflict_reason(self):
        policy = BookingPolicy(duration_minutes=60, buffer_minutes=15, min_notice_hours=0, advance_booking_days=14)
        busy = [(utc(MONDAY, 10, 0), utc(MONDAY, 11, 0))]
        start = utc(MONDAY, 9, 0)

        reason = slot_violation(start, start + timedelta(hours=1), monday_windows(), busy, policy, SUNDAY_10AM)

        assert reason == BUFFER_CONFLICT

    def test_busy_ranges_skip_excluded_session(self):
        class Row:
            def __init__(self, id, starts_at, ends_at):
                self.id, self.starts_at, self.ends_at = id, starts_at, ends_at

        rows = [
            Row("a", datetime(2026, 11, 2, 9, 0), datetime(2026, 11, 2, 10, 0)),
            Row("b", utc(MONDAY, 11, 0), utc(MONDAY, 12, 0)),
        ]

        ranges = busy_ranges(rows, exclude_id="b")

        assert ranges == [(utc(MONDAY, 9, 0), utc(MONDAY, 10, 0))]


class TestEdgeCases:
    @pytest.mark.parametrize("duration", [None, 0])
    def test_no_duration_yields_no_slots(self, duration):
        policy = BookingPolicy(duration_minutes=duration)

        assert generate_slots(monday_windows(), policy, [], SUNDAY_10AM) == []
        start = utc(MONDAY, 10, 0)
        assert slot_violation(start, start, monday_windows(), [], policy, SUNDAY_10AM) == NO_DURATION

    def test_no_windows_yields_no_slots(self):
        assert generate_slots([], SCENARIO_POLICY, [], SUNDAY_10AM) == []

    def test_start_outside_window(self):
        start = utc(MONDAY, 13, 0)
        reason = slot_violation(start, start + timedelta(hours=1), monday_windows(), [], SCENARIO_POLICY, SUNDAY_10AM)
        assert reason == OUTSIDE_AVAILABILITY

    def test_duration_longer_than_window(self):
        policy = BookingPolicy(duration_minutes=240, min_notice_hours=0, advance_booking_days=14)
        assert generate_slots(monday_windows(), policy, [], SUNDAY_10AM) == []

    def test_to_dict_uses_iso_strings(self):
        slot = generate_slots(monday_windows(), SCENARIO_POLICY, [], SUNDAY_10AM)[0]
        assert slot.to_dict() == {
            "starts_at": "2026-11-02T10:15:00+00:00",
            "ends_at": "2026-11-02T11:15:00+00:00",
        }
