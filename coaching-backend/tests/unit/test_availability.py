"""
Unit tests for the availability model

Tests weekday indexing, timezone conversion and blackout exclusion.
"""
import pytest
from datetime import date, datetime, time, timezone

from coaching_engine.scheduling.availability import (
    Blackout,
    WeeklyRule,
    day_of_week,
    ensure_utc,
    has_rule_for,
    is_blacked_out,
    local_date,
    windows_for,
)

MONDAY = date(2026, 11, 2)


class TestDayOfWeek:
    """0 = Sunday through 6 = Saturday"""

    def test_sunday_is_zero(self):
        assert day_of_week(date(2026, 11, 1)) == 0

    def test_monday_is_one(self):
        assert day_of_week(MONDAY) == 1

    def test_saturday_is_six(self):
        assert day_of_week(date(2026, 11, 7)) == 6


class TestEnsureUtc:
    def test_naive_is_taken_as_utc(self):
        value = ensure_utc(datetime(2026, 11, 2, 9, 0))
        assert value == datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)

    def test_aware_is_converted(self):
        from zoneinfo import ZoneInfo

        value = ensure_utc(datetime(2026, 11, 2, 9, 0, tzinfo=ZoneInfo("Europe/Berlin")))
        assert value == datetime(2026, 11, 2, 8, 0, tzinfo=timezone.utc)


class TestWindows:
    """Rule windows for a calendar date"""

    def test_window_for_matching_weekday(self):
        rules = [WeeklyRule(1, time(9, 0), time(12, 0))]

        windows = windows_for(MONDAY, rules)

        assert windows == [
            (
                datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc),
                datetime(2026, 11, 2, 12, 0, tzinfo=timezone.utc),
            )
        ]

    def test_other_weekday_has_no_window(self):
        rules = [WeeklyRule(1, time(9, 0), time(12, 0))]
        assert windows_for(date(2026, 11, 3), rules) == []

    def test_inactive_rule_ignored(self):
        rules = [WeeklyRule(1, time(9, 0), time(12, 0), is_active=False)]
        assert windows_for(MONDAY, rules) == []
        assert not has_rule_for(MONDAY, rules)

    def test_windows_sorted_by_start(self):
        rules = [
            WeeklyRule(1, time(14, 0), time(16, 0)),
            WeeklyRule(1, time(9, 0), time(10, 0)),
        ]
        windows = windows_for(MONDAY, rules)
        assert [w[0].hour for w in windows] == [9, 14]

    def test_program_timezone_is_converted_to_utc(self):
        """09:00 in New York on 2026-11-02 (EST, UTC-5) is 14:00 UTC"""
        rules = [WeeklyRule(1, time(9, 0), time(12, 0))]

        windows = windows_for(MONDAY, rules, tz_name="America/New_York")

        assert windows[0][0] == datetime(2026, 11, 2, 14, 0, tzinfo=timezone.utc)
        assert windows[0][1] == datetime(2026, 11, 2, 17, 0, tzinfo=timezone.utc)

    def test_local_date_crosses_midnight(self):
        moment = datetime(2026, 11, 2, 3, 0, tzinfo=timezone.utc)
        assert local_date(moment, "America/New_York") == date(2026, 11, 1)


class TestBlackouts:
    """Blacked-out dates produce no windows"""

    def test_blackout_range_is_inclusive(self):
        blackout = Blackout(date(2026, 11, 2), date(2026, 11, 4))
        assert blackout.covers(date(2026, 11, 2))
        assert blackout.covers(date(2026, 11, 4))
        assert not blackout.covers(date(2026, 11, 5))

    def test_coach_wide_blackout_applies_to_every_program(self):
        blackout = Blackout(MONDAY, MONDAY, program_id=None)
        assert is_blacked_out(MONDAY, [blackout], program_id="p1")

    def test_program_blackout_does_not_affect_other_programs(self):
        blackout = Blackout(MONDAY, MONDAY, program_id="p1")
        assert is_blacked_out(MONDAY, [blackout], program_id="p1")
        assert not is_blacked_out(MONDAY, [blackout], program_id="p2")

    def test_blacked_out_day_has_no_windows(self):
        rules = [WeeklyRule(1, time(9, 0), time(12, 0))]
        blackouts = [Blackout(MONDAY, MONDAY)]
        assert windows_for(MONDAY, rules, blackouts) == []

    @pytest.mark.parametrize("day", [date(2026, 11, 1), date(2026, 11, 3)])
    def test_blackout_outside_range_keeps_rules(self, day):
        rules = [WeeklyRule(day_of_week(day), time(9, 0), time(12, 0))]
        blackouts = [Blackout(MONDAY, MONDAY)]
        assert len(windows_for(day, rules, blackouts)) == 1
