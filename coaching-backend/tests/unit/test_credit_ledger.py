"""
Unit tests for the credit ledger and commercial formats

Tests credit consumption, exhaustion, release and the format variants.
"""
import pytest

from coaching_engine.enums import CoachingFormat, EnrollmentStatus
from coaching_engine.errors import CreditExhausted, ValidationError
from coaching_engine.scheduling.credits import CreditState, has_credit, release_credit, reserve_credit
from coaching_engine.scheduling.formats import (
    FixedPackage,
    GroupCohort,
    GroupOpen,
    SingleSession,
    Subscription,
    build_format,
    is_credit_bearing,
    is_group,
)

ACTIVE = EnrollmentStatus.ACTIVE.value
COMPLETED = EnrollmentStatus.COMPLETED.value


class TestReserveCredit:
    """Consuming credits"""

    def test_fixed_package_counts_up_to_total(self):
        state = CreditState(ACTIVE, sessions_included=3)
        observed = []

        for _ in range(3):
            state = reserve_credit(state)
            observed.append(state.sessions_used)

        assert observed == [1, 2, 3]
        assert state.status == COMPLETED
        assert state.remaining == 0

    def test_fourth_reservation_is_rejected(self):
        state = CreditState(COMPLETED, sessions_included=3, sessions_used=3)

        with pytest.raises(CreditExhausted):
            reserve_credit(state)

    def test_single_session_allows_one_booking(self):
        state = reserve_credit(CreditState(ACTIVE, sessions_included=1))

        assert state.status == COMPLETED
        assert not has_credit(state)
        with pytest.raises(CreditExhausted):
            reserve_credit(state)

    def test_unlimited_is_untouched(self):
        state = CreditState(ACTIVE, sessions_included=None, sessions_used=0)

        assert reserve_credit(state) == state
        assert state.remaining is None
        assert has_credit(state)


class TestReleaseCredit:
    """Giving credits back"""

    def test_release_reopens_completed_enrollment(self):
        state = CreditState(COMPLETED, sessions_included=3, sessions_used=3)

        released = release_credit(state)

        assert released.sessions_used == 2
        assert released.status == ACTIVE

    def test_release_keeps_other_statuses(self):
        state = CreditState(EnrollmentStatus.CANCELLED.value, sessions_included=3, sessions_used=2)
        assert release_credit(state).status == EnrollmentStatus.CANCELLED.value

    def test_release_without_usage_is_rejected(self):
        with pytest.raises(ValidationError):
            release_credit(CreditState(ACTIVE, sessions_included=3, sessions_used=0))

    def test_apply_to_copies_counters(self):
        class Row:
            status = ACTIVE
            sessions_included = 2
            sessions_used = 1

        row = Row()
        reserve_credit(CreditState.of(row)).apply_to(row)

        assert row.sessions_used == 2
        assert row.status == COMPLETED


class TestFormats:
    """Format variants carry only their own fields"""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("SINGLE_SESSION", SingleSession()),
            ("SUBSCRIPTION", Subscription()),
            ("GROUP_COHORT", GroupCohort(max_participants=None)),
            ("GROUP_OPEN", GroupOpen(max_participants=None)),
        ],
    )
    def test_build_format(self, name, expected):
        assert build_format(name) == expected

    def test_fixed_package_needs_total(self):
        with pytest.raises(ValidationError, match="total_sessions"):
            build_format("FIXED_PACKAGE")
        assert build_format("FIXED_PACKAGE", total_sessions=5) == FixedPackage(5)

    def test_unknown_format(self):
        with pytest.raises(ValidationError, match="Invalid format"):
            build_format("WORKSHOP")

    def test_non_positive_capacity(self):
        with pytest.raises(ValidationError):
            build_format("GROUP_OPEN", max_participants=0)

    def test_credit_allowances(self):
        assert SingleSession().sessions_included == 1
        assert FixedPackage(4).sessions_included == 4
        assert Subscription().sessions_included is None
        assert is_credit_bearing(FixedPackage(4))
        assert not is_credit_bearing(Subscription())

    def test_group_variants(self):
        assert is_group(GroupCohort(10))
        assert GroupCohort(10).capacity == 10
        assert not is_group(SingleSession())
        assert GroupOpen.kind is CoachingFormat.GROUP_OPEN
