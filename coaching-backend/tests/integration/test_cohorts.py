"""
Integration tests for cohorts and group sessions

Tests cohort enrollment limits, group session scheduling, registration
capacity and attendance.
"""
import pytest
from datetime import date, datetime, timezone

from coaching_engine.enums import SessionStatus
from coaching_engine.errors import Conflict, InvalidSessionState, NotFound, Unauthorized, ValidationError

pytestmark = pytest.mark.integration

COACH = "coach-1"
MEMBER = "member-1"
OTHER_MEMBER = "member-2"
THIRD_MEMBER = "member-3"

WEDNESDAY_6PM = datetime(2026, 11, 4, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_group_program(make_program):
    async def _make(format="GROUP_COHORT", **overrides):
        fields = {
            "rules": None,
            "interaction_type": "GROUP",
            "format": format,
            "total_sessions": None,
            "session_duration_minutes": 90,
        }
        fields.update(overrides)
        return await make_program(**fields)

    return _make


class TestCohorts:
    """Cohort setup and enrollment"""

    @pytest.mark.asyncio
    async def test_create_and_list_cohorts(self, services, make_group_program):
        program = await make_group_program()

        cohort = await services.cohorts.create_cohort(
            COACH, program.id, "Fall 2026", date(2026, 11, 2), end_date=date(2026, 12, 14), max_participants=12
        )
        cohorts = await services.cohorts.list_cohorts(program.id)

        assert [c.id for c in cohorts] == [cohort.id]
        assert cohorts[0].max_participants == 12

    @pytest.mark.asyncio
    async def test_only_coach_creates_cohorts(self, services, make_group_program):
        program = await make_group_program()
        with pytest.raises(Unauthorized):
            await services.cohorts.create_cohort(MEMBER, program.id, "Mine", date(2026, 11, 2))

    @pytest.mark.asyncio
    async def test_cohort_requires_cohort_program(self, services, make_group_program, make_program):
        open_program = await make_group_program(format="GROUP_OPEN")
        one_on_one = await make_program()

        for program in (open_program, one_on_one):
            with pytest.raises(ValidationError):
                await services.cohorts.create_cohort(COACH, program.id, "Nope", date(2026, 11, 2))

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, services, make_group_program):
        program = await make_group_program()
        with pytest.raises(ValidationError):
            await services.cohorts.create_cohort(
                COACH, program.id, "Backwards", date(2026, 11, 10), end_date=date(2026, 11, 1)
            )

    @pytest.mark.asyncio
    async def test_full_cohort_rejects_enrollment(self, services, make_group_program, enroll):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Small", date(2026, 11, 2), max_participants=2)

        await enroll(program, MEMBER, cohort_id=cohort.id)
        await enroll(program, OTHER_MEMBER, cohort_id=cohort.id)
        with pytest.raises(Conflict):
            await enroll(program, THIRD_MEMBER, cohort_id=cohort.id)

        assert await services.cohorts.count_members(cohort.id) == 2

    @pytest.mark.asyncio
    async def test_closed_cohort_rejects_enrollment(self, services, make_group_program, enroll):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Closed", date(2026, 11, 2))
        await services.cohorts.update_cohort(COACH, cohort.id, enrollment_open=False)

        with pytest.raises(Conflict):
            await enroll(program, MEMBER, cohort_id=cohort.id)

    @pytest.mark.asyncio
    async def test_cohort_program_requires_cohort(self, services, make_group_program, enroll):
        program = await make_group_program()
        with pytest.raises(ValidationError):
            await enroll(program, MEMBER)

    @pytest.mark.asyncio
    async def test_group_enrollment_is_unlimited(self, services, make_group_program, enroll):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))

        enrollment = await enroll(program, MEMBER, cohort_id=cohort.id)

        assert enrollment.sessions_included is None
        credits = await services.enrollments.get_credit_state(MEMBER, enrollment.id)
        assert credits.unlimited


class TestGroupSessions:
    """Coach-scheduled sessions and registration"""

    @pytest.mark.asyncio
    async def test_group_session_uses_program_duration(self, services, make_group_program):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))

        session = await services.cohorts.add_group_session(COACH, cohort.id, WEDNESDAY_6PM, week_number=1)

        assert session.is_group
        assert session.cohort_id == cohort.id
        assert session.ends_at == datetime(2026, 11, 4, 19, 30, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_group_session_in_past_rejected(self, services, make_group_program):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))

        with pytest.raises(ValidationError):
            await services.cohorts.add_group_session(COACH, cohort.id, datetime(2026, 10, 30, 18, 0, tzinfo=timezone.utc))

    @pytest.mark.asyncio
    async def test_cohort_members_register(self, services, make_group_program, enroll, sink):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))
        await enroll(program, MEMBER, cohort_id=cohort.id)
        session = await services.cohorts.add_group_session(COACH, cohort.id, WEDNESDAY_6PM)

        attendee = await services.booking.register_for_session(MEMBER, session.id)
        again = await services.booking.register_for_session(MEMBER, session.id)

        assert again.id == attendee.id
        assert sink.names().count("attendee.registered") == 1

    @pytest.mark.asyncio
    async def test_ended_session_takes_no_registration(self, services, make_group_program, enroll, clock):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))
        await enroll(program, MEMBER, cohort_id=cohort.id)
        session = await services.cohorts.add_group_session(COACH, cohort.id, WEDNESDAY_6PM)

        clock.advance(days=4)  # Thursday 2026-11-05 10:00
        with pytest.raises(InvalidSessionState):
            await services.booking.register_for_session(MEMBER, session.id)

        stored = await services.lifecycle.get_session_for(COACH, session.id)
        assert stored.status == SessionStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_non_member_cannot_register(self, services, make_group_program):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))
        session = await services.cohorts.add_group_session(COACH, cohort.id, WEDNESDAY_6PM)

        with pytest.raises(NotFound):
            await services.booking.register_for_session(OTHER_MEMBER, session.id)

    @pytest.mark.asyncio
    async def test_open_session_capacity(self, services, make_group_program, enroll):
        program = await make_group_program(format="GROUP_OPEN", max_participants=1)
        await enroll(program, MEMBER)
        await enroll(program, OTHER_MEMBER)
        session = await services.cohorts.add_open_session(COACH, program.id, WEDNESDAY_6PM)

        await services.booking.register_for_session(MEMBER, session.id)
        with pytest.raises(Conflict) as exc_info:
            await services.booking.register_for_session(OTHER_MEMBER, session.id)
        assert exc_info.value.retryable

        await services.booking.cancel_group_registration(MEMBER, session.id)
        await services.booking.register_for_session(OTHER_MEMBER, session.id)

    @pytest.mark.asyncio
    async def test_one_on_one_session_takes_no_registration(self, services, make_program, enroll):
        program = await make_program()
        enrollment = await enroll(program)
        session = await services.booking.book_one_on_one(
            MEMBER, enrollment.id, datetime(2026, 11, 9, 9, 0, tzinfo=timezone.utc)
        )

        with pytest.raises(ValidationError):
            await services.booking.register_for_session(MEMBER, session.id)

    @pytest.mark.asyncio
    async def test_group_program_cannot_reserve_slots(self, services, make_group_program, enroll):
        program = await make_group_program(format="GROUP_OPEN")
        enrollment = await enroll(program)

        with pytest.raises(ValidationError):
            await services.booking.reserve_slot(MEMBER, enrollment.id, WEDNESDAY_6PM)

    @pytest.mark.asyncio
    async def test_attendance_and_reschedule(self, services, make_group_program, enroll):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))
        await enroll(program, MEMBER, cohort_id=cohort.id)
        session = await services.cohorts.add_group_session(COACH, cohort.id, WEDNESDAY_6PM)
        await services.booking.register_for_session(MEMBER, session.id)

        assert await services.lifecycle.mark_attendance(COACH, session.id, [(MEMBER, True)]) == 1

        later = datetime(2026, 11, 5, 18, 0, tzinfo=timezone.utc)
        moved = await services.lifecycle.reschedule_session(COACH, session.id, later)
        assert moved.starts_at == later
        assert moved.original_starts_at == WEDNESDAY_6PM

        with pytest.raises(Unauthorized):
            await services.lifecycle.reschedule_session(MEMBER, session.id, later)

    @pytest.mark.asyncio
    async def test_cohort_with_scheduled_sessions_cannot_be_deleted(self, services, make_group_program):
        program = await make_group_program()
        cohort = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))
        session = await services.cohorts.add_group_session(COACH, cohort.id, WEDNESDAY_6PM)

        with pytest.raises(ValidationError):
            await services.cohorts.delete_cohort(COACH, cohort.id)

        cancelled = await services.lifecycle.cancel_session(COACH, session.id)
        assert cancelled.status == SessionStatus.CANCELLED.value
        await services.cohorts.delete_cohort(COACH, cohort.id)
        assert await services.cohorts.list_cohorts(program.id) == []
