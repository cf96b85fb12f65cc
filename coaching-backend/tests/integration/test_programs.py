"""
Integration tests for coach-side program management
"""
import pytest

from coaching_engine.errors import Unauthorized, ValidationError

pytestmark = pytest.mark.integration

COACH = "coach-1"
OTHER_COACH = "coach-2"
MEMBER = "member-1"


class TestCoachPrograms:
    @pytest.mark.asyncio
    async def test_lists_only_own_programs(self, services, make_program):
        first = await make_program(title="Career Coaching")
        second = await make_program(title="Interview Prep")
        await services.programs.create_program(
            OTHER_COACH, "Elsewhere", "ONE_ON_ONE", "SUBSCRIPTION", session_duration_minutes=30
        )

        programs = await services.programs.list_programs_for_coach(COACH)

        assert {p.id for p in programs} == {first.id, second.id}
        assert await services.programs.list_programs_for_coach(MEMBER) == []

    @pytest.mark.asyncio
    async def test_retired_program_stops_enrollment(self, services, make_program, enroll):
        program = await make_program()
        enrollment = await enroll(program)

        retired = await services.programs.retire_program(COACH, program.id)

        assert retired.is_active is False
        assert await services.programs.list_programs_for_coach(COACH) == []
        assert [p.id for p in await services.programs.list_programs_for_coach(COACH, include_retired=True)] == [program.id]
        with pytest.raises(ValidationError):
            await enroll(program, "member-2")
        # Enrolled members keep their access
        kept = await services.enrollments.get_enrollment(MEMBER, enrollment.id)
        assert kept.id == enrollment.id

    @pytest.mark.asyncio
    async def test_only_coach_retires(self, services, make_program):
        program = await make_program()
        with pytest.raises(Unauthorized):
            await services.programs.retire_program(MEMBER, program.id)
