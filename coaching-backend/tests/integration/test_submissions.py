"""
Integration tests for submissions, review and curriculum progress
"""
import pytest
from datetime import date, datetime, timezone

from coaching_engine.api.dependencies import build_services
from coaching_engine.errors import Conflict, Unauthorized, ValidationError

pytestmark = pytest.mark.integration

COACH = "coach-1"
MEMBER = "member-1"
OTHER_MEMBER = "member-2"

CURRICULUM = [
    {"week": 1, "title": "Foundations", "deliverable_prompt": "List three goals"},
    {"week": 2, "title": "Positioning"},
    {"week": 3, "title": "Interviews"},
]


WEDNESDAY_6PM = datetime(2026, 11, 4, 18, 0, tzinfo=timezone.utc)


def monday(hour: int) -> datetime:
    return datetime(2026, 11, 9, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
async def enrollment(make_program, enroll):
    program = await make_program(format="SUBSCRIPTION", total_sessions=None, curriculum=CURRICULUM)
    return await enroll(program)


class TestSubmitWork:
    @pytest.mark.asyncio
    async def test_member_submits_for_week(self, services, enrollment, sink):
        submission = await services.submissions.submit_work(MEMBER, enrollment.id, week_number=1, content="Goals")

        assert submission.week_number == 1
        assert submission.user_id == MEMBER
        assert submission.feedback is None
        assert sink.names() == ["submission.created"]

    @pytest.mark.asyncio
    async def test_several_submissions_per_week_allowed(self, services, enrollment):
        await services.submissions.submit_work(MEMBER, enrollment.id, week_number=1, content="Draft")
        await services.submissions.submit_work(MEMBER, enrollment.id, week_number=1, file_url="https://files/final.pdf")

        submissions = await services.submissions.list_submissions_for_enrollment(MEMBER, enrollment.id)
        assert len(submissions) == 2

    @pytest.mark.asyncio
    async def test_coach_cannot_submit(self, services, enrollment):
        with pytest.raises(Unauthorized):
            await services.submissions.submit_work(COACH, enrollment.id, week_number=1, content="x")

    @pytest.mark.asyncio
    async def test_unknown_week_rejected(self, services, enrollment):
        with pytest.raises(ValidationError):
            await services.submissions.submit_work(MEMBER, enrollment.id, week_number=9, content="x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [{"content": "x"}, {"week_number": 1}, {"week_number": 1, "content": "  "}])
    async def test_incomplete_submission_rejected(self, services, enrollment, kwargs):
        with pytest.raises(ValidationError):
            await services.submissions.submit_work(MEMBER, enrollment.id, **kwargs)


class TestReviewWork:
    @pytest.mark.asyncio
    async def test_coach_reviews(self, services, enrollment, clock):
        submission = await services.submissions.submit_work(MEMBER, enrollment.id, week_number=1, content="Goals")

        reviewed = await services.submissions.review_work(COACH, submission.id, "Sharpen goal two")

        assert reviewed.feedback == "Sharpen goal two"
        assert reviewed.feedback_at == clock()
        assert reviewed.reviewed_by_id == COACH

    @pytest.mark.asyncio
    async def test_member_cannot_review(self, services, enrollment):
        submission = await services.submissions.submit_work(MEMBER, enrollment.id, week_number=1, content="Goals")
        with pytest.raises(Unauthorized):
            await services.submissions.review_work(MEMBER, submission.id, "Looks great")

    @pytest.mark.asyncio
    async def test_re_review_overwrites_by_default(self, services, enrollment):
        submission = await services.submissions.submit_work(MEMBER, enrollment.id, week_number=1, content="Goals")

        await services.submissions.review_work(COACH, submission.id, "First pass")
        reviewed = await services.submissions.review_work(COACH, submission.id, "Second pass")

        assert reviewed.feedback == "Second pass"

    @pytest.mark.asyncio
    async def test_re_review_rejected_when_overwrite_disabled(self, session_factory, sink, clock, enrollment):
        strict = build_services(session_factory=session_factory, notifier=sink, clock=clock, feedback_overwrite=False)
        submission = await strict.submissions.submit_work(MEMBER, enrollment.id, week_number=1, content="Goals")

        await strict.submissions.review_work(COACH, submission.id, "First pass")
        with pytest.raises(Conflict):
            await strict.submissions.review_work(COACH, submission.id, "Second pass")

    @pytest.mark.asyncio
    async def test_program_listing_is_coach_only(self, services, enrollment):
        await services.submissions.submit_work(MEMBER, enrollment.id, week_number=2, content="Pitch")

        listed = await services.submissions.list_submissions_for_program(COACH, enrollment.program_id)
        assert [s.week_number for s in listed] == [2]
        with pytest.raises(Unauthorized):
            await services.submissions.list_submissions_for_program(MEMBER, enrollment.program_id)


class TestProgress:
    """Progress is recomputed from sessions and submissions"""

    @pytest.mark.asyncio
    async def test_progress_follows_completed_sessions(self, services, enrollment):
        first = await services.booking.book_one_on_one(MEMBER, enrollment.id, monday(9), week_number=1)
        await services.booking.book_one_on_one(MEMBER, enrollment.id, monday(11), week_number=2)
        await services.submissions.submit_work(MEMBER, enrollment.id, week_number=1, content="Goals")

        before = await services.submissions.get_enrollment_progress(MEMBER, enrollment.id)
        await services.lifecycle.complete_session(COACH, first.id)
        after = await services.submissions.get_enrollment_progress(MEMBER, enrollment.id)

        assert before.current_week == 1
        assert after.current_week == 2
        assert [w.is_completed for w in after.weeks] == [True, False, False]
        assert after.weeks[0].has_submission
        assert after.weeks[1].session is not None
        assert after.weeks[2].session is None

    @pytest.mark.asyncio
    async def test_progress_hidden_from_other_members(self, services, enrollment):
        with pytest.raises(Unauthorized):
            await services.submissions.get_enrollment_progress(OTHER_MEMBER, enrollment.id)


class TestSessionLinks:
    """A submission may only point at a session its enrollment takes part in"""

    @pytest.mark.asyncio
    async def test_own_session_links(self, services, enrollment):
        session = await services.booking.book_one_on_one(MEMBER, enrollment.id, monday(9), week_number=2)

        submission = await services.submissions.submit_work(MEMBER, enrollment.id, session_id=session.id, content="Notes")

        assert submission.session_id == session.id
        assert submission.week_number == 2

    @pytest.mark.asyncio
    async def test_other_members_session_rejected(self, services, make_program, enroll):
        program = await make_program(format="SUBSCRIPTION", total_sessions=None)
        mine = await enroll(program, MEMBER)
        theirs = await enroll(program, OTHER_MEMBER)
        session = await services.booking.book_one_on_one(OTHER_MEMBER, theirs.id, monday(9), week_number=1)

        with pytest.raises(ValidationError):
            await services.submissions.submit_work(MEMBER, mine.id, session_id=session.id, content="Not mine")

        assert await services.submissions.list_submissions_for_enrollment(MEMBER, mine.id) == []

    @pytest.mark.asyncio
    async def test_other_cohorts_session_rejected(self, services, make_program, enroll):
        program = await make_program(
            rules=None, interaction_type="GROUP", format="GROUP_COHORT", total_sessions=None
        )
        fall = await services.cohorts.create_cohort(COACH, program.id, "Fall", date(2026, 11, 2))
        spring = await services.cohorts.create_cohort(COACH, program.id, "Spring", date(2027, 3, 1))
        enrollment = await enroll(program, MEMBER, cohort_id=fall.id)
        own = await services.cohorts.add_group_session(COACH, fall.id, WEDNESDAY_6PM)
        foreign = await services.cohorts.add_group_session(COACH, spring.id, WEDNESDAY_6PM)

        with pytest.raises(ValidationError):
            await services.submissions.submit_work(MEMBER, enrollment.id, session_id=foreign.id, content="x")
        submission = await services.submissions.submit_work(MEMBER, enrollment.id, session_id=own.id, content="x")
        assert submission.session_id == own.id

    @pytest.mark.asyncio
    async def test_open_session_needs_registration(self, services, make_program, enroll):
        program = await make_program(
            rules=None, interaction_type="GROUP", format="GROUP_OPEN", total_sessions=None
        )
        enrollment = await enroll(program, MEMBER)
        session = await services.cohorts.add_open_session(COACH, program.id, WEDNESDAY_6PM)

        with pytest.raises(ValidationError):
            await services.submissions.submit_work(MEMBER, enrollment.id, session_id=session.id, content="x")

        await services.booking.register_for_session(MEMBER, session.id)
        submission = await services.submissions.submit_work(MEMBER, enrollment.id, session_id=session.id, content="x")
        assert submission.session_id == session.id
