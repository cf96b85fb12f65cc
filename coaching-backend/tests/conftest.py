"""
Shared test fixtures.

Integration tests run against a temporary SQLite file through aiosqlite, with
a fixed clock so slot arithmetic is deterministic. "Now" is Sunday
2026-11-01 10:00 UTC unless a test moves the clock.
"""
import os

# Settings are read once; point them at SQLite before the package is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["NOTIFICATION_BACKEND"] = "log"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["CANCELLATION_CREDIT_POLICY"] = "FORFEIT"
os.environ["FEEDBACK_OVERWRITE"] = "true"

from datetime import datetime, timedelta, timezone

import pytest

import coaching_engine.models  # noqa: F401  (registers tables on Base.metadata)
from coaching_engine.api.dependencies import build_services
from coaching_engine.database import Base, build_engine, build_session_factory
from coaching_engine.services.notifications import RecordingNotificationSink
from coaching_engine.services.program_service import RuleInput

SUNDAY_10AM = datetime(2026, 11, 1, 10, 0, tzinfo=timezone.utc)

COACH = "coach-1"
MEMBER = "member-1"
OTHER_MEMBER = "member-2"


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(SUNDAY_10AM)


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
async def engine(tmp_path):
    """Fresh database file per test"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'coaching.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def services(session_factory, sink, clock):
    return build_services(session_factory=session_factory, notifier=sink, clock=clock, feedback_overwrite=True)


@pytest.fixture
def make_program(services):
    """Create a program with weekly rules; defaults match a 1:1 package"""

    async def _make(rules=((1, "09:00", "17:00"),), **overrides):
        fields = {
            "title": "Career Coaching",
            "interaction_type": "ONE_ON_ONE",
            "format": "FIXED_PACKAGE",
            "timezone": "UTC",
            "session_duration_minutes": 60,
            "total_sessions": 3,
            "buffer_minutes": 0,
            "advance_booking_days": 14,
            "min_notice_hours": 24,
        }
        fields.update(overrides)
        program = await services.programs.create_program(COACH, **fields)
        if rules:
            await services.programs.set_availability(
                COACH, program.id, [RuleInput(day, start, end) for day, start, end in rules]
            )
        return program

    return _make


@pytest.fixture
def enroll(services):
    async def _enroll(program, user_id=MEMBER, **kwargs):
        return await services.enrollments.confirm_enrollment(program.id, user_id, **kwargs)

    return _enroll
