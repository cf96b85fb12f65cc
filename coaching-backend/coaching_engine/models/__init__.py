"""SQLAlchemy ORM Models for the coaching scheduling schema"""
from coaching_engine.models.program import Program
from coaching_engine.models.availability import AvailabilityRule, BlackoutPeriod
from coaching_engine.models.cohort import Cohort
from coaching_engine.models.enrollment import Enrollment
from coaching_engine.models.session import Session, SessionAttendee
from coaching_engine.models.submission import Submission

__all__ = [
    "Program",
    "AvailabilityRule",
    "BlackoutPeriod",
    "Cohort",
    "Enrollment",
    "Session",
    "SessionAttendee",
    "Submission",
]
