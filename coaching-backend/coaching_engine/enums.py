"""Enumerations shared by the models and the scheduling core"""
import enum


class InteractionType(str, enum.Enum):
    ONE_ON_ONE = "ONE_ON_ONE"
    GROUP = "GROUP"


class CoachingFormat(str, enum.Enum):
    SINGLE_SESSION = "SINGLE_SESSION"
    FIXED_PACKAGE = "FIXED_PACKAGE"
    SUBSCRIPTION = "SUBSCRIPTION"
    GROUP_COHORT = "GROUP_COHORT"
    GROUP_OPEN = "GROUP_OPEN"


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class SessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_SESSION_STATUSES = frozenset({SessionStatus.COMPLETED.value, SessionStatus.CANCELLED.value})
