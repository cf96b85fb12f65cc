"""
Credit Ledger

Pure transitions over an enrollment's session credits. Enrollments without
sessions_included (subscriptions and group formats) are unlimited and every
operation leaves them untouched.
"""
from dataclasses import dataclass, replace
from typing import Any, Optional

from coaching_engine.enums import EnrollmentStatus
from coaching_engine.errors import CreditExhausted, ValidationError


@dataclass(frozen=True)
class CreditState:
    status: str
    sessions_included: Optional[int]
    sessions_used: int = 0

    @classmethod
    def of(cls, enrollment: Any) -> "CreditState":
        return cls(
            status=enrollment.status,
            sessions_included=enrollment.sessions_included,
            sessions_used=enrollment.sessions_used or 0,
        )

    @property
    def unlimited(self) -> bool:
        return self.sessions_included is None

    @property
    def remaining(self) -> Optional[int]:
        if self.unlimited:
            return None
        return self.sessions_included - self.sessions_used

    def apply_to(self, enrollment: Any) -> None:
        enrollment.status = self.status
        enrollment.sessions_used = self.sessions_used


def has_credit(state: CreditState) -> bool:
    return state.unlimited or state.remaining > 0


def reserve_credit(state: CreditState) -> CreditState:
    """
    Consume one credit.

    Marks the enrollment COMPLETED once the last credit is used.

    Raises:
        CreditExhausted: No credit remains
    """
    if state.unlimited:
        return state
    if not has_credit(state):
        raise CreditExhausted(
            f"All {state.sessions_included} sessions have been used",
            details={"sessions_included": state.sessions_included, "sessions_used": state.sessions_used},
        )

    used = state.sessions_used + 1
    status = EnrollmentStatus.COMPLETED.value if used == state.sessions_included else state.status
    return replace(state, sessions_used=used, status=status)


def release_credit(state: CreditState) -> CreditState:
    """
    Give one credit back, reopening an enrollment that was completed by
    exhausting its credits.

    Raises:
        ValidationError: Nothing has been consumed
    """
    if state.unlimited:
        return state
    if state.sessions_used <= 0:
        raise ValidationError("No consumed credit to release")

    status = state.status
    if status == EnrollmentStatus.COMPLETED.value:
        status = EnrollmentStatus.ACTIVE.value
    return replace(state, sessions_used=state.sessions_used - 1, status=status)
