"""
Domain exceptions for the coaching engine.

Each exception carries a stable error code and HTTP status so the API layer
can render it without knowing the individual types. SlotUnavailable and
Conflict are retryable: callers should re-query and try again.
"""
from typing import Any, Dict, Optional


class CoachingError(Exception):
    """Base exception for all coaching engine errors."""

    status_code = 500
    default_code = "INTERNAL_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationError(CoachingError):
    """Raised when input is malformed or violates a static rule."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class InvalidSessionState(ValidationError):
    """Raised when a session transition is attempted from a terminal state."""

    default_code = "INVALID_SESSION_STATE"


class NotFound(CoachingError):
    """Raised when a program, enrollment, session or submission does not exist."""

    status_code = 404
    default_code = "NOT_FOUND"

    @classmethod
    def for_entity(cls, entity: str, entity_id: Any) -> "NotFound":
        return cls(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": str(entity_id)},
        )


class Unauthorized(CoachingError):
    """Raised when the caller is neither the enrollment owner nor the coach."""

    status_code = 403
    default_code = "UNAUTHORIZED"


class EnrollmentInactive(CoachingError):
    """Raised when booking against an enrollment that is not ACTIVE."""

    status_code = 422
    default_code = "ENROLLMENT_INACTIVE"


class CreditExhausted(CoachingError):
    """Raised when a credit-bearing enrollment has no sessions left."""

    status_code = 422
    default_code = "CREDIT_EXHAUSTED"


class SlotUnavailable(CoachingError):
    """Raised when a slot was taken or stopped matching availability."""

    status_code = 409
    default_code = "SLOT_UNAVAILABLE"
    retryable = True


class Conflict(CoachingError):
    """Raised when a shared capacity limit is reached."""

    status_code = 409
    default_code = "CONFLICT"
    retryable = True
