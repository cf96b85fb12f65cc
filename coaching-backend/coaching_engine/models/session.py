"""Session models - Committed coaching meetings and group attendance"""
from sqlalchemy import (
    Column, String, Integer, Boolean, Text, JSON, DateTime, ForeignKey, Uuid, CheckConstraint, Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func
import uuid

from coaching_engine.database import Base
from coaching_engine.enums import SessionStatus


class Session(Base):
    """1:1 or group coaching session with lifecycle state"""

    __tablename__ = "coaching_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(
        Uuid,
        ForeignKey("coaching_programs.id", ondelete="CASCADE"),
        nullable=False,
    )
    cohort_id = Column(
        Uuid,
        ForeignKey("coaching_cohorts.id", ondelete="CASCADE"),
        nullable=True,
    )
    enrollment_id = Column(
        Uuid,
        ForeignKey("coaching_enrollments.id", ondelete="SET NULL"),
        nullable=True,
    )
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    timezone = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value)
    week_number = Column(Integer, nullable=True)
    original_starts_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    recording_url = Column(String(1000), nullable=True)
    action_items = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="ck_sessions_time_order"),
        Index("idx_sessions_program_status_time", "program_id", "status", "starts_at"),
        Index("idx_sessions_enrollment", "enrollment_id"),
        Index("idx_sessions_cohort", "cohort_id"),
    )

    @property
    def is_group(self) -> bool:
        return self.enrollment_id is None

    def __repr__(self):
        return f"<Session(id={self.id}, program={self.program_id}, starts_at={self.starts_at}, status={self.status})>"


class SessionAttendee(Base):
    """Registration of an enrollment for a group session"""

    __tablename__ = "coaching_session_attendees"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid,
        ForeignKey("coaching_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    enrollment_id = Column(
        Uuid,
        ForeignKey("coaching_enrollments.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(String(100), nullable=False)
    attended = Column(Boolean, nullable=False, default=False)
    registered_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "enrollment_id", name="uq_attendees_session_enrollment"),
        Index("idx_attendees_session", "session_id"),
    )

    def __repr__(self):
        return f"<SessionAttendee(session={self.session_id}, user={self.user_id}, attended={self.attended})>"
