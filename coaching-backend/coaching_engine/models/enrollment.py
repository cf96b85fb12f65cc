"""Enrollment model - A member's paid entitlement to a program"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid, CheckConstraint, Index
from sqlalchemy.sql import func
import uuid

from coaching_engine.database import Base
from coaching_engine.enums import EnrollmentStatus


class Enrollment(Base):
    """Member enrollment in a coaching program with session credit counters"""

    __tablename__ = "coaching_enrollments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(
        Uuid,
        ForeignKey("coaching_programs.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(String(100), nullable=False)
    cohort_id = Column(
        Uuid,
        ForeignKey("coaching_cohorts.id", ondelete="SET NULL"),
        nullable=True,
    )
    format = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=EnrollmentStatus.ACTIVE.value)
    sessions_included = Column(Integer, nullable=True)
    sessions_used = Column(Integer, nullable=False, default=0)
    package_expires_at = Column(DateTime(timezone=True), nullable=True)
    payment_ref = Column(String(200), nullable=True)
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("sessions_used >= 0", name="ck_enrollments_used_non_negative"),
        CheckConstraint(
            "sessions_included IS NULL OR sessions_used <= sessions_included",
            name="ck_enrollments_credit_bound",
        ),
        Index("idx_enrollments_program_user", "program_id", "user_id"),
        Index("idx_enrollments_user", "user_id"),
    )

    def __repr__(self):
        return (
            f"<Enrollment(id={self.id}, user={self.user_id}, status={self.status}, "
            f"used={self.sessions_used}/{self.sessions_included})>"
        )
