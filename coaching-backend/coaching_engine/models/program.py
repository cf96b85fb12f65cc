"""Program model - A coach's sellable coaching offering and its scheduling policy"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, Uuid, CheckConstraint, Index
from sqlalchemy.sql import func
import uuid

from coaching_engine.database import Base


class Program(Base):
    """Coaching program with commercial format and booking policy"""

    __tablename__ = "coaching_programs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    coach_id = Column(String(100), nullable=False)
    title = Column(String(200), nullable=False)
    interaction_type = Column(String(20), nullable=False)
    format = Column(String(20), nullable=False)
    session_duration_minutes = Column(Integer, nullable=True)
    total_sessions = Column(Integer, nullable=True)
    max_participants = Column(Integer, nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")
    buffer_minutes = Column(Integer, nullable=False, default=0)
    advance_booking_days = Column(Integer, nullable=False, default=30)
    min_notice_hours = Column(Integer, nullable=False, default=24)
    # Ordered list of week plans, see scheduling.curriculum.CurriculumWeek
    curriculum = Column(JSON, nullable=True)
    cancellation_credit_policy = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("buffer_minutes >= 0", name="ck_programs_buffer_non_negative"),
        CheckConstraint("advance_booking_days >= 0", name="ck_programs_advance_non_negative"),
        CheckConstraint("min_notice_hours >= 0", name="ck_programs_notice_non_negative"),
        Index("idx_programs_coach", "coach_id"),
    )

    def __repr__(self):
        return f"<Program(id={self.id}, title={self.title}, format={self.format})>"
