"""Submission model - Deliverables handed in against curriculum weeks"""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.sql import func
import uuid

from coaching_engine.database import Base


class Submission(Base):
    """Member work for a week or session, with optional coach feedback"""

    __tablename__ = "coaching_submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(
        Uuid,
        ForeignKey("coaching_programs.id", ondelete="CASCADE"),
        nullable=False,
    )
    enrollment_id = Column(
        Uuid,
        ForeignKey("coaching_enrollments.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_id = Column(
        Uuid,
        ForeignKey("coaching_sessions.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_id = Column(String(100), nullable=False)
    week_number = Column(Integer, nullable=True)
    content = Column(Text, nullable=True)
    file_url = Column(String(1000), nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    feedback = Column(Text, nullable=True)
    feedback_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by_id = Column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_submissions_enrollment_week", "enrollment_id", "week_number"),
        Index("idx_submissions_program", "program_id"),
    )

    def __repr__(self):
        return f"<Submission(id={self.id}, enrollment={self.enrollment_id}, week={self.week_number})>"
