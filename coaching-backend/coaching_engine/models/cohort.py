"""Cohort model - Bounded group of enrollees sharing group sessions"""
from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.sql import func
import uuid

from coaching_engine.database import Base


class Cohort(Base):
    """Group-cohort run of a program"""

    __tablename__ = "coaching_cohorts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(
        Uuid,
        ForeignKey("coaching_programs.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(200), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    max_participants = Column(Integer, nullable=True)
    enrollment_open = Column(Boolean, nullable=False, default=True)
    enrollment_deadline = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_cohorts_program", "program_id"),
    )

    def __repr__(self):
        return f"<Cohort(id={self.id}, name={self.name}, program={self.program_id})>"
