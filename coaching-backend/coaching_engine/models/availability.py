"""Availability models - Weekly recurring rules and blackout exclusions"""
from sqlalchemy import Column, String, Integer, Boolean, Date, Time, DateTime, ForeignKey, Uuid, CheckConstraint, Index
from sqlalchemy.sql import func
import uuid

from coaching_engine.database import Base


class AvailabilityRule(Base):
    """Recurring weekly window in which a program can be booked"""

    __tablename__ = "coaching_availability_rules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(
        Uuid,
        ForeignKey("coaching_programs.id", ondelete="CASCADE"),
        nullable=False,
    )
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday ... 6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_rules_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_rules_window_order"),
        Index("idx_rules_program_day", "program_id", "day_of_week"),
    )

    def __repr__(self):
        return (
            f"<AvailabilityRule(program={self.program_id}, day={self.day_of_week}, "
            f"{self.start_time}-{self.end_time})>"
        )


class BlackoutPeriod(Base):
    """Inclusive date range excluded from booking, per program or coach-wide"""

    __tablename__ = "coaching_blackout_periods"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    coach_id = Column(String(100), nullable=False)
    program_id = Column(
        Uuid,
        ForeignKey("coaching_programs.id", ondelete="CASCADE"),
        nullable=True,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_blackouts_range_order"),
        Index("idx_blackouts_coach_dates", "coach_id", "start_date", "end_date"),
    )

    def __repr__(self):
        return f"<BlackoutPeriod(coach={self.coach_id}, {self.start_date}..{self.end_date})>"
