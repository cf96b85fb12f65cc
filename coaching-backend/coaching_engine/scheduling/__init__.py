"""
Pure scheduling core

Availability windows, slot generation, credit accounting and curriculum
projection. Nothing in this package performs I/O; the services layer loads
rows and feeds them in.
"""
from coaching_engine.scheduling.availability import Blackout, WeeklyRule, windows_for
from coaching_engine.scheduling.credits import CreditState, release_credit, reserve_credit
from coaching_engine.scheduling.curriculum import CurriculumWeek, current_week
from coaching_engine.scheduling.formats import format_for_program
from coaching_engine.scheduling.slots import BookingPolicy, Slot, generate_slots

__all__ = [
    "Blackout",
    "WeeklyRule",
    "windows_for",
    "CreditState",
    "reserve_credit",
    "release_credit",
    "CurriculumWeek",
    "current_week",
    "format_for_program",
    "BookingPolicy",
    "Slot",
    "generate_slots",
]
