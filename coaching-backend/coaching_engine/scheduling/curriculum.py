"""
Curriculum Tracker

Read-only projection of curriculum progress from sessions and submissions.
Recomputed on every read; nothing here is stored.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from coaching_engine.enums import SessionStatus
from coaching_engine.errors import ValidationError


@dataclass(frozen=True)
class CurriculumWeek:
    week: int
    title: str = ""
    description: Optional[str] = None
    session_duration_minutes: Optional[int] = None
    deliverable_prompt: Optional[str] = None
    resources: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CurriculumWeek":
        try:
            week = int(data["week"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("Each curriculum week needs an integer 'week'", details={"week": data})

        duration = data.get("session_duration_minutes")
        return cls(
            week=week,
            title=data.get("title") or "",
            description=data.get("description"),
            session_duration_minutes=int(duration) if duration is not None else None,
            deliverable_prompt=data.get("deliverable_prompt"),
            resources=data.get("resources"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week": self.week,
            "title": self.title,
            "description": self.description,
            "session_duration_minutes": self.session_duration_minutes,
            "deliverable_prompt": self.deliverable_prompt,
            "resources": self.resources,
        }


@dataclass
class WeekProgress:
    week: CurriculumWeek
    session: Optional[Any] = None
    submissions: List[Any] = field(default_factory=list)
    is_completed: bool = False
    is_current: bool = False

    @property
    def has_submission(self) -> bool:
        return bool(self.submissions)

    @property
    def has_feedback(self) -> bool:
        return any(s.feedback for s in self.submissions)


def parse_curriculum(raw: Optional[Iterable[Dict[str, Any]]]) -> List[CurriculumWeek]:
    """
    Parse and validate a stored curriculum.

    Raises:
        ValidationError: Duplicate or non-positive week numbers, or a
            non-positive duration override
    """
    weeks = [CurriculumWeek.from_dict(item) for item in (raw or [])]
    seen = set()
    for week in weeks:
        if week.week <= 0:
            raise ValidationError(f"Week numbers must be positive, got {week.week}")
        if week.week in seen:
            raise ValidationError(f"Duplicate curriculum week {week.week}")
        if week.session_duration_minutes is not None and week.session_duration_minutes <= 0:
            raise ValidationError(f"Week {week.week} duration override must be positive")
        seen.add(week.week)
    return weeks


def find_week(curriculum: Iterable[CurriculumWeek], week_number: int) -> Optional[CurriculumWeek]:
    return next((w for w in curriculum if w.week == week_number), None)


def session_duration_for(
    curriculum: Iterable[CurriculumWeek],
    default_minutes: Optional[int],
    week_number: Optional[int] = None,
) -> Optional[int]:
    """Week override when the week defines one, else the program default"""
    if week_number is not None:
        week = find_week(curriculum, week_number)
        if week is not None and week.session_duration_minutes:
            return week.session_duration_minutes
    return default_minutes


def completed_weeks(sessions: Iterable[Any]) -> set:
    return {
        s.week_number
        for s in sessions
        if s.week_number is not None and s.status == SessionStatus.COMPLETED.value
    }


def current_week(curriculum: List[CurriculumWeek], sessions: Iterable[Any]) -> Optional[int]:
    """
    First week, in curriculum order, without a COMPLETED session.

    Falls back to the last week when every week is completed and to None
    for an empty curriculum. Only meant for UI defaults.
    """
    if not curriculum:
        return None
    done = completed_weeks(sessions)
    for week in curriculum:
        if week.week not in done:
            return week.week
    return curriculum[-1].week


def week_progress(
    curriculum: List[CurriculumWeek],
    sessions: List[Any],
    submissions: List[Any],
) -> List[WeekProgress]:
    """Per-week view of the linked session and submissions"""
    done = completed_weeks(sessions)
    current = current_week(curriculum, sessions)
    progress = []

    for week in curriculum:
        week_sessions = [s for s in sessions if s.week_number == week.week]
        # Prefer a live or completed session over a cancelled one
        week_sessions.sort(key=lambda s: s.status == SessionStatus.CANCELLED.value)
        progress.append(
            WeekProgress(
                week=week,
                session=week_sessions[0] if week_sessions else None,
                submissions=[s for s in submissions if s.week_number == week.week],
                is_completed=week.week in done,
                is_current=week.week == current,
            )
        )

    return progress
