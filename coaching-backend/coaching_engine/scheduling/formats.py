"""
Commercial format variants

Each program format is a closed variant carrying only the fields that apply
to it, so booking code asks the variant instead of null-checking columns.
"""
from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from coaching_engine.enums import CoachingFormat, InteractionType
from coaching_engine.errors import ValidationError


@dataclass(frozen=True)
class SingleSession:
    kind: ClassVar[CoachingFormat] = CoachingFormat.SINGLE_SESSION
    interaction: ClassVar[InteractionType] = InteractionType.ONE_ON_ONE

    @property
    def sessions_included(self) -> Optional[int]:
        return 1

    @property
    def capacity(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class FixedPackage:
    total_sessions: int

    kind: ClassVar[CoachingFormat] = CoachingFormat.FIXED_PACKAGE
    interaction: ClassVar[InteractionType] = InteractionType.ONE_ON_ONE

    @property
    def sessions_included(self) -> Optional[int]:
        return self.total_sessions

    @property
    def capacity(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class Subscription:
    kind: ClassVar[CoachingFormat] = CoachingFormat.SUBSCRIPTION
    interaction: ClassVar[InteractionType] = InteractionType.ONE_ON_ONE

    @property
    def sessions_included(self) -> Optional[int]:
        return None

    @property
    def capacity(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class GroupCohort:
    max_participants: Optional[int] = None

    kind: ClassVar[CoachingFormat] = CoachingFormat.GROUP_COHORT
    interaction: ClassVar[InteractionType] = InteractionType.GROUP

    @property
    def sessions_included(self) -> Optional[int]:
        return None

    @property
    def capacity(self) -> Optional[int]:
        return self.max_participants


@dataclass(frozen=True)
class GroupOpen:
    max_participants: Optional[int] = None

    kind: ClassVar[CoachingFormat] = CoachingFormat.GROUP_OPEN
    interaction: ClassVar[InteractionType] = InteractionType.GROUP

    @property
    def sessions_included(self) -> Optional[int]:
        return None

    @property
    def capacity(self) -> Optional[int]:
        return self.max_participants


FormatVariant = Union[SingleSession, FixedPackage, Subscription, GroupCohort, GroupOpen]


def is_credit_bearing(variant: FormatVariant) -> bool:
    return variant.sessions_included is not None


def is_group(variant: FormatVariant) -> bool:
    return variant.interaction is InteractionType.GROUP


def build_format(
    format_name: str,
    total_sessions: Optional[int] = None,
    max_participants: Optional[int] = None,
) -> FormatVariant:
    """
    Build the variant for a format name.

    Raises:
        ValidationError: Unknown format, or a package without a positive size
    """
    try:
        kind = CoachingFormat(format_name)
    except ValueError:
        raise ValidationError(
            f"Invalid format: {format_name}. Must be one of: {', '.join(f.value for f in CoachingFormat)}"
        )

    if max_participants is not None and max_participants <= 0:
        raise ValidationError("max_participants must be positive")

    if kind is CoachingFormat.SINGLE_SESSION:
        return SingleSession()
    elif kind is CoachingFormat.FIXED_PACKAGE:
        if not total_sessions or total_sessions <= 0:
            raise ValidationError("FIXED_PACKAGE programs need a positive total_sessions")
        return FixedPackage(total_sessions=total_sessions)
    elif kind is CoachingFormat.SUBSCRIPTION:
        return Subscription()
    elif kind is CoachingFormat.GROUP_COHORT:
        return GroupCohort(max_participants=max_participants)
    else:
        return GroupOpen(max_participants=max_participants)


def format_for_program(program: Any) -> FormatVariant:
    """Variant for a Program row"""
    return build_format(program.format, program.total_sessions, program.max_participants)
