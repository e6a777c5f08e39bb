"""
Pre-placement feasibility check.

A class whose required units in a session outnumber the eligible slots of
that session can never be fully scheduled. Such classes are reported and
left out of placement so they do not consume teacher time that feasible
classes need.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..data.models import LessonUnit, Session, Shift, Teacher
from ..data.slots import SlotCatalog
from .demand import summarise_demand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionShortfall:
    """A class/session pair asking for more periods than exist."""
    class_id: str
    session: Session
    required: int
    available: int
    shift: Optional[Shift] = None

    @property
    def missing(self) -> int:
        return self.required - self.available

    def describe(self) -> str:
        where = f" ({self.shift.value} shift)" if self.shift else ""
        return (
            f"Class {self.class_id} needs {self.required} {self.session.value.lower()} periods"
            f"{where} but only {self.available} eligible slots are open to them"
        )


@dataclass(frozen=True)
class TeacherShortfall:
    """A teacher whose total load exceeds the eligible slots they accept."""
    teacher_id: str
    required: int
    available: int

    def describe(self) -> str:
        return (
            f"Teacher {self.teacher_id} has {self.required} periods to teach "
            f"but only {self.available} eligible slots are open to them"
        )


@dataclass
class FeasibilityReport:
    """Outcome of a feasibility check."""
    shortfalls: list[SessionShortfall] = field(default_factory=list)
    teacher_shortfalls: list[TeacherShortfall] = field(default_factory=list)
    required_units: int = 0
    eligible_slots: int = 0

    @property
    def feasible(self) -> bool:
        """No class is over-subscribed. Teacher shortfalls are warnings only."""
        return not self.shortfalls

    @property
    def infeasible_classes(self) -> set[str]:
        return {s.class_id for s in self.shortfalls}

    def suggestions(self) -> list[str]:
        tips = []
        if self.shortfalls:
            tips.append("Reduce the periods per week for the listed classes")
            tips.append("Activate more time slots or release CPD periods")
        if self.teacher_shortfalls:
            tips.append("Move part of the listed teachers' load to other teachers")
        return tips

    def messages(self) -> list[str]:
        return [s.describe() for s in self.shortfalls] + [t.describe() for t in self.teacher_shortfalls]


class FeasibilityChecker:
    """
    Compares lesson-unit demand with catalog supply.

    Usage:
        report = FeasibilityChecker(catalog).check(units)
        if not report.feasible:
            skip = report.infeasible_classes
    """

    def __init__(self, catalog: SlotCatalog, teachers: Optional[dict[str, Teacher]] = None):
        self.catalog = catalog
        self.teachers = teachers or {}

    def teacher_supply(self, teacher_id: str, shift: Optional[Shift] = None) -> int:
        """Eligible slots of the week the teacher accepts."""
        teacher = self.teachers.get(teacher_id)
        if teacher is None:
            return self.catalog.count_eligible(None, shift)
        return sum(1 for slot in self.catalog.eligible_slots(None, shift) if teacher.allows(slot))

    def check(self, units: Iterable[LessonUnit], shift: Optional[Shift] = None) -> FeasibilityReport:
        """
        Check every class/session and every teacher.

        Args:
            units: Lesson units of one placement pass
            shift: Shift whose slots count as supply (None = all)

        Returns:
            FeasibilityReport listing over-subscribed class/session pairs
        """
        summary = summarise_demand(units)
        supply = {
            session: self.catalog.count_eligible(session, shift)
            for session in Session
        }
        weekly_supply = self.catalog.count_eligible(None, shift)

        report = FeasibilityReport(
            required_units=summary.total_units,
            eligible_slots=weekly_supply,
        )

        for (class_id, session), required in sorted(
            summary.by_class_session.items(), key=lambda item: (item[0][0], item[0][1].value)
        ):
            if required > supply[session]:
                shortfall = SessionShortfall(
                    class_id=class_id,
                    session=session,
                    required=required,
                    available=supply[session],
                    shift=shift,
                )
                report.shortfalls.append(shortfall)
                logger.warning("Infeasible demand: %s", shortfall.describe())

        for teacher_id, required in sorted(summary.by_teacher.items()):
            available = self.teacher_supply(teacher_id, shift)
            if required > available:
                shortfall = TeacherShortfall(teacher_id, required, available)
                report.teacher_shortfalls.append(shortfall)
                logger.warning("Teacher shortfall: %s", shortfall.describe())

        return report
