"""Post-placement checks on a finished assignment set."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config import TeacherKeyPolicy
from ..data.models import Assignment, Session, Teacher
from ..data.slots import SlotCatalog
from ..errors import DataIntegrityViolation
from .availability import class_key, teacher_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverloadWarning:
    """A teacher assigned more periods than their weekly cap."""
    teacher_id: str
    assigned: int
    cap: int

    def describe(self) -> str:
        return f"Teacher {self.teacher_id} has {self.assigned} periods, above the cap of {self.cap}"


def find_integrity_violations(
    assignments: Iterable[Assignment],
    catalog: SlotCatalog,
    policy: TeacherKeyPolicy = TeacherKeyPolicy.PERIOD,
    teachers: Optional[dict[str, Teacher]] = None,
) -> list[str]:
    """
    List every broken hard invariant.

    - no class booked twice on a slot key
    - no teacher booked twice on a teacher slot key
    - no break, CPD or inactive slot used
    - no class with more assignments than eligible slots in its shift
    - no teacher booked on a day or period they marked unavailable
    """
    teachers = teachers or {}
    violations: list[str] = []
    class_seen: dict[tuple, Assignment] = {}
    teacher_seen: dict[tuple, Assignment] = {}
    per_class: Counter = Counter()

    for assignment in assignments:
        unit, slot = assignment.unit, assignment.slot

        if not slot.is_assignable:
            flags = [
                name for name, on in (
                    ("break", slot.is_break), ("CPD", slot.is_cpd), ("inactive", not slot.is_active)
                ) if on
            ]
            violations.append(f"{unit.label} placed on {'/'.join(flags)} slot {slot.id}")

        teacher = teachers.get(unit.teacher_id)
        if teacher is not None and not teacher.allows(slot):
            violations.append(f"teacher {unit.teacher_id} booked while unavailable at {slot}")

        ckey = (unit.class_id, class_key(slot, unit.shift))
        if ckey in class_seen:
            violations.append(
                f"class {unit.class_id} double-booked at {slot}: "
                f"{class_seen[ckey].unit.label} and {unit.label}"
            )
        else:
            class_seen[ckey] = assignment

        tkey = (unit.teacher_id, teacher_key(slot, unit.shift, policy))
        if tkey in teacher_seen:
            violations.append(
                f"teacher {unit.teacher_id} double-booked at {slot}: "
                f"{teacher_seen[tkey].unit.label} and {unit.label}"
            )
        else:
            teacher_seen[tkey] = assignment

        per_class[(unit.class_id, unit.shift)] += 1

    for (class_id, shift), count in per_class.items():
        capacity = catalog.count_eligible(None, shift)
        if count > capacity:
            violations.append(f"class {class_id} has {count} assignments but only {capacity} eligible slots")

    return violations


def validate_assignments(
    assignments: Iterable[Assignment],
    catalog: SlotCatalog,
    policy: TeacherKeyPolicy = TeacherKeyPolicy.PERIOD,
    teachers: Optional[dict[str, Teacher]] = None,
) -> None:
    """
    Raises:
        DataIntegrityViolation: If any hard invariant is broken
    """
    violations = find_integrity_violations(assignments, catalog, policy, teachers)
    if violations:
        logger.error("Schedule failed integrity validation: %s", violations)
        raise DataIntegrityViolation(violations)


def find_overloads(
    assignments: Iterable[Assignment],
    caps: dict[str, int],
    default_cap: Optional[int] = None,
) -> list[OverloadWarning]:
    """Teachers whose assigned periods exceed their cap."""
    load = Counter(a.teacher_id for a in assignments)
    warnings = []
    for teacher_id in sorted(load):
        cap = caps.get(teacher_id, default_cap)
        if cap is not None and load[teacher_id] > cap:
            warnings.append(OverloadWarning(teacher_id, load[teacher_id], cap))
    return warnings


def session_imbalance(assignments: Iterable[Assignment]) -> int:
    """
    How far placed lessons drift from the morning/afternoon split.

    For every (class, subject, shift) the placed morning count is compared
    with floor(placed / 2) and the absolute differences are summed. A fully
    placed timetable always scores 0.
    """
    morning: Counter = Counter()
    placed: Counter = Counter()
    for assignment in assignments:
        group = (assignment.class_id, assignment.subject_id, assignment.shift)
        placed[group] += 1
        if assignment.slot.session == Session.MORNING:
            morning[group] += 1

    return sum(abs(morning[group] - count // 2) for group, count in placed.items())


def session_split(assignments: Iterable[Assignment]) -> dict[Session, int]:
    """Count assignments per session."""
    counts = Counter(a.slot.session for a in assignments)
    return {session: counts.get(session, 0) for session in Session}
