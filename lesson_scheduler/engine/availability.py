"""
Per-run availability tracking.

One AvailabilityTracker belongs to exactly one generation attempt. It
records which slot keys each class and each teacher already uses, and is
thrown away when the attempt ends, so separate institutions (or separate
attempts) never share state.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Collection, Optional

from ..config import TeacherKeyPolicy
from ..data.models import LessonUnit, Shift, SlotKey, TimeSlot
from ..errors import DataIntegrityViolation


def class_key(slot: TimeSlot, shift: Optional[Shift]) -> SlotKey:
    """Classes in different shifts are different cohorts."""
    return SlotKey(shift, slot.day, slot.period)


def teacher_key(slot: TimeSlot, shift: Optional[Shift], policy: TeacherKeyPolicy) -> SlotKey:
    """A teacher is one person across shifts unless the policy separates them."""
    if policy == TeacherKeyPolicy.SHIFT:
        return SlotKey(shift, slot.day, slot.period)
    return SlotKey(None, slot.day, slot.period)


def run_length(used: Collection[SlotKey], key: SlotKey) -> int:
    """
    Size of the block of adjacent period numbers around key, key included.

    Periods count as adjacent by number, so P3 and P4 form a run even
    with a break between them.
    """
    length = 1
    for step in (-1, 1):
        period = key.period + step
        while key._replace(period=period) in used:
            length += 1
            period += step
    return length


class AvailabilityTracker:
    """
    Class-usage and teacher-usage sets for one run.

    Usage:
        tracker = AvailabilityTracker()
        if tracker.is_free(unit, slot):
            tracker.reserve(unit, slot)
    """

    def __init__(self, policy: TeacherKeyPolicy = TeacherKeyPolicy.PERIOD):
        self.policy = policy
        self._class_usage: dict[str, set[SlotKey]] = defaultdict(set)
        self._teacher_usage: dict[str, set[SlotKey]] = defaultdict(set)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def class_is_free(self, class_id: str, slot: TimeSlot, shift: Optional[Shift] = None) -> bool:
        return class_key(slot, shift) not in self._class_usage.get(class_id, ())

    def teacher_is_free(self, teacher_id: str, slot: TimeSlot, shift: Optional[Shift] = None) -> bool:
        return teacher_key(slot, shift, self.policy) not in self._teacher_usage.get(teacher_id, ())

    def is_free(self, unit: LessonUnit, slot: TimeSlot) -> bool:
        """Whether both the unit's class and its teacher are free at the slot."""
        return (
            self.class_is_free(unit.class_id, slot, unit.shift)
            and self.teacher_is_free(unit.teacher_id, slot, unit.shift)
        )

    def teacher_load(self, teacher_id: str) -> int:
        """Periods reserved for a teacher so far in this run."""
        return len(self._teacher_usage.get(teacher_id, ()))

    def teacher_run(self, teacher_id: str, slot: TimeSlot, shift: Optional[Shift] = None) -> int:
        """Length of the teacher's run of adjacent periods if the slot were added."""
        key = teacher_key(slot, shift, self.policy)
        return run_length(self._teacher_usage.get(teacher_id, ()), key)

    def class_usage(self, class_id: str) -> frozenset[SlotKey]:
        return frozenset(self._class_usage.get(class_id, ()))

    def teacher_usage(self, teacher_id: str) -> frozenset[SlotKey]:
        return frozenset(self._teacher_usage.get(teacher_id, ()))

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def reserve(self, unit: LessonUnit, slot: TimeSlot) -> None:
        """
        Mark the slot used for the unit's class and teacher.

        Raises:
            DataIntegrityViolation: If either key is already taken
        """
        ckey = class_key(slot, unit.shift)
        tkey = teacher_key(slot, unit.shift, self.policy)
        class_set = self._class_usage[unit.class_id]
        teacher_set = self._teacher_usage[unit.teacher_id]

        violations = []
        if ckey in class_set:
            violations.append(f"class {unit.class_id} already booked at {slot}")
        if tkey in teacher_set:
            violations.append(f"teacher {unit.teacher_id} already booked at {slot}")
        if violations:
            raise DataIntegrityViolation(violations)

        class_set.add(ckey)
        teacher_set.add(tkey)

    def release(self, unit: LessonUnit, slot: TimeSlot) -> None:
        """Undo a reservation made by reserve()."""
        self._class_usage[unit.class_id].discard(class_key(slot, unit.shift))
        self._teacher_usage[unit.teacher_id].discard(teacher_key(slot, unit.shift, self.policy))

    def reset(self) -> None:
        self._class_usage.clear()
        self._teacher_usage.clear()
