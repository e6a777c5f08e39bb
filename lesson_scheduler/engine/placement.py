"""
Placement engine.

Places lesson units on slots class by class. Within a class the unit with
the fewest legal candidate slots is always placed next (most-constrained
first), candidates are tried in a seeded random order, and a unit that
finds no free slot may relocate one of its class's earlier units to make
room. A unit that still cannot be placed becomes a ConflictRecord; the
teacher is never double-booked to force a placement.
"""

from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..config import GenerationConfig
from ..data.models import (
    Assignment,
    ConflictReason,
    ConflictRecord,
    LessonUnit,
    Session,
    Shift,
    Teacher,
    TimeSlot,
)
from ..data.slots import SlotCatalog
from .availability import AvailabilityTracker, class_key, run_length

logger = logging.getLogger(__name__)


@dataclass
class PlacementResult:
    """Output of one placement pass."""
    assignments: list[Assignment] = field(default_factory=list)
    conflicts: list[ConflictRecord] = field(default_factory=list)
    backtrack_steps: int = 0
    relocations: int = 0

    @property
    def placed(self) -> int:
        return len(self.assignments)

    def merge(self, other: PlacementResult) -> None:
        self.assignments.extend(other.assignments)
        self.conflicts.extend(other.conflicts)
        self.backtrack_steps += other.backtrack_steps
        self.relocations += other.relocations


class PlacementEngine:
    """
    Greedy placement with most-constrained-first ordering and bounded backtracking.

    Usage:
        engine = PlacementEngine(catalog, config, random.Random(7))
        result = engine.place(units, AvailabilityTracker())
    """

    def __init__(
        self,
        catalog: SlotCatalog,
        config: Optional[GenerationConfig] = None,
        rng: Optional[random.Random] = None,
        teacher_caps: Optional[dict[str, int]] = None,
        teachers: Optional[dict[str, Teacher]] = None,
    ):
        """
        Args:
            catalog: Slot catalog of the institution
            config: Generation settings (backtrack budget, caps, limits)
            rng: Seeded random source; defaults to one seeded from config
            teacher_caps: Weekly caps by teacher ID
            teachers: Teachers with unavailable days or periods, by ID
        """
        self.catalog = catalog
        self.config = config or GenerationConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.teacher_caps = teacher_caps or {}
        self.teachers = teachers or {}

    # -------------------------------------------------------------------------
    # Entry Point
    # -------------------------------------------------------------------------

    def place(
        self,
        units: Iterable[LessonUnit],
        tracker: AvailabilityTracker,
        shift: Optional[Shift] = None,
    ) -> PlacementResult:
        """
        Place every unit it can.

        Args:
            units: Lesson units of one pass (already feasibility-checked)
            tracker: Availability of this run; mutated in place
            shift: Shift whose slots are used (None = whole catalog)

        Returns:
            PlacementResult with assignments and conflicts
        """
        by_class: dict[str, list[LessonUnit]] = defaultdict(list)
        for unit in units:
            by_class[unit.class_id].append(unit)

        result = PlacementResult()
        for class_id in self._class_order(by_class, shift):
            placed = self._place_class(by_class[class_id], tracker, shift, result)
            result.assignments.extend(placed)
            logger.debug("Class %s: %d/%d units placed", class_id, len(placed), len(by_class[class_id]))

        return result

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def _class_order(self, by_class: dict[str, list[LessonUnit]], shift: Optional[Shift]) -> list[str]:
        """Tightest classes first: least spare slots in their fullest session."""
        supply = {session: self.catalog.count_eligible(session, shift) for session in Session}

        def slack(class_id: str) -> int:
            needed = Counter(u.target_session for u in by_class[class_id])
            return min(supply[session] - needed[session] for session in Session)

        order = sorted(by_class)
        self.rng.shuffle(order)
        order.sort(key=lambda c: (slack(c), -len(by_class[c])))
        return order

    def _candidates(self, unit: LessonUnit, placed: list[Assignment]) -> list[TimeSlot]:
        """Eligible slots the teacher accepts, shuffled, least-used days first."""
        slots = [
            slot for slot in self.catalog.eligible_slots(unit.target_session, unit.shift)
            if self.teacher_allows(unit.teacher_id, slot)
        ]
        self.rng.shuffle(slots)

        if self.config.spread_subjects:
            same_subject_days = Counter(
                a.slot.day for a in placed if a.subject_id == unit.subject_id
            )
            slots.sort(key=lambda s: same_subject_days[s.day])

        return slots

    def _legal_count(self, unit: LessonUnit, tracker: AvailabilityTracker) -> int:
        if self._at_cap(unit.teacher_id, tracker):
            return 0
        return sum(
            1 for slot in self.catalog.eligible_slots(unit.target_session, unit.shift)
            if self.teacher_allows(unit.teacher_id, slot) and tracker.is_free(unit, slot)
        )

    def _most_constrained(self, remaining: list[LessonUnit], tracker: AvailabilityTracker) -> LessonUnit:
        # min() keeps the first of equals, so ties follow the shuffled order
        return min(remaining, key=lambda u: self._legal_count(u, tracker))

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def _place_class(
        self,
        units: list[LessonUnit],
        tracker: AvailabilityTracker,
        shift: Optional[Shift],
        result: PlacementResult,
    ) -> list[Assignment]:
        remaining = list(units)
        self.rng.shuffle(remaining)
        placed: list[Assignment] = []

        while remaining:
            unit = self._most_constrained(remaining, tracker)
            remaining.remove(unit)

            slot = self._first_legal(unit, tracker, placed)
            if slot is None:
                slot = self._backtrack(unit, tracker, placed, result)

            if slot is None:
                conflict = self._conflict(unit, tracker)
                result.conflicts.append(conflict)
                logger.debug("Unplaced %s: %s", unit.label, conflict.message)
                continue

            tracker.reserve(unit, slot)
            placed.append(Assignment(unit=unit, slot=slot))

        return placed

    def _first_legal(
        self,
        unit: LessonUnit,
        tracker: AvailabilityTracker,
        placed: list[Assignment],
        exclude: Optional[TimeSlot] = None,
    ) -> Optional[TimeSlot]:
        if self._at_cap(unit.teacher_id, tracker):
            return None
        for slot in self._candidates(unit, placed):
            if slot != exclude and tracker.is_free(unit, slot) and self._within_limits(unit, slot, tracker, placed):
                return slot
        return None

    def _backtrack(
        self,
        unit: LessonUnit,
        tracker: AvailabilityTracker,
        placed: list[Assignment],
        result: PlacementResult,
    ) -> Optional[TimeSlot]:
        """
        Free a slot for the unit by moving an earlier unit of the same class.

        Only slots the unit's teacher accepts and is free at are worth
        freeing. Each attempted move counts against max_backtrack_steps.

        Returns:
            The freed slot, or None if the budget ran out
        """
        if self._at_cap(unit.teacher_id, tracker):
            return None

        steps = 0
        for blocker in reversed(placed):
            if steps >= self.config.max_backtrack_steps:
                break
            if blocker.unit.target_session != unit.target_session:
                continue
            freed = blocker.slot
            if not self.teacher_allows(unit.teacher_id, freed):
                continue
            if not tracker.teacher_is_free(unit.teacher_id, freed, unit.shift):
                continue

            steps += 1
            result.backtrack_steps += 1
            others = [a for a in placed if a is not blocker]
            tracker.release(blocker.unit, freed)
            alternative = self._first_legal(blocker.unit, tracker, others, exclude=freed)

            if alternative is None:
                tracker.reserve(blocker.unit, freed)
                continue

            tracker.reserve(blocker.unit, alternative)
            moved = Assignment(unit=blocker.unit, slot=alternative)
            if not self._within_limits(unit, freed, tracker, others + [moved]):
                tracker.release(blocker.unit, alternative)
                tracker.reserve(blocker.unit, freed)
                continue

            placed[placed.index(blocker)] = moved
            result.relocations += 1
            logger.debug(
                "Moved %s from %s to %s to make room for %s",
                blocker.unit.label, freed, alternative, unit.label,
            )
            return freed

        return None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def cap_for(self, teacher_id: str) -> Optional[int]:
        return self.teacher_caps.get(teacher_id, self.config.default_teacher_weekly_cap)

    def teacher_allows(self, teacher_id: str, slot: TimeSlot) -> bool:
        teacher = self.teachers.get(teacher_id)
        return teacher is None or teacher.allows(slot)

    def _at_cap(self, teacher_id: str, tracker: AvailabilityTracker) -> bool:
        if not self.config.enforce_teacher_cap:
            return False
        cap = self.cap_for(teacher_id)
        return cap is not None and tracker.teacher_load(teacher_id) >= cap

    def _within_limits(
        self,
        unit: LessonUnit,
        slot: TimeSlot,
        tracker: AvailabilityTracker,
        placed: list[Assignment],
    ) -> bool:
        """Consecutive-period limits for the unit's subject and teacher."""
        limit = self.config.max_consecutive_same_subject
        if limit is not None:
            same_subject = {class_key(a.slot, a.shift) for a in placed if a.subject_id == unit.subject_id}
            if run_length(same_subject, class_key(slot, unit.shift)) > limit:
                return False

        limit = self.config.max_consecutive_teacher_periods
        if limit is not None and tracker.teacher_run(unit.teacher_id, slot, unit.shift) > limit:
            return False

        return True

    def _conflict(self, unit: LessonUnit, tracker: AvailabilityTracker) -> ConflictRecord:
        session = unit.target_session.value.lower()

        if self._at_cap(unit.teacher_id, tracker):
            return ConflictRecord(
                unit=unit,
                reason=ConflictReason.TEACHER_OVERLOAD,
                message=(
                    f"Teacher {unit.teacher_id} reached the weekly cap of "
                    f"{self.cap_for(unit.teacher_id)} periods"
                ),
            )

        class_free = [
            slot for slot in self.catalog.eligible_slots(unit.target_session, unit.shift)
            if tracker.class_is_free(unit.class_id, slot, unit.shift)
        ]
        if not class_free:
            return ConflictRecord(
                unit=unit,
                reason=ConflictReason.CLASS_SESSION_FULL,
                message=f"Class {unit.class_id} has no free {session} slot for {unit.subject_id}",
            )

        allowed = [slot for slot in class_free if self.teacher_allows(unit.teacher_id, slot)]
        if not allowed:
            return ConflictRecord(
                unit=unit,
                reason=ConflictReason.TEACHER_RESTRICTED,
                message=(
                    f"Teacher {unit.teacher_id} is unavailable at all {len(class_free)} free {session} "
                    f"slots of class {unit.class_id} for {unit.subject_id}"
                ),
            )

        if not any(tracker.teacher_is_free(unit.teacher_id, slot, unit.shift) for slot in allowed):
            return ConflictRecord(
                unit=unit,
                reason=ConflictReason.TEACHER_UNAVAILABLE,
                message=(
                    f"Teacher {unit.teacher_id} is busy in all {len(allowed)} free {session} "
                    f"slots of class {unit.class_id} for {unit.subject_id}"
                ),
            )

        return ConflictRecord(
            unit=unit,
            reason=ConflictReason.CONSECUTIVE_LIMIT,
            message=(
                f"Every free {session} slot for {unit.label} would exceed "
                f"the consecutive-period limit"
            ),
        )
