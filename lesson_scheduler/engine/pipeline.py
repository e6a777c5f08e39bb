"""
Generation pipeline.

Ties the engine together for one institution:

    slots + demand -> feasibility check -> placement (per shift)
                   -> integrity validation -> best of N restarts

Each restart re-seeds the random source and starts from a fresh
AvailabilityTracker; nothing carries over between attempts. When one
class is rescheduled, the stored assignments of the other classes are
reserved in every fresh tracker before placement starts.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, cast

from ..config import GenerationConfig
from ..data.models import (
    Assignment,
    ConflictReason,
    ConflictRecord,
    GenerationInput,
    LessonUnit,
    Shift,
    Teacher,
)
from ..data.slots import SlotCatalog
from ..errors import InputValidationError, ScheduleExistsError
from .availability import AvailabilityTracker
from .demand import build_lesson_units
from .feasibility import FeasibilityChecker, FeasibilityReport
from .placement import PlacementEngine, PlacementResult
from .validation import OverloadWarning, find_overloads, session_imbalance, validate_assignments

if TYPE_CHECKING:
    from ..store import AssignmentStore

logger = logging.getLogger(__name__)


@dataclass
class ShiftPlan:
    """Units and feasibility of one placement pass."""
    shift: Optional[Shift]
    units: list[LessonUnit]
    feasibility: FeasibilityReport

    @property
    def placeable_units(self) -> list[LessonUnit]:
        skip = self.feasibility.infeasible_classes
        return [u for u in self.units if u.class_id not in skip]

    def infeasible_conflicts(self) -> list[ConflictRecord]:
        messages: dict[str, list[str]] = {}
        for shortfall in self.feasibility.shortfalls:
            messages.setdefault(shortfall.class_id, []).append(shortfall.describe())

        return [
            ConflictRecord(
                unit=unit,
                reason=ConflictReason.INFEASIBLE_DEMAND,
                message="; ".join(messages[unit.class_id]),
            )
            for unit in self.units
            if unit.class_id in messages
        ]


@dataclass
class GenerationResult:
    """Best attempt of a generation run."""
    institution_id: str
    assignments: list[Assignment]
    conflicts: list[ConflictRecord]
    lesson_units: int
    seed: int
    attempt: int
    attempts_made: int = 1
    backtrack_steps: int = 0
    relocations: int = 0
    imbalance: int = 0
    elapsed_ms: int = 0
    feasibility: list[FeasibilityReport] = field(default_factory=list)
    overloads: list[OverloadWarning] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.conflicts

    @property
    def total_placed(self) -> int:
        return len(self.assignments)

    @property
    def placement_conflicts(self) -> list[ConflictRecord]:
        """Conflicts a restart could still fix."""
        return [c for c in self.conflicts if c.reason != ConflictReason.INFEASIBLE_DEMAND]

    def warnings(self) -> list[str]:
        messages = [w.describe() for w in self.overloads]
        for report in self.feasibility:
            messages.extend(t.describe() for t in report.teacher_shortfalls)
        return messages

    def records(self) -> list[dict]:
        """Assignment rows ready for a bulk insert."""
        return [a.to_record(self.institution_id) for a in self.assignments]


class TimetableGenerator:
    """
    Runs the full pipeline with bounded random restarts.

    Usage:
        generator = TimetableGenerator(GenerationConfig(seed=7))
        result = generator.generate(generation_input)
        if not result.success:
            for conflict in result.conflicts: ...
    """

    def __init__(self, config: Optional[GenerationConfig] = None):
        self.config = config or GenerationConfig()

    def plan(
        self,
        generation_input: GenerationInput,
        catalog: SlotCatalog,
        class_ids: Optional[set[str]] = None,
    ) -> list[ShiftPlan]:
        """Build units and check feasibility once per shift, optionally for some classes only."""
        shifts: list[Optional[Shift]] = list(Shift) if generation_input.double_shift else [None]
        checker = FeasibilityChecker(catalog, generation_input.teacher_restrictions())
        demand = [
            record for record in generation_input.demand
            if class_ids is None or record.class_id in class_ids
        ]
        plans = []
        for shift in shifts:
            units = build_lesson_units(demand, shift)
            plans.append(ShiftPlan(shift=shift, units=units, feasibility=checker.check(units, shift)))
        return plans

    def generate(
        self,
        generation_input: GenerationInput,
        fixed: Sequence[Assignment] = (),
        class_ids: Optional[set[str]] = None,
    ) -> GenerationResult:
        """
        Generate a timetable for one institution.

        Args:
            generation_input: Slots, demand and reference entities
            fixed: Assignments kept as they are; their class and teacher
                slots count as busy in every attempt
            class_ids: Only place the demand of these classes (None = all)

        Returns:
            The best attempt (fewest conflicts, then smallest imbalance)

        Raises:
            DataIntegrityViolation: If an attempt breaks a hard invariant
        """
        started = time.perf_counter()
        catalog = SlotCatalog(generation_input.slots)
        plans = self.plan(generation_input, catalog, class_ids)
        caps = generation_input.teacher_caps()
        teachers = generation_input.teacher_restrictions()
        policy = self.config.teacher_key_policy

        logger.info(
            "Generating timetable for %s: %d units, %d eligible slots, %d fixed assignments, %s",
            generation_input.institution_id,
            sum(len(p.units) for p in plans),
            catalog.count_eligible(),
            len(fixed),
            "double shift" if generation_input.double_shift else "single shift",
        )

        best: Optional[GenerationResult] = None
        attempts_made = 0

        for attempt in range(self.config.max_attempts):
            attempts_made += 1
            seed = self.config.seed + attempt
            outcome = self._run_attempt(generation_input, catalog, plans, caps, teachers, fixed, seed, attempt)
            validate_assignments(outcome.assignments, catalog, policy, teachers)
            if fixed:
                validate_assignments([*fixed, *outcome.assignments], catalog, policy)

            logger.info(
                "Attempt %d (seed %d): %d placed, %d conflicts, imbalance %d",
                attempt + 1, seed, outcome.total_placed, len(outcome.conflicts), outcome.imbalance,
            )

            if best is None or self._rank(outcome) < self._rank(best):
                best = outcome
            if self._acceptable(outcome):
                break

        # max_attempts >= 1, so at least one attempt ran
        best = cast(GenerationResult, best)
        best.attempts_made = attempts_made
        best.overloads = find_overloads(
            [*fixed, *best.assignments], caps, self.config.default_teacher_weekly_cap
        )
        best.elapsed_ms = int((time.perf_counter() - started) * 1000)

        for warning in best.overloads:
            logger.warning(warning.describe())

        logger.info(
            "Finished %s: %s, %d placed, %d conflicts after %d attempt(s)",
            generation_input.institution_id,
            "success" if best.success else "partial",
            best.total_placed,
            len(best.conflicts),
            attempts_made,
        )
        return best

    def _run_attempt(
        self,
        generation_input: GenerationInput,
        catalog: SlotCatalog,
        plans: list[ShiftPlan],
        caps: dict[str, int],
        teachers: dict[str, Teacher],
        fixed: Sequence[Assignment],
        seed: int,
        attempt: int,
    ) -> GenerationResult:
        rng = random.Random(seed)
        tracker = AvailabilityTracker(self.config.teacher_key_policy)
        for assignment in fixed:
            tracker.reserve(assignment.unit, assignment.slot)

        engine = PlacementEngine(catalog, self.config, rng, caps, teachers)
        combined = PlacementResult()
        all_units: list[LessonUnit] = []

        for plan in plans:
            all_units.extend(plan.units)
            combined.conflicts.extend(plan.infeasible_conflicts())
            combined.merge(engine.place(plan.placeable_units, tracker, plan.shift))

        return GenerationResult(
            institution_id=generation_input.institution_id,
            assignments=combined.assignments,
            conflicts=combined.conflicts,
            lesson_units=len(all_units),
            seed=seed,
            attempt=attempt,
            backtrack_steps=combined.backtrack_steps,
            relocations=combined.relocations,
            imbalance=session_imbalance(combined.assignments),
            feasibility=[p.feasibility for p in plans],
        )

    @staticmethod
    def _rank(outcome: GenerationResult) -> tuple[int, int, int]:
        return (len(outcome.conflicts), outcome.imbalance, outcome.attempt)

    def _acceptable(self, outcome: GenerationResult) -> bool:
        """No restart can improve on this: only infeasible demand is left unplaced."""
        return not outcome.placement_conflicts and outcome.imbalance <= self.config.max_imbalance


def generate_timetable(
    generation_input: GenerationInput,
    config: Optional[GenerationConfig] = None,
) -> GenerationResult:
    """Convenience wrapper around TimetableGenerator."""
    return TimetableGenerator(config).generate(generation_input)


def regenerate_timetable(
    generation_input: GenerationInput,
    store: AssignmentStore,
    config: Optional[GenerationConfig] = None,
    regenerate: bool = True,
) -> GenerationResult:
    """
    Generate and atomically replace the institution's stored assignments.

    The store is touched only after the run completes and validates, so a
    failing run leaves the previous timetable in place.

    Raises:
        ScheduleExistsError: If a timetable exists and regenerate is False
        DataIntegrityViolation: If the produced schedule is invalid
    """
    institution_id = generation_input.institution_id
    if not regenerate and store.has_assignments(institution_id):
        raise ScheduleExistsError(institution_id)

    result = TimetableGenerator(config).generate(generation_input)
    store.replace_assignments(institution_id, result.assignments)
    logger.info("Stored %d assignments for %s", result.total_placed, institution_id)
    return result


def assignments_from_rows(rows: Iterable[dict], catalog: SlotCatalog) -> list[Assignment]:
    """
    Rebuild Assignments from stored rows.

    Raises:
        InputValidationError: If a row points at a slot the catalog lacks
    """
    assignments = []
    for ordinal, row in enumerate(rows):
        slot = catalog.get(row["time_slot_id"])
        if slot is None:
            raise InputValidationError(
                f"Stored assignment for class {row['class_id']} references unknown slot {row['time_slot_id']}",
                details={"row": row},
            )
        unit = LessonUnit(
            class_id=row["class_id"],
            subject_id=row["subject_id"],
            teacher_id=row["teacher_id"],
            target_session=slot.session,
            ordinal=ordinal,
            shift=Shift(row["shift"]) if row.get("shift") else None,
        )
        assignments.append(Assignment(unit=unit, slot=slot))
    return assignments


def regenerate_class(
    generation_input: GenerationInput,
    class_id: str,
    store: AssignmentStore,
    config: Optional[GenerationConfig] = None,
    regenerate: bool = True,
) -> GenerationResult:
    """
    Reschedule one class around the stored timetables of the others.

    Stored rows of every other class are kept and block their class and
    teacher slots. The class's new rows and the kept rows replace the
    institution's timetable in one atomic write.

    Returns:
        GenerationResult covering the rescheduled class only

    Raises:
        InputValidationError: If the class has no demand or a stored row is unreadable
        ScheduleExistsError: If the class is already scheduled and regenerate is False
        DataIntegrityViolation: If the stored rows or the new schedule break an invariant
    """
    institution_id = generation_input.institution_id
    if not any(record.class_id == class_id for record in generation_input.demand):
        raise InputValidationError(
            f"No demand found for class {class_id}",
            details={"institution_id": institution_id, "class_id": class_id},
        )

    rows = store.get_assignments(institution_id)
    if not regenerate and any(row["class_id"] == class_id for row in rows):
        raise ScheduleExistsError(institution_id, class_id)

    catalog = SlotCatalog(generation_input.slots)
    fixed = assignments_from_rows([row for row in rows if row["class_id"] != class_id], catalog)
    logger.info("Rescheduling class %s of %s around %d stored assignments", class_id, institution_id, len(fixed))

    result = TimetableGenerator(config).generate(generation_input, fixed=fixed, class_ids={class_id})
    store.replace_assignments(institution_id, [*fixed, *result.assignments])
    logger.info("Stored %d assignments for class %s of %s", result.total_placed, class_id, institution_id)
    return result
