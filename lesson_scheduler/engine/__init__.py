"""Scheduling engine: demand expansion, feasibility, placement and validation."""

from .availability import AvailabilityTracker
from .demand import build_lesson_units, split_periods, summarise_demand
from .feasibility import FeasibilityChecker, FeasibilityReport
from .placement import PlacementEngine, PlacementResult
from .validation import OverloadWarning, find_overloads, session_imbalance, validate_assignments
from .pipeline import (
    GenerationResult,
    TimetableGenerator,
    assignments_from_rows,
    generate_timetable,
    regenerate_class,
    regenerate_timetable,
)

__all__ = [
    "AvailabilityTracker",
    "build_lesson_units",
    "split_periods",
    "summarise_demand",
    "FeasibilityChecker",
    "FeasibilityReport",
    "PlacementEngine",
    "PlacementResult",
    "OverloadWarning",
    "find_overloads",
    "session_imbalance",
    "validate_assignments",
    "GenerationResult",
    "TimetableGenerator",
    "generate_timetable",
    "regenerate_timetable",
    "regenerate_class",
    "assignments_from_rows",
]
