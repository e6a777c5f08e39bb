"""Lesson Scheduler - weekly school timetables with morning/afternoon balancing."""

from .config import GenerationConfig, TeacherKeyPolicy, get_settings
from .engine.pipeline import (
    GenerationResult,
    TimetableGenerator,
    generate_timetable,
    regenerate_class,
    regenerate_timetable,
)
from .errors import (
    CatalogError,
    DataIntegrityViolation,
    InputValidationError,
    ScheduleExistsError,
    SchedulingError,
    StoreError,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "GenerationConfig",
    "TeacherKeyPolicy",
    "get_settings",
    # Pipeline
    "TimetableGenerator",
    "GenerationResult",
    "generate_timetable",
    "regenerate_timetable",
    "regenerate_class",
    # Errors
    "SchedulingError",
    "InputValidationError",
    "CatalogError",
    "DataIntegrityViolation",
    "ScheduleExistsError",
    "StoreError",
]
