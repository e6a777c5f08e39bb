"""Input models, slot catalogs and sample data."""

from .models import (
    Assignment,
    ConflictReason,
    ConflictRecord,
    Day,
    DemandRecord,
    GenerationInput,
    LessonUnit,
    SchoolClass,
    Session,
    Shift,
    Subject,
    Teacher,
    TimeSlot,
    load_generation_input_from_json,
)
from .slots import SlotCatalog, build_default_catalog
from .generator import (
    SampleSchoolConfig,
    generate_sample_school,
    generate_small_school,
    generate_medium_school,
    save_sample_school,
)

__all__ = [
    # Models
    "Assignment",
    "ConflictReason",
    "ConflictRecord",
    "Day",
    "DemandRecord",
    "GenerationInput",
    "LessonUnit",
    "SchoolClass",
    "Session",
    "Shift",
    "Subject",
    "Teacher",
    "TimeSlot",
    "load_generation_input_from_json",
    # Catalog
    "SlotCatalog",
    "build_default_catalog",
    # Generator
    "SampleSchoolConfig",
    "generate_sample_school",
    "generate_small_school",
    "generate_medium_school",
    "save_sample_school",
]
