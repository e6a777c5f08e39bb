"""
Pydantic models for the lesson scheduler data model.

Time conventions:
- Time of day is represented as minutes from midnight (0-1439)
- Days are MONDAY-FRIDAY, stored by name so catalogs read naturally

Example times:
- 8:00 AM = 480
- 11:40 AM = 700
- 3:30 PM = 930
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, NamedTuple, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# Constants and Enums
# =============================================================================

class Day(str, Enum):
    """School day of the week."""
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"

    @property
    def index(self) -> int:
        """Position in the week, 0 for Monday."""
        return DAY_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()


DAY_ORDER = [Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY, Day.FRIDAY]


class Session(str, Enum):
    """Half of the school day used to balance subject load."""
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"


class Shift(str, Enum):
    """Physical shift of a double-shift institution."""
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"


class BreakType(str, Enum):
    """Kind of non-teaching slot."""
    MORNING_BREAK = "MORNING_BREAK"
    LUNCH_BREAK = "LUNCH_BREAK"
    AFTERNOON_BREAK = "AFTERNOON_BREAK"
    END_OF_DAY = "END_OF_DAY"


class ConflictReason(str, Enum):
    """Why a lesson unit ended up without a slot."""
    INFEASIBLE_DEMAND = "INFEASIBLE_DEMAND"
    CLASS_SESSION_FULL = "CLASS_SESSION_FULL"
    TEACHER_UNAVAILABLE = "TEACHER_UNAVAILABLE"
    TEACHER_RESTRICTED = "TEACHER_RESTRICTED"
    TEACHER_OVERLOAD = "TEACHER_OVERLOAD"
    CONSECUTIVE_LIMIT = "CONSECUTIVE_LIMIT"


# Type aliases for documentation
MinutesFromMidnight = Annotated[int, Field(ge=0, le=1439, description="Time as minutes from midnight")]


# =============================================================================
# Helper Functions
# =============================================================================

def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to HH:MM format."""
    h, m = divmod(minutes, 60)
    return f"{h:02d}:{m:02d}"


def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM format to minutes from midnight."""
    h, m = map(int, time_str.split(":"))
    return h * 60 + m


def clock_to_minutes(value: Any) -> Any:
    """
    Read a clock value as minutes from midnight.

    Accepts "HH:MM", "HH:MM:SS" and ISO timestamps such as
    "1970-01-01T08:00:00.000Z" (only the time of day is kept). Anything
    else is returned unchanged for field validation to reject.
    """
    if not isinstance(value, str):
        return value
    clock = value.split("T", 1)[1] if "T" in value else value
    parts = clock.split(":")
    if len(parts) < 2 or not parts[0].isdigit() or not parts[1][:2].isdigit():
        return value
    return time_to_minutes(f"{parts[0]}:{parts[1][:2]}")


class SlotKey(NamedTuple):
    """Availability key for a (day, period) cell, optionally scoped to a shift."""
    shift: Optional[Shift]
    day: Day
    period: int


# =============================================================================
# Slot Catalog Entries
# =============================================================================

class TimeSlot(BaseModel):
    """
    A single cell of the weekly grid.

    Break rows carry negative period numbers in most catalogs; they are kept
    so the grid can be rendered, but are never assignable.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1, description="Unique identifier")
    day: Day = Field(description="Day of week")
    period: int = Field(description="Period number within the day")
    name: Optional[str] = Field(default=None, description="Display name (e.g., 'P1')")
    session: Session = Field(description="Morning or afternoon session")
    is_break: bool = Field(default=False, description="Break, lunch or end-of-day row")
    break_type: Optional[BreakType] = Field(default=None, description="Kind of break")
    is_cpd: bool = Field(default=False, description="Reserved for professional development")
    is_active: bool = Field(default=True, description="Whether the slot is in use")
    shift: Optional[Shift] = Field(default=None, description="Shift the slot belongs to")
    start_minutes: MinutesFromMidnight = Field(description="Start time")
    end_minutes: MinutesFromMidnight = Field(description="End time")

    @model_validator(mode="before")
    @classmethod
    def accept_clock_times(cls, data: Any) -> Any:
        """Map start_time/end_time clock values onto the minute fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for clock_key, minutes_key in (("start_time", "start_minutes"), ("end_time", "end_minutes")):
            if clock_key in data:
                value = data.pop(clock_key)
                data.setdefault(minutes_key, clock_to_minutes(value))
        return data

    @model_validator(mode="after")
    def validate_time_range(self) -> "TimeSlot":
        """Ensure start time is before end time."""
        if self.start_minutes >= self.end_minutes:
            raise ValueError(
                f"start_minutes ({self.start_minutes}) must be less than "
                f"end_minutes ({self.end_minutes})"
            )
        return self

    @property
    def is_assignable(self) -> bool:
        """Whether a regular lesson may be placed here."""
        return self.is_active and not self.is_break and not self.is_cpd

    @property
    def display_name(self) -> str:
        return self.name or f"P{self.period}"

    @property
    def time_range(self) -> str:
        return f"{minutes_to_time(self.start_minutes)}-{minutes_to_time(self.end_minutes)}"

    def belongs_to(self, shift: Optional[Shift]) -> bool:
        """Slots without a shift are shared by every shift."""
        return shift is None or self.shift is None or self.shift == shift

    def __str__(self) -> str:
        return f"{self.day.label} {self.display_name} ({self.time_range})"


# =============================================================================
# Demand and Reference Entities
# =============================================================================

class DemandRecord(BaseModel):
    """
    Weekly requirement for one (class, subject, teacher) combination.

    periods_per_week is deliberately unconstrained: rows with zero or
    negative values are dropped by the demand builder instead of rejected.
    """
    model_config = ConfigDict(extra="forbid")

    class_id: str = Field(min_length=1, description="Class ID")
    subject_id: str = Field(min_length=1, description="Subject ID")
    teacher_id: str = Field(min_length=1, description="Teacher ID")
    periods_per_week: int = Field(description="Required periods per week")

    def __str__(self) -> str:
        return f"{self.subject_id} for {self.class_id} by {self.teacher_id} x{self.periods_per_week}"


class Teacher(BaseModel):
    """
    Teacher entity.

    unavailable_days and unavailable_periods block every slot on those days
    and every slot with those period numbers, in any shift.
    """
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Full name")
    max_periods_per_week: Optional[int] = Field(default=None, ge=1, le=80, description="Weekly period cap")
    unavailable_days: list[Day] = Field(default_factory=list, description="Days the teacher cannot teach")
    unavailable_periods: list[int] = Field(default_factory=list, description="Periods the teacher cannot teach")

    @property
    def has_restrictions(self) -> bool:
        return bool(self.unavailable_days or self.unavailable_periods)

    def allows(self, slot: TimeSlot) -> bool:
        """Whether the teacher may be booked at the slot."""
        return slot.day not in self.unavailable_days and slot.period not in self.unavailable_periods

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class SchoolClass(BaseModel):
    """Student class/stream."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Class name (e.g., 'P4 A')")
    level: Optional[str] = Field(default=None, description="Level (e.g., 'P4', 'S1')")

    def __str__(self) -> str:
        return self.name


class Subject(BaseModel):
    """Subject taught to classes."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Subject name")
    code: Optional[str] = Field(default=None, max_length=10, description="Short code")

    def __str__(self) -> str:
        return f"{self.name} ({self.code or self.id})"


# =============================================================================
# Run-scoped Records
# =============================================================================

@dataclass(frozen=True)
class LessonUnit:
    """One indivisible period requirement, regenerated every run."""
    class_id: str
    subject_id: str
    teacher_id: str
    target_session: Session
    ordinal: int  # Position among the units emitted for the same record
    shift: Optional[Shift] = None

    @property
    def label(self) -> str:
        return f"{self.subject_id}/{self.class_id}#{self.ordinal}"


@dataclass(frozen=True)
class Assignment:
    """A lesson unit placed on a slot."""
    unit: LessonUnit
    slot: TimeSlot

    @property
    def class_id(self) -> str:
        return self.unit.class_id

    @property
    def teacher_id(self) -> str:
        return self.unit.teacher_id

    @property
    def subject_id(self) -> str:
        return self.unit.subject_id

    @property
    def shift(self) -> Optional[Shift]:
        return self.unit.shift

    def to_record(self, institution_id: str) -> dict[str, Any]:
        """Row shape expected by a bulk insert."""
        return {
            "institution_id": institution_id,
            "class_id": self.unit.class_id,
            "teacher_id": self.unit.teacher_id,
            "subject_id": self.unit.subject_id,
            "time_slot_id": self.slot.id,
            "shift": self.unit.shift.value if self.unit.shift else None,
        }


@dataclass(frozen=True)
class ConflictRecord:
    """A lesson unit that could not be placed."""
    unit: LessonUnit
    reason: ConflictReason
    message: str = ""


# =============================================================================
# Main Input Model
# =============================================================================

class GenerationInput(BaseModel):
    """
    Everything the engine needs for one institution.

    teachers, classes and subjects are optional: when supplied they provide
    display names and weekly caps, and demand rows are checked against them.
    """
    model_config = ConfigDict(extra="forbid")

    institution_id: str = Field(min_length=1, description="Institution identifier")
    double_shift: bool = Field(default=False, description="Run placement once per shift")
    slots: list[TimeSlot] = Field(min_length=1, description="Slot catalog")
    demand: list[DemandRecord] = Field(default_factory=list, description="Demand rows")
    teachers: list[Teacher] = Field(default_factory=list, description="Teachers")
    classes: list[SchoolClass] = Field(default_factory=list, description="Classes")
    subjects: list[Subject] = Field(default_factory=list, description="Subjects")

    _teacher_map: dict[str, Teacher] = {}
    _class_map: dict[str, SchoolClass] = {}
    _subject_map: dict[str, Subject] = {}

    def model_post_init(self, __context: Any) -> None:
        """Build lookup maps after model initialization."""
        self._teacher_map = {t.id: t for t in self.teachers}
        self._class_map = {c.id: c for c in self.classes}
        self._subject_map = {s.id: s for s in self.subjects}

    @model_validator(mode="after")
    def validate_no_duplicate_ids(self) -> "GenerationInput":
        """Ensure no duplicate IDs within each entity type."""
        errors: list[str] = []

        def check_duplicates(items: list, entity_name: str) -> None:
            seen: set[str] = set()
            for item in items:
                if item.id in seen:
                    errors.append(f"Duplicate {entity_name} ID: '{item.id}'")
                seen.add(item.id)

        check_duplicates(self.slots, "slot")
        check_duplicates(self.teachers, "teacher")
        check_duplicates(self.classes, "class")
        check_duplicates(self.subjects, "subject")

        if errors:
            raise ValueError("Duplicate ID validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

        return self

    @model_validator(mode="after")
    def validate_references(self) -> "GenerationInput":
        """Check demand rows against whichever entity lists were supplied."""
        errors: list[str] = []

        teacher_ids = {t.id for t in self.teachers}
        class_ids = {c.id for c in self.classes}
        subject_ids = {s.id for s in self.subjects}

        for i, record in enumerate(self.demand):
            if teacher_ids and record.teacher_id not in teacher_ids:
                errors.append(f"Demand {i}: unknown teacher_id '{record.teacher_id}'")
            if class_ids and record.class_id not in class_ids:
                errors.append(f"Demand {i}: unknown class_id '{record.class_id}'")
            if subject_ids and record.subject_id not in subject_ids:
                errors.append(f"Demand {i}: unknown subject_id '{record.subject_id}'")

        if errors:
            raise ValueError("Reference validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

        return self

    # -------------------------------------------------------------------------
    # Lookup Methods
    # -------------------------------------------------------------------------

    def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        return self._teacher_map.get(teacher_id)

    def get_class(self, class_id: str) -> Optional[SchoolClass]:
        return self._class_map.get(class_id)

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return self._subject_map.get(subject_id)

    def teacher_names(self) -> dict[str, str]:
        return {t.id: t.name for t in self.teachers}

    def class_names(self) -> dict[str, str]:
        return {c.id: c.name for c in self.classes}

    def subject_names(self) -> dict[str, str]:
        return {s.id: s.name for s in self.subjects}

    def teacher_caps(self) -> dict[str, int]:
        """Weekly caps declared on teachers."""
        return {t.id: t.max_periods_per_week for t in self.teachers if t.max_periods_per_week}

    def teacher_restrictions(self) -> dict[str, Teacher]:
        """Teachers with unavailable days or periods, by ID."""
        return {t.id: t for t in self.teachers if t.has_restrictions}

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    @property
    def total_periods_per_week(self) -> int:
        """Required periods across all positive demand rows."""
        return sum(r.periods_per_week for r in self.demand if r.periods_per_week > 0)

    def summary(self) -> dict[str, Any]:
        """Get a summary of the input data."""
        return {
            "institution_id": self.institution_id,
            "double_shift": self.double_shift,
            "slots": len(self.slots),
            "assignable_slots": sum(1 for s in self.slots if s.is_assignable),
            "cpd_slots": sum(1 for s in self.slots if s.is_cpd),
            "demand_rows": len(self.demand),
            "teachers": len({r.teacher_id for r in self.demand}),
            "classes": len({r.class_id for r in self.demand}),
            "total_periods_per_week": self.total_periods_per_week,
        }


# =============================================================================
# JSON Loading Helper
# =============================================================================

def load_generation_input_from_json(path: str) -> GenerationInput:
    """
    Load and validate generation input from a JSON file.

    Keys may be camelCase or snake_case. Slots may give their times as
    start_minutes/end_minutes or as startTime/endTime clock values
    ("08:00" or an ISO timestamp).

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If invalid JSON
        pydantic.ValidationError: If validation fails
    """
    import json
    from pathlib import Path

    json_path = Path(path)
    with open(json_path) as f:
        data = json.load(f)

    return GenerationInput.model_validate(_convert_keys_to_snake_case(data))


def _convert_keys_to_snake_case(obj: Any) -> Any:
    """Recursively convert dictionary keys from camelCase to snake_case."""
    import re

    def to_snake_case(name: str) -> str:
        name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
        name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)
        return name.lower()

    if isinstance(obj, dict):
        return {to_snake_case(k): _convert_keys_to_snake_case(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_convert_keys_to_snake_case(item) for item in obj]
    else:
        return obj
