"""
Output schema for generated timetables.

This module defines the JSON-serializable output format for a generation
run: the conflict report, the assignment rows, and pre-computed views by
class, teacher and day.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, Field

from ..data.models import DAY_ORDER, Assignment, Day, GenerationInput, Session, Shift, minutes_to_time
from .conflicts import ConflictReport, ConflictReporter

if TYPE_CHECKING:
    from ..engine.pipeline import GenerationResult


# =============================================================================
# Assignment Output
# =============================================================================

class AssignmentOutput(BaseModel):
    """A single placed lesson in the output."""
    class_id: str = Field(alias="classId")
    teacher_id: str = Field(alias="teacherId")
    subject_id: str = Field(alias="subjectId")
    time_slot_id: str = Field(alias="timeSlotId")
    day: Day
    period: int
    session: Session
    start_time: str = Field(alias="startTime")  # 'HH:MM'
    end_time: str = Field(alias="endTime")  # 'HH:MM'
    shift: Optional[Shift] = None

    # Optional enriched data
    period_name: Optional[str] = Field(default=None, alias="periodName")
    teacher_name: Optional[str] = Field(default=None, alias="teacherName")
    class_name: Optional[str] = Field(default=None, alias="className")
    subject_name: Optional[str] = Field(default=None, alias="subjectName")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_assignment(
        cls,
        assignment: Assignment,
        generation_input: Optional[GenerationInput] = None,
    ) -> AssignmentOutput:
        """Create from an Assignment, adding names when the input has them."""
        slot = assignment.slot
        teacher = class_ = subject = None
        if generation_input is not None:
            teacher = generation_input.get_teacher(assignment.teacher_id)
            class_ = generation_input.get_class(assignment.class_id)
            subject = generation_input.get_subject(assignment.subject_id)

        return cls(
            classId=assignment.class_id,
            teacherId=assignment.teacher_id,
            subjectId=assignment.subject_id,
            timeSlotId=slot.id,
            day=slot.day,
            period=slot.period,
            session=slot.session,
            startTime=minutes_to_time(slot.start_minutes),
            endTime=minutes_to_time(slot.end_minutes),
            shift=assignment.shift,
            periodName=slot.display_name,
            teacherName=teacher.name if teacher else None,
            className=class_.name if class_ else None,
            subjectName=subject.name if subject else None,
        )

    @property
    def sort_key(self) -> tuple:
        return (self.shift.value if self.shift else "", self.day.index, self.start_time, self.period)


# =============================================================================
# Views
# =============================================================================

class DaySchedule(BaseModel):
    """Schedule for a single day."""
    day: Day
    day_name: str = Field(alias="dayName")
    lessons: list[AssignmentOutput]

    model_config = {"populate_by_name": True}


class EntitySchedule(BaseModel):
    """Schedule for a class or a teacher."""
    id: str
    name: str
    lessons: list[AssignmentOutput]
    by_day: dict[Day, list[AssignmentOutput]] = Field(default_factory=dict, alias="byDay")

    model_config = {"populate_by_name": True}

    @property
    def periods(self) -> int:
        return len(self.lessons)


class TimetableViews(BaseModel):
    """Pre-computed views of the timetable for convenience."""
    by_class: dict[str, EntitySchedule] = Field(default_factory=dict, alias="byClass")
    by_teacher: dict[str, EntitySchedule] = Field(default_factory=dict, alias="byTeacher")
    by_day: dict[Day, DaySchedule] = Field(default_factory=dict, alias="byDay")

    model_config = {"populate_by_name": True}


# =============================================================================
# Complete Output
# =============================================================================

class RunInfo(BaseModel):
    """How the timetable was produced."""
    seed: int
    attempt: int
    attempts_made: int = Field(alias="attemptsMade")
    backtrack_steps: int = Field(alias="backtrackSteps")
    imbalance: int
    elapsed_ms: int = Field(alias="elapsedMs")

    model_config = {"populate_by_name": True}


class TimetableOutput(BaseModel):
    """Complete output for a generated timetable."""
    institution_id: str = Field(alias="institutionId")
    double_shift: bool = Field(alias="doubleShift")
    report: ConflictReport
    run: RunInfo
    assignments: list[AssignmentOutput]
    views: TimetableViews

    model_config = {"populate_by_name": True}

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Conversion Functions
# =============================================================================

def create_timetable_output(
    result: GenerationResult,
    generation_input: Optional[GenerationInput] = None,
) -> TimetableOutput:
    """
    Create a TimetableOutput from a GenerationResult.

    Args:
        result: The generation result
        generation_input: Optional input, used for display names

    Returns:
        TimetableOutput with report and all views populated
    """
    lessons = sorted(
        (AssignmentOutput.from_assignment(a, generation_input) for a in result.assignments),
        key=lambda lesson: lesson.sort_key,
    )

    report = ConflictReporter.build(result.conflicts, result.assignments, result.warnings())

    teacher_names = generation_input.teacher_names() if generation_input else {}
    class_names = generation_input.class_names() if generation_input else {}

    return TimetableOutput(
        institutionId=result.institution_id,
        doubleShift=generation_input.double_shift if generation_input else False,
        report=report,
        run=RunInfo(
            seed=result.seed,
            attempt=result.attempt,
            attemptsMade=result.attempts_made,
            backtrackSteps=result.backtrack_steps,
            imbalance=result.imbalance,
            elapsedMs=result.elapsed_ms,
        ),
        assignments=lessons,
        views=_create_views(lessons, teacher_names, class_names),
    )


def _create_views(
    lessons: list[AssignmentOutput],
    teacher_names: dict[str, str],
    class_names: dict[str, str],
) -> TimetableViews:
    """Create pre-computed views from sorted lessons."""
    by_teacher: dict[str, list[AssignmentOutput]] = {}
    by_class: dict[str, list[AssignmentOutput]] = {}
    by_day: dict[Day, list[AssignmentOutput]] = {}

    for lesson in lessons:
        by_teacher.setdefault(lesson.teacher_id, []).append(lesson)
        by_class.setdefault(lesson.class_id, []).append(lesson)
        by_day.setdefault(lesson.day, []).append(lesson)

    teacher_schedules = {
        teacher_id: EntitySchedule(
            id=teacher_id,
            name=teacher_names.get(teacher_id) or teacher_lessons[0].teacher_name or teacher_id,
            lessons=teacher_lessons,
            byDay=_group_by_day(teacher_lessons),
        )
        for teacher_id, teacher_lessons in sorted(by_teacher.items())
    }

    class_schedules = {
        class_id: EntitySchedule(
            id=class_id,
            name=class_names.get(class_id) or class_lessons[0].class_name or class_id,
            lessons=class_lessons,
            byDay=_group_by_day(class_lessons),
        )
        for class_id, class_lessons in sorted(by_class.items())
    }

    day_schedules = {
        day: DaySchedule(day=day, dayName=day.label, lessons=by_day[day])
        for day in DAY_ORDER
        if day in by_day
    }

    return TimetableViews(byClass=class_schedules, byTeacher=teacher_schedules, byDay=day_schedules)


def _group_by_day(lessons: list[AssignmentOutput]) -> dict[Day, list[AssignmentOutput]]:
    """Group lessons by day, Monday first."""
    grouped: dict[Day, list[AssignmentOutput]] = {}
    for lesson in lessons:
        grouped.setdefault(lesson.day, []).append(lesson)
    return {day: grouped[day] for day in DAY_ORDER if day in grouped}


# =============================================================================
# Convenience Functions
# =============================================================================

def result_to_json(
    result: GenerationResult,
    generation_input: Optional[GenerationInput] = None,
    indent: int = 2,
) -> str:
    """Convert a GenerationResult directly to a JSON string."""
    return create_timetable_output(result, generation_input).to_json(indent=indent)


def load_timetable_output(path: str) -> TimetableOutput:
    """Load a timetable previously written with to_json()."""
    with open(path) as f:
        return TimetableOutput.model_validate_json(f.read())
