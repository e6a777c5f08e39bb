"""
Conflict reporting.

Turns the conflicts of a generation run into the report handed back to
callers: totals, per-class, per-teacher and per-reason counts, and the
success flag. The reporter only reads assignments, it never changes them.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from ..data.models import Assignment, ConflictReason, ConflictRecord, Session, Shift


class ConflictOutput(BaseModel):
    """One unplaced lesson unit."""
    class_id: str = Field(alias="classId")
    teacher_id: str = Field(alias="teacherId")
    subject_id: str = Field(alias="subjectId")
    reason: ConflictReason
    message: str = ""
    session: Session
    shift: Optional[Shift] = None

    model_config = {"populate_by_name": True}

    @classmethod
    def from_record(cls, record: ConflictRecord) -> ConflictOutput:
        unit = record.unit
        return cls(
            classId=unit.class_id,
            teacherId=unit.teacher_id,
            subjectId=unit.subject_id,
            reason=record.reason,
            message=record.message,
            session=unit.target_session,
            shift=unit.shift,
        )


class ConflictReport(BaseModel):
    """Summary of what could not be placed."""
    success: bool
    conflicts: list[ConflictOutput] = Field(default_factory=list)
    total_placed: int = Field(alias="totalPlaced")
    total_conflicts: int = Field(alias="totalConflicts")
    by_class: dict[str, int] = Field(default_factory=dict, alias="byClass")
    by_teacher: dict[str, int] = Field(default_factory=dict, alias="byTeacher")
    by_reason: dict[str, int] = Field(default_factory=dict, alias="byReason")
    warnings: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


class ConflictReporter:
    """
    Builds ConflictReport objects.

    Usage:
        report = ConflictReporter.build(result.conflicts, result.assignments)
        if not report.success:
            print(report.by_reason)
    """

    @staticmethod
    def build(
        conflicts: Iterable[ConflictRecord],
        assignments: Iterable[Assignment],
        warnings: Optional[list[str]] = None,
    ) -> ConflictReport:
        conflicts = list(conflicts)
        total_placed = sum(1 for _ in assignments)

        by_class = Counter(c.unit.class_id for c in conflicts)
        by_teacher = Counter(c.unit.teacher_id for c in conflicts)
        by_reason = Counter(c.reason.value for c in conflicts)

        return ConflictReport(
            success=len(conflicts) == 0,
            conflicts=[ConflictOutput.from_record(c) for c in conflicts],
            totalPlaced=total_placed,
            totalConflicts=len(conflicts),
            byClass=dict(sorted(by_class.items())),
            byTeacher=dict(sorted(by_teacher.items())),
            byReason=dict(sorted(by_reason.items())),
            warnings=list(warnings or []),
        )

    @staticmethod
    def describe(report: ConflictReport) -> list[str]:
        """Human-readable lines, one per reason then one per class."""
        if report.success:
            return [f"All {report.total_placed} lessons placed"]

        lines = [f"{report.total_conflicts} lessons could not be placed ({report.total_placed} placed)"]
        for reason, count in report.by_reason.items():
            lines.append(f"  {reason}: {count}")
        for class_id, count in report.by_class.items():
            lines.append(f"  class {class_id}: {count} unplaced")
        return lines
