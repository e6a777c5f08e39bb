"""Tests for conflict reporting."""

from __future__ import annotations

import json

import pytest

from lesson_scheduler.data.models import ConflictReason, ConflictRecord, LessonUnit, Session, Shift
from lesson_scheduler.output.conflicts import ConflictOutput, ConflictReporter


def conflict(class_id, teacher_id, reason, subject_id="mat") -> ConflictRecord:
    unit = LessonUnit(class_id, subject_id, teacher_id, Session.AFTERNOON, 0)
    return ConflictRecord(unit=unit, reason=reason, message=f"{reason.value} for {class_id}")


@pytest.fixture
def conflicts() -> list[ConflictRecord]:
    return [
        conflict("c2", "t1", ConflictReason.TEACHER_UNAVAILABLE),
        conflict("c1", "t1", ConflictReason.TEACHER_UNAVAILABLE),
        conflict("c1", "t2", ConflictReason.CLASS_SESSION_FULL, "eng"),
    ]


class TestConflictReporter:

    def test_counts(self, conflicts):
        report = ConflictReporter.build(conflicts, [])

        assert not report.success
        assert report.total_conflicts == 3
        assert report.total_placed == 0
        assert report.by_class == {"c1": 2, "c2": 1}
        assert report.by_teacher == {"t1": 2, "t2": 1}
        assert report.by_reason == {"CLASS_SESSION_FULL": 1, "TEACHER_UNAVAILABLE": 2}

    def test_empty_is_success(self):
        report = ConflictReporter.build([], [], warnings=["check caps"])
        assert report.success
        assert report.warnings == ["check caps"]
        assert ConflictReporter.describe(report) == ["All 0 lessons placed"]

    def test_describe(self, conflicts):
        lines = ConflictReporter.describe(ConflictReporter.build(conflicts, []))
        assert lines[0] == "3 lessons could not be placed (0 placed)"
        assert "  class c1: 2 unplaced" in lines

    def test_json_uses_camel_case(self, conflicts):
        data = json.loads(ConflictReporter.build(conflicts, []).to_json())
        assert data["totalConflicts"] == 3
        assert data["conflicts"][0]["classId"] == "c2"
        assert data["conflicts"][0]["session"] == "AFTERNOON"


class TestConflictOutput:

    def test_from_record(self):
        unit = LessonUnit("c1", "mat", "t1", Session.MORNING, 2, Shift.MORNING)
        record = ConflictRecord(unit=unit, reason=ConflictReason.TEACHER_OVERLOAD, message="cap")

        output = ConflictOutput.from_record(record)

        assert output.class_id == "c1"
        assert output.reason == ConflictReason.TEACHER_OVERLOAD
        assert output.shift == Shift.MORNING
        assert output.session == Session.MORNING
