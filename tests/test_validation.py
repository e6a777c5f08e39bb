"""Tests for post-placement validation."""

from __future__ import annotations

import pytest

from lesson_scheduler.config import TeacherKeyPolicy
from lesson_scheduler.data.models import Assignment, Day, LessonUnit, Session, Shift, Teacher
from lesson_scheduler.data.slots import SlotCatalog, build_default_catalog
from lesson_scheduler.engine.validation import (
    OverloadWarning,
    find_integrity_violations,
    find_overloads,
    session_imbalance,
    session_split,
    validate_assignments,
)
from lesson_scheduler.errors import DataIntegrityViolation


@pytest.fixture
def catalog() -> SlotCatalog:
    return SlotCatalog(build_default_catalog("sch"))


def place(catalog, class_id, teacher_id, day, period, subject_id="mat", shift=None, ordinal=0) -> Assignment:
    slot = catalog.find(day, period)
    session = slot.session
    return Assignment(unit=LessonUnit(class_id, subject_id, teacher_id, session, ordinal, shift), slot=slot)


class TestIntegrity:
    """Tests for hard invariant checks."""

    def test_clean_schedule(self, catalog):
        assignments = [
            place(catalog, "c1", "t1", Day.MONDAY, 1),
            place(catalog, "c2", "t2", Day.MONDAY, 1),
            place(catalog, "c1", "t2", Day.MONDAY, 2),
        ]
        assert find_integrity_violations(assignments, catalog) == []
        validate_assignments(assignments, catalog)

    def test_teacher_double_booking(self, catalog):
        assignments = [
            place(catalog, "c1", "t1", Day.MONDAY, 1),
            place(catalog, "c2", "t1", Day.MONDAY, 1),
        ]
        violations = find_integrity_violations(assignments, catalog)
        assert len(violations) == 1
        assert violations[0].startswith("teacher t1 double-booked")

    def test_class_double_booking(self, catalog):
        assignments = [
            place(catalog, "c1", "t1", Day.MONDAY, 1),
            place(catalog, "c1", "t2", Day.MONDAY, 1, subject_id="eng"),
        ]
        with pytest.raises(DataIntegrityViolation) as excinfo:
            validate_assignments(assignments, catalog)
        assert "class c1 double-booked" in excinfo.value.violations[0]

    def test_cpd_slot_rejected(self, catalog):
        violations = find_integrity_violations([place(catalog, "c1", "t1", Day.WEDNESDAY, 9)], catalog)
        assert violations == ["mat/c1#0 placed on CPD slot sch-wed-9"]

    def test_same_period_in_both_shifts(self, catalog):
        assignments = [
            place(catalog, "c1", "t1", Day.MONDAY, 1, shift=Shift.MORNING),
            place(catalog, "c1", "t1", Day.MONDAY, 1, shift=Shift.AFTERNOON),
        ]
        assert len(find_integrity_violations(assignments, catalog, TeacherKeyPolicy.PERIOD)) == 1
        assert find_integrity_violations(assignments, catalog, TeacherKeyPolicy.SHIFT) == []


class TestOverloads:

    def test_over_cap(self, catalog):
        assignments = [place(catalog, "c1", "t1", Day.MONDAY, p, ordinal=p) for p in (1, 2, 3)]
        assert find_overloads(assignments, {"t1": 2}) == [OverloadWarning("t1", 3, 2)]

    def test_default_cap(self, catalog):
        assignments = [place(catalog, "c1", "t1", Day.MONDAY, p, ordinal=p) for p in (1, 2)]
        assert find_overloads(assignments, {}) == []
        assert find_overloads(assignments, {}, default_cap=1)[0].describe() == (
            "Teacher t1 has 2 periods, above the cap of 1"
        )


class TestSessionBalance:

    def test_balanced(self, catalog):
        assignments = [
            place(catalog, "c1", "t1", Day.MONDAY, 1),
            place(catalog, "c1", "t1", Day.MONDAY, 6, ordinal=1),
            place(catalog, "c1", "t1", Day.TUESDAY, 7, ordinal=2),
        ]
        assert session_imbalance(assignments) == 0
        assert session_split(assignments) == {Session.MORNING: 1, Session.AFTERNOON: 2}

    def test_all_morning(self, catalog):
        assignments = [place(catalog, "c1", "t1", day, 1) for day in (Day.MONDAY, Day.TUESDAY, Day.WEDNESDAY, Day.THURSDAY)]
        assert session_imbalance(assignments) == 2

    def test_empty(self):
        assert session_imbalance([]) == 0


class TestTeacherRestrictions:

    def test_booking_on_unavailable_day(self, catalog):
        teacher = Teacher(id="t1", name="Alice", unavailable_days=[Day.MONDAY])
        assignments = [place(catalog, "c1", "t1", Day.MONDAY, 1), place(catalog, "c1", "t1", Day.TUESDAY, 1)]

        violations = find_integrity_violations(assignments, catalog, teachers={"t1": teacher})

        assert len(violations) == 1
        assert "teacher t1 booked while unavailable" in violations[0]
        with pytest.raises(DataIntegrityViolation):
            validate_assignments(assignments, catalog, teachers={"t1": teacher})

    def test_restrictions_ignored_without_teachers(self, catalog):
        assert find_integrity_violations([place(catalog, "c1", "t1", Day.MONDAY, 1)], catalog) == []
