"""Tests for Pydantic models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from lesson_scheduler.data.models import (
    Assignment,
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
    minutes_to_time,
    time_to_minutes,
)


def make_slot(slot_id: str = "s1", **overrides) -> TimeSlot:
    values = dict(
        id=slot_id,
        day=Day.MONDAY,
        period=1,
        session=Session.MORNING,
        start_minutes=480,
        end_minutes=520,
    )
    values.update(overrides)
    return TimeSlot(**values)


class TestTimeHelpers:
    """Tests for time conversion helpers."""

    def test_minutes_to_time(self):
        assert minutes_to_time(0) == "00:00"
        assert minutes_to_time(480) == "08:00"
        assert minutes_to_time(790) == "13:10"
        assert minutes_to_time(1439) == "23:59"

    def test_time_to_minutes(self):
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("08:00") == 480
        assert time_to_minutes("16:55") == 1015


class TestDay:

    def test_index_follows_week_order(self):
        assert Day.MONDAY.index == 0
        assert Day.FRIDAY.index == 4

    def test_label(self):
        assert Day.WEDNESDAY.label == "Wednesday"


class TestTimeSlot:
    """Tests for TimeSlot model."""

    def test_regular_slot_is_assignable(self):
        slot = make_slot()
        assert slot.is_assignable
        assert slot.display_name == "P1"
        assert slot.time_range == "08:00-08:40"

    def test_break_cpd_and_inactive_are_not_assignable(self):
        assert not make_slot(is_break=True).is_assignable
        assert not make_slot(is_cpd=True).is_assignable
        assert not make_slot(is_active=False).is_assignable

    def test_invalid_time_range(self):
        with pytest.raises(ValueError, match="start_minutes.*must be less than.*end_minutes"):
            make_slot(start_minutes=520, end_minutes=480)

    def test_equal_start_end(self):
        with pytest.raises(ValueError):
            make_slot(start_minutes=480, end_minutes=480)

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            make_slot(room="r1")

    def test_shared_slot_belongs_to_every_shift(self):
        slot = make_slot()
        assert slot.belongs_to(None)
        assert slot.belongs_to(Shift.MORNING)
        assert slot.belongs_to(Shift.AFTERNOON)

    def test_shift_slot_belongs_to_own_shift_only(self):
        slot = make_slot(shift=Shift.MORNING)
        assert slot.belongs_to(Shift.MORNING)
        assert not slot.belongs_to(Shift.AFTERNOON)
        assert slot.belongs_to(None)

    def test_str(self):
        assert str(make_slot(name="P1")) == "Monday P1 (08:00-08:40)"

    def test_clock_times(self):
        slot = TimeSlot(
            id="s1", day=Day.MONDAY, period=1, session=Session.MORNING,
            start_time="08:00", end_time="08:40:00",
        )
        assert slot.start_minutes == 480
        assert slot.end_minutes == 520

    def test_iso_timestamps(self):
        slot = TimeSlot(
            id="s1", day=Day.MONDAY, period=1, session=Session.MORNING,
            start_time="1970-01-01T08:00:00.000Z", end_time="1970-01-01T08:40:00.000Z",
        )
        assert (slot.start_minutes, slot.end_minutes) == (480, 520)

    def test_unreadable_clock_time(self):
        with pytest.raises(ValidationError):
            TimeSlot(
                id="s1", day=Day.MONDAY, period=1, session=Session.MORNING,
                start_time="eight", end_time="08:40",
            )


class TestDemandRecord:

    def test_zero_and_negative_periods_are_accepted(self):
        assert DemandRecord(class_id="c1", subject_id="m", teacher_id="t1", periods_per_week=0)
        assert DemandRecord(class_id="c1", subject_id="m", teacher_id="t1", periods_per_week=-2)

    def test_ids_required(self):
        with pytest.raises(ValidationError):
            DemandRecord(class_id="", subject_id="m", teacher_id="t1", periods_per_week=3)


class TestTeacher:

    def test_minimal_teacher(self):
        teacher = Teacher(id="t1", name="Alice Uwase")
        assert teacher.max_periods_per_week is None

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            Teacher(id="t1", name="Test", max_periods_per_week=0)
        with pytest.raises(ValueError):
            Teacher(id="t1", name="Test", max_periods_per_week=81)

    def test_unrestricted_teacher_allows_every_slot(self):
        teacher = Teacher(id="t1", name="Alice")
        assert not teacher.has_restrictions
        assert teacher.allows(make_slot(day=Day.FRIDAY, period=10))

    def test_unavailable_days_and_periods(self):
        teacher = Teacher(
            id="t1", name="Alice",
            unavailable_days=["MONDAY"], unavailable_periods=["3"],
        )
        assert teacher.has_restrictions
        assert teacher.unavailable_periods == [3]
        assert not teacher.allows(make_slot(day=Day.MONDAY, period=1))
        assert not teacher.allows(make_slot(day=Day.TUESDAY, period=3))
        assert teacher.allows(make_slot(day=Day.TUESDAY, period=4))


class TestAssignment:

    def test_to_record(self):
        unit = LessonUnit("c1", "mat", "t1", Session.MORNING, 0, Shift.AFTERNOON)
        record = Assignment(unit=unit, slot=make_slot("mon-1")).to_record("school-1")
        assert record == {
            "institution_id": "school-1",
            "class_id": "c1",
            "teacher_id": "t1",
            "subject_id": "mat",
            "time_slot_id": "mon-1",
            "shift": "AFTERNOON",
        }

    def test_single_shift_record_has_no_shift(self):
        unit = LessonUnit("c1", "mat", "t1", Session.MORNING, 0)
        assert Assignment(unit=unit, slot=make_slot()).to_record("s")["shift"] is None


class TestGenerationInput:
    """Tests for the top-level input model."""

    @pytest.fixture
    def valid_input(self) -> GenerationInput:
        return GenerationInput(
            institution_id="school-1",
            slots=[make_slot("s1"), make_slot("s2", period=2, start_minutes=520, end_minutes=560)],
            demand=[DemandRecord(class_id="c1", subject_id="mat", teacher_id="t1", periods_per_week=2)],
            teachers=[Teacher(id="t1", name="Alice", max_periods_per_week=20)],
            classes=[SchoolClass(id="c1", name="P4 A")],
            subjects=[Subject(id="mat", name="Mathematics")],
        )

    def test_lookups(self, valid_input):
        assert valid_input.get_teacher("t1").name == "Alice"
        assert valid_input.get_class("c1").name == "P4 A"
        assert valid_input.get_subject("mat").name == "Mathematics"
        assert valid_input.get_teacher("missing") is None

    def test_name_maps_and_caps(self, valid_input):
        assert valid_input.teacher_names() == {"t1": "Alice"}
        assert valid_input.class_names() == {"c1": "P4 A"}
        assert valid_input.teacher_caps() == {"t1": 20}

    def test_teacher_restrictions(self, valid_input):
        assert valid_input.teacher_restrictions() == {}
        restricted = valid_input.model_copy(update={
            "teachers": [Teacher(id="t1", name="Alice", unavailable_days=[Day.FRIDAY])],
        })
        assert list(restricted.teacher_restrictions()) == ["t1"]

    def test_summary(self, valid_input):
        summary = valid_input.summary()
        assert summary["slots"] == 2
        assert summary["assignable_slots"] == 2
        assert summary["total_periods_per_week"] == 2

    def test_requires_slots(self):
        with pytest.raises(ValidationError):
            GenerationInput(institution_id="x", slots=[])

    def test_duplicate_slot_ids(self):
        with pytest.raises(ValidationError, match="Duplicate slot ID"):
            GenerationInput(institution_id="x", slots=[make_slot("s1"), make_slot("s1", period=2)])

    def test_unknown_teacher_reference(self, valid_input):
        data = valid_input.model_dump()
        data["demand"][0]["teacher_id"] = "t9"
        with pytest.raises(ValidationError, match="unknown teacher_id 't9'"):
            GenerationInput.model_validate(data)

    def test_references_not_checked_without_entity_lists(self):
        generation_input = GenerationInput(
            institution_id="x",
            slots=[make_slot()],
            demand=[DemandRecord(class_id="c1", subject_id="mat", teacher_id="t1", periods_per_week=1)],
        )
        assert generation_input.total_periods_per_week == 1

    def test_negative_rows_ignored_in_total(self):
        generation_input = GenerationInput(
            institution_id="x",
            slots=[make_slot()],
            demand=[
                DemandRecord(class_id="c1", subject_id="a", teacher_id="t1", periods_per_week=3),
                DemandRecord(class_id="c1", subject_id="b", teacher_id="t1", periods_per_week=-1),
            ],
        )
        assert generation_input.total_periods_per_week == 3


class TestLoadFromJson:

    def test_camel_case_keys(self, tmp_path):
        data = {
            "institutionId": "school-1",
            "doubleShift": False,
            "slots": [{
                "id": "s1", "day": "MONDAY", "period": 1, "session": "MORNING",
                "startMinutes": 480, "endMinutes": 520, "isCpd": False,
            }],
            "demand": [{"classId": "c1", "subjectId": "mat", "teacherId": "t1", "periodsPerWeek": 4}],
        }
        path = tmp_path / "input.json"
        path.write_text(json.dumps(data))

        generation_input = load_generation_input_from_json(str(path))

        assert generation_input.institution_id == "school-1"
        assert generation_input.demand[0].periods_per_week == 4
        assert generation_input.slots[0].day == Day.MONDAY

    def test_clock_time_keys(self, tmp_path):
        data = {
            "institutionId": "school-1",
            "slots": [{
                "id": "s1", "day": "MONDAY", "period": 1, "session": "MORNING",
                "startTime": "1970-01-01T08:00:00.000Z", "endTime": "1970-01-01T08:40:00.000Z",
            }],
            "demand": [{"classId": "c1", "subjectId": "mat", "teacherId": "t1", "periodsPerWeek": 1}],
            "teachers": [{"id": "t1", "name": "Alice", "unavailableDays": ["FRIDAY"]}],
        }
        path = tmp_path / "input.json"
        path.write_text(json.dumps(data))

        generation_input = load_generation_input_from_json(str(path))

        assert generation_input.slots[0].start_minutes == 480
        assert generation_input.slots[0].end_minutes == 520
        assert generation_input.teachers[0].unavailable_days == [Day.FRIDAY]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_generation_input_from_json(str(tmp_path / "missing.json"))
