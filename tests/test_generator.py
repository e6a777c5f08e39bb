"""Tests for sample data generation."""

from __future__ import annotations

from collections import Counter

import pytest

from lesson_scheduler.data.generator import (
    DEFAULT_SUBJECTS,
    SampleSchoolConfig,
    generate_medium_school,
    generate_sample_school,
    generate_small_school,
    save_sample_school,
)
from lesson_scheduler.data.models import GenerationInput, load_generation_input_from_json


class TestSampleSchool:
    """Tests for generate_sample_school."""

    @pytest.fixture
    def school(self) -> GenerationInput:
        return generate_sample_school(SampleSchoolConfig(seed=1))

    def test_default_size(self, school):
        assert len(school.classes) == 6
        assert len(school.subjects) == len(DEFAULT_SUBJECTS)
        assert len(school.slots) == 70

    def test_class_ids_and_names(self, school):
        assert [c.id for c in school.classes[:4]] == ["p4a", "p5a", "p6a", "p4b"]
        assert school.classes[3].name == "P4 B"

    def test_every_class_gets_every_subject(self, school):
        per_class = Counter(r.class_id for r in school.demand)
        assert set(per_class.values()) == {len(DEFAULT_SUBJECTS)}

    def test_weekly_periods_per_class(self, school):
        periods = Counter()
        for record in school.demand:
            periods[record.class_id] += record.periods_per_week
        assert set(periods.values()) == {35}

    def test_teacher_load_limit(self, school):
        load = Counter()
        for record in school.demand:
            load[record.teacher_id] += record.periods_per_week
        assert max(load.values()) <= 20

    def test_caps_include_headroom(self, school):
        load = Counter()
        for record in school.demand:
            load[record.teacher_id] += record.periods_per_week
        for teacher in school.teachers:
            assert teacher.max_periods_per_week == load[teacher.id] + 4

    def test_teachers_teach_one_subject(self, school):
        subjects = {}
        for record in school.demand:
            subjects.setdefault(record.teacher_id, set()).add(record.subject_id)
        assert all(len(s) == 1 for s in subjects.values())

    def test_seed_is_reproducible(self):
        first = generate_sample_school(SampleSchoolConfig(seed=5))
        second = generate_sample_school(SampleSchoolConfig(seed=5))
        assert first.teacher_names() == second.teacher_names()

    def test_double_shift_halves_load(self):
        school = generate_sample_school(SampleSchoolConfig(double_shift=True, seed=1))
        load = Counter()
        for record in school.demand:
            load[record.teacher_id] += record.periods_per_week
        assert school.double_shift
        assert max(load.values()) <= 10
        for teacher in school.teachers:
            assert teacher.max_periods_per_week == load[teacher.id] * 2 + 4


class TestPresets:

    def test_small_school(self):
        assert len(generate_small_school(seed=1).classes) == 3

    def test_medium_school(self):
        school = generate_medium_school(seed=1)
        assert len(school.classes) == 12
        assert school.total_periods_per_week == 420


class TestSaveSampleSchool:

    def test_written_file_loads(self, tmp_path):
        path = tmp_path / "data" / "school.json"
        school = save_sample_school(path, SampleSchoolConfig(num_classes=2, seed=3))

        loaded = load_generation_input_from_json(str(path))

        assert loaded.institution_id == school.institution_id
        assert len(loaded.demand) == len(school.demand)
        assert loaded.slots == school.slots
