"""Tests for CLI module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from lesson_scheduler.cli import app
from lesson_scheduler.data.models import DemandRecord, GenerationInput, SchoolClass, Shift, Subject, Teacher
from lesson_scheduler.data.slots import build_default_catalog


runner = CliRunner()


def write_input(path: Path, demand: list[tuple[str, str, str, int]]) -> Path:
    generation_input = GenerationInput(
        institution_id="sch",
        slots=build_default_catalog("sch"),
        demand=[DemandRecord(class_id=c, subject_id=s, teacher_id=t, periods_per_week=p) for c, s, t, p in demand],
        teachers=[Teacher(id=t, name=f"Teacher {t}") for t in sorted({row[2] for row in demand})],
        classes=[SchoolClass(id=c, name=c.upper()) for c in sorted({row[0] for row in demand})],
        subjects=[Subject(id=s, name=s.title()) for s in sorted({row[1] for row in demand})],
    )
    path.write_text(json.dumps(generation_input.model_dump(mode="json")))
    return path


@pytest.fixture
def input_file(tmp_path) -> Path:
    """One class with two subjects; always schedulable."""
    return write_input(tmp_path / "input.json", [("c1", "mat", "t1", 6), ("c1", "eng", "t2", 5)])


@pytest.fixture
def conflict_file(tmp_path) -> Path:
    """Three classes asking one teacher for 54 periods."""
    return write_input(tmp_path / "conflict.json", [(c, "mat", "t1", 18) for c in ("c1", "c2", "c3")])


@pytest.fixture
def infeasible_file(tmp_path) -> Path:
    return write_input(tmp_path / "infeasible.json", [("c1", "mat", "t1", 60)])


@pytest.fixture
def output_file(input_file, tmp_path) -> Path:
    path = tmp_path / "output.json"
    result = runner.invoke(app, ["generate", str(input_file), "-o", str(path)])
    assert result.exit_code == 0, result.output
    return path


class TestGenerateCommand:

    def test_writes_json(self, input_file, tmp_path):
        path = tmp_path / "out.json"
        result = runner.invoke(app, ["generate", str(input_file), "-o", str(path), "--seed", "3"])

        assert result.exit_code == 0
        assert "SUCCESS" in result.output
        data = json.loads(path.read_text())
        assert data["report"]["totalPlaced"] == 11
        assert data["run"]["seed"] == 3

    def test_writes_csv(self, input_file, tmp_path):
        path = tmp_path / "out.csv"
        result = runner.invoke(app, ["generate", str(input_file), "-o", str(path)])

        assert result.exit_code == 0
        assert len(path.read_text().splitlines()) == 12

    def test_conflicts_exit_with_error(self, conflict_file):
        result = runner.invoke(app, ["generate", str(conflict_file), "--attempts", "1"])

        assert result.exit_code == 1
        assert "CONFLICTS" in result.output
        assert "TEACHER_UNAVAILABLE" in result.output

    def test_store(self, input_file, tmp_path):
        store_dir = tmp_path / "store"
        result = runner.invoke(app, ["generate", str(input_file), "--store", str(store_dir)])

        assert result.exit_code == 0
        rows = json.loads((store_dir / "sch.json").read_text())["assignments"]
        assert len(rows) == 11

    def test_store_without_regenerate(self, input_file, tmp_path):
        store_dir = tmp_path / "store"
        runner.invoke(app, ["generate", str(input_file), "--store", str(store_dir)])

        result = runner.invoke(app, ["generate", str(input_file), "--store", str(store_dir), "--no-regenerate"])

        assert result.exit_code == 1
        assert "already has a timetable" in result.output

    def test_single_class_from_store(self, tmp_path):
        path = write_input(
            tmp_path / "input.json",
            [("c1", "mat", "t1", 6), ("c1", "eng", "t2", 5), ("c2", "mat", "t1", 6)],
        )
        store_dir = tmp_path / "store"
        runner.invoke(app, ["generate", str(path), "--store", str(store_dir)])

        result = runner.invoke(app, ["generate", str(path), "--store", str(store_dir), "--class", "c1"])

        assert result.exit_code == 0, result.output
        rows = json.loads((store_dir / "sch.json").read_text())["assignments"]
        assert len(rows) == 17
        assert sum(1 for row in rows if row["class_id"] == "c2") == 6

    def test_class_needs_store(self, input_file):
        result = runner.invoke(app, ["generate", str(input_file), "--class", "c1"])

        assert result.exit_code == 1
        assert "--class needs --store" in result.output

    def test_consecutive_limit_option(self, input_file, tmp_path):
        path = tmp_path / "out.json"
        result = runner.invoke(app, ["generate", str(input_file), "-o", str(path), "--max-consecutive", "1"])

        assert result.exit_code == 0, result.output
        assert json.loads(path.read_text())["report"]["totalPlaced"] == 11

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["generate", str(tmp_path / "missing.json")])
        assert result.exit_code != 0

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        result = runner.invoke(app, ["generate", str(path)])
        assert result.exit_code == 1
        assert "Error loading input" in result.output


class TestCheckCommand:

    def test_feasible(self, input_file):
        result = runner.invoke(app, ["check", str(input_file), "--verbose"])

        assert result.exit_code == 0
        assert "Check complete." in result.output
        assert "c1: 5 morning, 6 afternoon" in result.output

    def test_infeasible(self, infeasible_file):
        result = runner.invoke(app, ["check", str(infeasible_file)])

        assert result.exit_code == 1
        assert "needs 30 morning periods" in result.output

    def test_hints_from_every_shift(self, tmp_path):
        afternoon = [
            slot.model_copy(update={"is_active": False}) if slot.period <= 5 else slot
            for slot in build_default_catalog("sch", cpd_days=(), shift=Shift.AFTERNOON)
        ]
        generation_input = GenerationInput(
            institution_id="sch",
            double_shift=True,
            slots=build_default_catalog("sch", cpd_days=(), shift=Shift.MORNING) + afternoon,
            demand=[DemandRecord(class_id="c1", subject_id="mat", teacher_id="t1", periods_per_week=2)],
            teachers=[Teacher(id="t1", name="Teacher t1")],
            classes=[SchoolClass(id="c1", name="C1")],
            subjects=[Subject(id="mat", name="Mat")],
        )
        path = tmp_path / "shifts.json"
        path.write_text(json.dumps(generation_input.model_dump(mode="json")))

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1
        assert "hint: Reduce the periods per week" in result.output


class TestViewCommand:

    def test_summary(self, output_file):
        result = runner.invoke(app, ["view", str(output_file)])
        assert result.exit_code == 0
        assert "Lessons placed" in result.output

    def test_class_grid(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--class", "c1"])
        assert result.exit_code == 0
        assert "C1" in result.output

    def test_teacher_grid(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--teacher", "t1"])
        assert result.exit_code == 0
        assert "Teacher t1" in result.output

    def test_unknown_class(self, output_file):
        result = runner.invoke(app, ["view", str(output_file), "--class", "zz"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestMetricsCommand:

    def test_report(self, output_file):
        result = runner.invoke(app, ["metrics", str(output_file)])
        assert result.exit_code == 0
        assert "TIMETABLE QUALITY REPORT" in result.output

    def test_json_with_input(self, output_file, input_file):
        result = runner.invoke(app, ["metrics", str(output_file), "--input", str(input_file), "--format", "json"])
        assert result.exit_code == 0
        assert "\"totalLessons\": 11" in result.output


class TestSampleCommand:

    def test_sample_then_generate(self, tmp_path):
        path = tmp_path / "school.json"
        result = runner.invoke(app, ["sample", str(path), "--classes", "3", "--seed", "1"])

        assert result.exit_code == 0
        assert "Sample school written to:" in result.output
        assert len(json.loads(path.read_text())["classes"]) == 3

        checked = runner.invoke(app, ["check", str(path)])
        assert checked.exit_code == 0
