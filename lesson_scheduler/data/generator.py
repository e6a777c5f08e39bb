"""
Sample data generator for the lesson scheduler.

Builds realistic single-institution inputs on the default slot catalog:
classes across a few levels, a standard subject list, and teachers handed
classes round-robin until they reach a target load.

Usage:
    from lesson_scheduler.data.generator import generate_sample_school, generate_small_school

    # Custom config
    school = generate_sample_school(SampleSchoolConfig(num_classes=12))

    # Quick test data
    small_school = generate_small_school()
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .models import DemandRecord, GenerationInput, SchoolClass, Subject, Teacher
from .slots import build_default_catalog


# =============================================================================
# Name Data
# =============================================================================

FIRST_NAMES = [
    "Alice", "Jean", "Claude", "Grace", "Eric", "Diane", "Patrick", "Aline",
    "Emmanuel", "Josiane", "Olivier", "Chantal", "Innocent", "Ange", "Yves",
    "Solange", "Fabrice", "Clarisse", "Didier", "Esther", "Gilbert", "Vestine",
    "Samuel", "Agnes", "Theo", "Nadine", "Felix", "Sandrine", "Pacifique", "Rose",
]

LAST_NAMES = [
    "Mugisha", "Uwase", "Habimana", "Ingabire", "Niyonzima", "Mukamana",
    "Nshimiyimana", "Uwimana", "Hakizimana", "Mutesi", "Ndayisaba", "Umutoni",
    "Bizimana", "Iradukunda", "Kayitesi", "Manzi", "Gatete", "Kamanzi",
]


# =============================================================================
# Subject Definitions
# =============================================================================

DEFAULT_SUBJECTS = [
    {"id": "eng", "name": "English", "code": "ENG", "periods_per_week": 6},
    {"id": "mat", "name": "Mathematics", "code": "MAT", "periods_per_week": 6},
    {"id": "sci", "name": "Science and Elementary Technology", "code": "SET", "periods_per_week": 5},
    {"id": "sst", "name": "Social Studies", "code": "SST", "periods_per_week": 4},
    {"id": "kin", "name": "Kinyarwanda", "code": "KIN", "periods_per_week": 4},
    {"id": "fre", "name": "French", "code": "FRE", "periods_per_week": 3},
    {"id": "ict", "name": "ICT", "code": "ICT", "periods_per_week": 2},
    {"id": "pe", "name": "Physical Education", "code": "PE", "periods_per_week": 2},
    {"id": "art", "name": "Creative Arts", "code": "ART", "periods_per_week": 2},
    {"id": "rel", "name": "Religious Education", "code": "REL", "periods_per_week": 1},
]


# =============================================================================
# Generator Configuration
# =============================================================================

@dataclass
class SampleSchoolConfig:
    """Configuration for sample data generation.

    The defaults stay well inside the default catalog (25 morning and 23
    afternoon teaching slots per class), so a generated school is normally
    solvable without conflicts.
    """
    institution_id: str = "sample-school"
    num_classes: int = 6
    levels: list[str] = field(default_factory=lambda: ["P4", "P5", "P6"])
    subjects: list[dict] = field(default_factory=lambda: [dict(s) for s in DEFAULT_SUBJECTS])

    # Periods a teacher is given before a new teacher is hired for the subject
    max_teacher_load: int = 20
    # Extra periods allowed on top of the load when setting the weekly cap
    cap_headroom: int = 4

    double_shift: bool = False
    seed: Optional[int] = None


# =============================================================================
# Generator Functions
# =============================================================================

def generate_sample_school(config: SampleSchoolConfig | None = None) -> GenerationInput:
    """
    Generate a sample school.

    Args:
        config: Generator configuration (uses defaults if None)

    Returns:
        GenerationInput with catalog, demand and reference entities
    """
    if config is None:
        config = SampleSchoolConfig()

    rng = random.Random(config.seed)

    subjects = [
        Subject(id=s["id"], name=s["name"], code=s.get("code"))
        for s in config.subjects
    ]
    classes = _generate_classes(config)
    teachers, demand = _assign_teachers(config, classes, rng)

    return GenerationInput(
        institution_id=config.institution_id,
        double_shift=config.double_shift,
        slots=build_default_catalog(config.institution_id),
        demand=demand,
        teachers=teachers,
        classes=classes,
        subjects=subjects,
    )


def generate_small_school(seed: int | None = None) -> GenerationInput:
    """
    Generate a small school for quick testing.

    - 3 classes (one per level)
    - 35 periods per class per week
    """
    return generate_sample_school(SampleSchoolConfig(num_classes=3, seed=seed))


def generate_medium_school(seed: int | None = None) -> GenerationInput:
    """
    Generate a medium-sized school for standard testing.

    - 12 classes (four per level)
    - 420 periods per week in total
    """
    return generate_sample_school(SampleSchoolConfig(num_classes=12, seed=seed))


def save_sample_school(path: str | Path, config: SampleSchoolConfig | None = None) -> GenerationInput:
    """Generate a sample school and write it to a JSON file."""
    school = generate_sample_school(config)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(school.model_dump(mode="json"), indent=2), encoding="utf-8")
    return school


# =============================================================================
# Private Generator Helpers
# =============================================================================

def _generate_classes(config: SampleSchoolConfig) -> list[SchoolClass]:
    """Spread classes over the levels: P4 A, P5 A, P6 A, P4 B, ..."""
    classes = []
    for i in range(config.num_classes):
        level = config.levels[i % len(config.levels)]
        stream = chr(ord("A") + i // len(config.levels))
        classes.append(SchoolClass(
            id=f"{level.lower()}{stream.lower()}",
            name=f"{level} {stream}",
            level=level,
        ))
    return classes


def _assign_teachers(
    config: SampleSchoolConfig,
    classes: list[SchoolClass],
    rng: random.Random,
) -> tuple[list[Teacher], list[DemandRecord]]:
    """
    Hand out (class, subject) pairs to teachers round-robin.

    A teacher keeps taking classes of one subject until the next class would
    push them over max_teacher_load. In double-shift schools every unit is
    taught once per shift, so the load limit is halved.
    """
    load_limit = config.max_teacher_load
    if config.double_shift:
        load_limit = max(1, load_limit // 2)

    used_names: set[str] = set()
    teachers: list[Teacher] = []
    loads: dict[str, int] = {}
    demand: list[DemandRecord] = []

    def hire() -> str:
        while True:
            name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
            if name not in used_names or len(used_names) >= len(FIRST_NAMES) * len(LAST_NAMES):
                used_names.add(name)
                break
        teacher_id = f"t{len(teachers) + 1}"
        teachers.append(Teacher(id=teacher_id, name=name))
        loads[teacher_id] = 0
        return teacher_id

    for subject in config.subjects:
        periods = subject["periods_per_week"]
        current: Optional[str] = None
        for school_class in classes:
            if current is None or loads[current] + periods > load_limit:
                current = hire()
            loads[current] += periods
            demand.append(DemandRecord(
                class_id=school_class.id,
                subject_id=subject["id"],
                teacher_id=current,
                periods_per_week=periods,
            ))

    shifts = 2 if config.double_shift else 1
    capped = [
        teacher.model_copy(update={
            "max_periods_per_week": min(80, loads[teacher.id] * shifts + config.cap_headroom)
        })
        for teacher in teachers
    ]
    return capped, demand
