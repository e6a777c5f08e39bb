"""
Demand model builder.

Expands weekly (class, subject, teacher, periods) rows into lesson units,
half of each subject's periods targeted at the morning and the rest at the
afternoon. An odd period goes to the afternoon: 7 periods become 3 morning
and 4 afternoon units.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..data.models import DemandRecord, LessonUnit, Session, Shift

logger = logging.getLogger(__name__)


def split_periods(periods_per_week: int) -> tuple[int, int]:
    """Return (morning, afternoon) counts for a weekly requirement."""
    morning = periods_per_week // 2
    return morning, periods_per_week - morning


def build_lesson_units(
    records: Iterable[DemandRecord],
    shift: Optional[Shift] = None,
) -> list[LessonUnit]:
    """
    Expand demand rows into lesson units.

    Rows with periods_per_week <= 0 are skipped rather than raised.

    Args:
        records: Demand rows
        shift: Shift stamped on every unit (double-shift runs)

    Returns:
        Units in input order, morning units of a row before its afternoon units
    """
    units: list[LessonUnit] = []

    for record in records:
        if record.periods_per_week <= 0:
            logger.debug("Skipping demand row with %d periods: %s", record.periods_per_week, record)
            continue

        morning, afternoon = split_periods(record.periods_per_week)
        ordinal = 0
        for session, count in ((Session.MORNING, morning), (Session.AFTERNOON, afternoon)):
            for _ in range(count):
                units.append(LessonUnit(
                    class_id=record.class_id,
                    subject_id=record.subject_id,
                    teacher_id=record.teacher_id,
                    target_session=session,
                    ordinal=ordinal,
                    shift=shift,
                ))
                ordinal += 1

    return units


@dataclass
class DemandSummary:
    """Aggregated unit counts."""
    by_class_session: dict[tuple[str, Session], int] = field(default_factory=dict)
    by_teacher: dict[str, int] = field(default_factory=dict)
    by_class: dict[str, int] = field(default_factory=dict)
    total_units: int = 0

    def required(self, class_id: str, session: Session) -> int:
        return self.by_class_session.get((class_id, session), 0)


def summarise_demand(units: Iterable[LessonUnit]) -> DemandSummary:
    """Count units per (class, session), per teacher and per class."""
    by_class_session: Counter = Counter()
    by_teacher: Counter = Counter()
    by_class: Counter = Counter()
    total = 0

    for unit in units:
        by_class_session[(unit.class_id, unit.target_session)] += 1
        by_teacher[unit.teacher_id] += 1
        by_class[unit.class_id] += 1
        total += 1

    return DemandSummary(
        by_class_session=dict(by_class_session),
        by_teacher=dict(by_teacher),
        by_class=dict(by_class),
        total_units=total,
    )
