"""
Quality metrics for generated timetables.

Hard constraints are enforced by the engine; these metrics describe how
good a valid timetable is: morning/afternoon balance, how evenly each
subject is spread over the week, how evenly teachers' days are loaded, and
how much of the slot catalog is used.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ..data.models import DAY_ORDER, Session

if TYPE_CHECKING:
    from ..data.slots import SlotCatalog
    from .schema import TimetableOutput


DEFAULT_TARGETS = {
    "session_balance": 95.0,      # Min % of class/subject pairs on their split
    "distribution_score": 80.0,   # Min % well-spread class/subject pairs
    "daily_balance": 1.5,         # Max std dev of teacher periods per day
    "utilization": 70.0,          # Min % of class slots filled
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class SessionBalanceMetrics:
    """Morning/afternoon split per class and subject."""
    balanced_pairs: int
    total_pairs: int
    total_imbalance: int
    off_balance: list[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        if not self.total_pairs:
            return 100.0
        return round(self.balanced_pairs / self.total_pairs * 100, 2)


@dataclass
class DistributionMetrics:
    """How evenly each class/subject pair is spread over the week."""
    well_distributed_count: int
    total_pairs: int
    poorly_distributed: list[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        if not self.total_pairs:
            return 100.0
        return round(self.well_distributed_count / self.total_pairs * 100, 2)


@dataclass
class DailyLoadMetrics:
    """Spread of each teacher's periods across the days of the week."""
    average_std_dev: float
    max_std_dev: float
    teacher_balance: dict[str, float] = field(default_factory=dict)
    busiest_day: dict[str, int] = field(default_factory=dict)
    unbalanced_teachers: list[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        # 0 std dev = 100, 3+ std dev = 0
        return round(max(0, 100 - (self.average_std_dev / 3) * 100), 2)


@dataclass
class UtilizationMetrics:
    """Share of class slots that hold a lesson."""
    slot_utilization: float
    total_lessons_scheduled: int
    total_class_slots: int
    classes: int


@dataclass
class MetricsReport:
    """Complete metrics report for a timetable."""
    session_metrics: SessionBalanceMetrics
    distribution_metrics: DistributionMetrics
    daily_load_metrics: DailyLoadMetrics
    utilization_metrics: UtilizationMetrics

    overall_score: float
    grade: str
    success: bool
    total_conflicts: int

    total_lessons: int
    total_teachers: int
    total_classes: int

    improvement_areas: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "overallScore": self.overall_score,
            "grade": self.grade,
            "success": self.success,
            "totalConflicts": self.total_conflicts,
            "totalLessons": self.total_lessons,
            "totalTeachers": self.total_teachers,
            "totalClasses": self.total_classes,
            "sessionBalance": {
                "score": self.session_metrics.score,
                "balancedPairs": self.session_metrics.balanced_pairs,
                "totalPairs": self.session_metrics.total_pairs,
                "totalImbalance": self.session_metrics.total_imbalance,
            },
            "distribution": {
                "score": self.distribution_metrics.score,
                "poorlyDistributed": self.distribution_metrics.poorly_distributed,
            },
            "dailyLoad": {
                "score": self.daily_load_metrics.score,
                "averageStdDev": self.daily_load_metrics.average_std_dev,
                "maxStdDev": self.daily_load_metrics.max_std_dev,
            },
            "utilization": {
                "slotUtilization": self.utilization_metrics.slot_utilization,
                "totalLessonsScheduled": self.utilization_metrics.total_lessons_scheduled,
                "totalClassSlots": self.utilization_metrics.total_class_slots,
            },
            "improvementAreas": self.improvement_areas,
        }


# =============================================================================
# Calculator
# =============================================================================

class QualityMetricsCalculator:
    """
    Computes quality metrics from a TimetableOutput.

    Usage:
        calculator = QualityMetricsCalculator()
        metrics = calculator.calculate_all(output, catalog)
        print(calculator.generate_report(metrics))
    """

    def __init__(self, targets: dict[str, float] | None = None):
        self.targets = {**DEFAULT_TARGETS, **(targets or {})}

    def calculate_all(self, output: TimetableOutput, catalog: Optional[SlotCatalog] = None) -> MetricsReport:
        session = self.calculate_session_balance(output)
        dist = self.calculate_distribution_metrics(output)
        load = self.calculate_daily_load_metrics(output)
        util = self.calculate_utilization_metrics(output, catalog)

        overall = self._calculate_overall_score(session, dist, load, util)

        return MetricsReport(
            session_metrics=session,
            distribution_metrics=dist,
            daily_load_metrics=load,
            utilization_metrics=util,
            overall_score=overall,
            grade=self._score_to_grade(overall),
            success=output.report.success,
            total_conflicts=output.report.total_conflicts,
            total_lessons=len(output.assignments),
            total_teachers=len(output.views.by_teacher),
            total_classes=len(output.views.by_class),
            improvement_areas=self._identify_improvements(session, dist, load, util),
        )

    def calculate_session_balance(self, output: TimetableOutput) -> SessionBalanceMetrics:
        """
        A class/subject pair is balanced when its morning count is
        floor(total / 2), so 7 periods give 3 morning and 4 afternoon.
        """
        counts: dict[tuple, Counter] = defaultdict(Counter)
        for lesson in output.assignments:
            counts[(lesson.class_id, lesson.subject_id, lesson.shift)][lesson.session] += 1

        balanced = 0
        imbalance = 0
        off: list[str] = []
        for (class_id, subject_id, _shift), split in sorted(counts.items(), key=lambda item: str(item[0])):
            total = sum(split.values())
            diff = abs(split[Session.MORNING] - total // 2)
            imbalance += diff
            if diff == 0:
                balanced += 1
            else:
                off.append(
                    f"{subject_id}/{class_id}: {split[Session.MORNING]} morning, "
                    f"{split[Session.AFTERNOON]} afternoon"
                )

        return SessionBalanceMetrics(
            balanced_pairs=balanced,
            total_pairs=len(counts),
            total_imbalance=imbalance,
            off_balance=off,
        )

    def calculate_distribution_metrics(self, output: TimetableOutput) -> DistributionMetrics:
        """
        A pair is well distributed when no day holds more than
        ceil(periods / days) of its lessons.
        """
        per_day: dict[tuple, Counter] = defaultdict(Counter)
        for lesson in output.assignments:
            per_day[(lesson.class_id, lesson.subject_id)][lesson.day] += 1

        well = 0
        poorly: list[str] = []
        for (class_id, subject_id), days in sorted(per_day.items()):
            limit = math.ceil(sum(days.values()) / len(DAY_ORDER))
            busiest = max(days.values())
            if busiest <= limit:
                well += 1
            else:
                poorly.append(f"{subject_id}/{class_id}: {busiest} on one day (limit {limit})")

        return DistributionMetrics(
            well_distributed_count=well,
            total_pairs=len(per_day),
            poorly_distributed=poorly,
        )

    def calculate_daily_load_metrics(self, output: TimetableOutput) -> DailyLoadMetrics:
        std_devs: dict[str, float] = {}
        busiest: dict[str, int] = {}
        unbalanced: list[str] = []

        for teacher_id, schedule in output.views.by_teacher.items():
            per_day = [len(schedule.by_day.get(day, [])) for day in DAY_ORDER]
            if not sum(per_day):
                continue
            std_dev = self._calculate_std_dev(per_day)
            std_devs[teacher_id] = round(std_dev, 2)
            busiest[teacher_id] = max(per_day)
            if std_dev > self.targets["daily_balance"]:
                unbalanced.append(f"{schedule.name}: std_dev={std_dev:.2f}")

        if not std_devs:
            return DailyLoadMetrics(average_std_dev=0.0, max_std_dev=0.0)

        return DailyLoadMetrics(
            average_std_dev=round(sum(std_devs.values()) / len(std_devs), 2),
            max_std_dev=max(std_devs.values()),
            teacher_balance=std_devs,
            busiest_day=busiest,
            unbalanced_teachers=unbalanced,
        )

    def calculate_utilization_metrics(
        self,
        output: TimetableOutput,
        catalog: Optional[SlotCatalog] = None,
    ) -> UtilizationMetrics:
        """Lessons / (class timetables x eligible slots per timetable)."""
        total_lessons = len(output.assignments)
        timetables = {(lesson.class_id, lesson.shift) for lesson in output.assignments}

        if catalog is not None:
            total_slots = sum(catalog.count_eligible(None, shift) for _class_id, shift in timetables)
        else:
            used_cells = {(l.shift, l.day, l.period) for l in output.assignments}
            total_slots = len(used_cells) * len({c for c, _ in timetables})

        util = (total_lessons / total_slots * 100) if total_slots else 0.0

        return UtilizationMetrics(
            slot_utilization=round(util, 2),
            total_lessons_scheduled=total_lessons,
            total_class_slots=total_slots,
            classes=len({c for c, _ in timetables}),
        )

    def generate_report(self, metrics: MetricsReport) -> str:
        """Human-readable report with all metrics."""
        lines = [
            "=" * 70,
            "TIMETABLE QUALITY REPORT",
            "=" * 70,
            "",
            f"Overall Score: {metrics.overall_score:.1f}/100 (Grade: {metrics.grade})",
            f"Placement: {'COMPLETE' if metrics.success else f'{metrics.total_conflicts} CONFLICTS'}",
            f"Lessons: {metrics.total_lessons} | Classes: {metrics.total_classes} "
            f"| Teachers: {metrics.total_teachers}",
            "",
        ]

        session = metrics.session_metrics
        lines += [
            "-" * 40,
            "SESSION BALANCE (Morning/afternoon split)",
            "-" * 40,
            f"Score: {session.score}/100",
            f"Balanced: {session.balanced_pairs}/{session.total_pairs} | Imbalance: {session.total_imbalance}",
        ]
        lines += [f"  - {item}" for item in session.off_balance[:5]]
        lines.append("")

        dist = metrics.distribution_metrics
        lines += [
            "-" * 40,
            "DISTRIBUTION (Subjects spread across days)",
            "-" * 40,
            f"Score: {dist.score}/100",
            f"Well-Distributed: {dist.well_distributed_count}/{dist.total_pairs}",
        ]
        lines += [f"  - {item}" for item in dist.poorly_distributed[:5]]
        lines.append("")

        load = metrics.daily_load_metrics
        lines += [
            "-" * 40,
            "DAILY LOAD (Teacher workload evenness)",
            "-" * 40,
            f"Score: {load.score}/100",
            f"Average Std Dev: {load.average_std_dev:.2f} | Maximum: {load.max_std_dev:.2f}",
        ]
        lines += [f"  - {item}" for item in load.unbalanced_teachers[:5]]
        lines.append("")

        util = metrics.utilization_metrics
        lines += [
            "-" * 40,
            "UTILIZATION",
            "-" * 40,
            f"Class Slot Utilization: {util.slot_utilization:.1f}%",
            f"Lessons/Slots: {util.total_lessons_scheduled}/{util.total_class_slots}",
            "",
        ]

        if metrics.improvement_areas:
            lines += ["-" * 40, "AREAS FOR IMPROVEMENT", "-" * 40]
            lines += [f"  * {area}" for area in metrics.improvement_areas]
            lines.append("")

        lines.append("=" * 70)
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Private Helper Methods
    # -------------------------------------------------------------------------

    def _calculate_std_dev(self, values: list[int | float]) -> float:
        if not values:
            return 0.0
        mean = sum(values) / len(values)
        return math.sqrt(sum((x - mean) ** 2 for x in values) / len(values))

    def _calculate_overall_score(
        self,
        session: SessionBalanceMetrics,
        dist: DistributionMetrics,
        load: DailyLoadMetrics,
        util: UtilizationMetrics,
    ) -> float:
        weights = {"session": 0.30, "distribution": 0.30, "load": 0.25, "utilization": 0.15}
        score = (
            weights["session"] * session.score
            + weights["distribution"] * dist.score
            + weights["load"] * load.score
            + weights["utilization"] * min(100, util.slot_utilization)
        )
        return round(score, 1)

    def _score_to_grade(self, score: float) -> str:
        if score >= 90:
            return "A"
        elif score >= 80:
            return "B"
        elif score >= 70:
            return "C"
        elif score >= 60:
            return "D"
        else:
            return "F"

    def _identify_improvements(
        self,
        session: SessionBalanceMetrics,
        dist: DistributionMetrics,
        load: DailyLoadMetrics,
        util: UtilizationMetrics,
    ) -> list[str]:
        improvements = []

        if session.score < self.targets["session_balance"]:
            improvements.append(
                f"Rebalance sessions: {session.score:.0f}% of subjects on their split "
                f"is below target ({self.targets['session_balance']:.0f}%)"
            )
        if dist.score < self.targets["distribution_score"]:
            improvements.append(
                f"Spread subjects across the week: {dist.score:.0f}% well-distributed "
                f"is below target ({self.targets['distribution_score']:.0f}%)"
            )
        if load.average_std_dev > self.targets["daily_balance"]:
            improvements.append(
                f"Balance teacher days: std dev ({load.average_std_dev:.2f}) "
                f"exceeds target ({self.targets['daily_balance']:.1f})"
            )
        if util.slot_utilization < self.targets["utilization"]:
            improvements.append(
                f"Slot utilization of {util.slot_utilization:.0f}% "
                f"is below target ({self.targets['utilization']:.0f}%)"
            )

        return improvements


# =============================================================================
# Convenience Functions
# =============================================================================

def calculate_all_metrics(output: TimetableOutput, catalog: Optional[SlotCatalog] = None) -> MetricsReport:
    return QualityMetricsCalculator().calculate_all(output, catalog)


def generate_report(output: TimetableOutput, catalog: Optional[SlotCatalog] = None) -> str:
    calculator = QualityMetricsCalculator()
    return calculator.generate_report(calculator.calculate_all(output, catalog))
