"""Timetable output formatting."""

from .conflicts import ConflictOutput, ConflictReport, ConflictReporter
from .schema import (
    AssignmentOutput,
    DaySchedule,
    EntitySchedule,
    RunInfo,
    TimetableOutput,
    TimetableViews,
    create_timetable_output,
    load_timetable_output,
    result_to_json,
)
from .formatters import (
    # Formatter classes
    JSONFormatter,
    CSVFormatter,
    ConsoleFormatter,
    WeekGridFormatter,
    # Convenience functions
    format_json,
    format_csv,
    format_console,
    print_console,
    format_class_grid,
    format_teacher_grid,
    # File utilities
    save_json,
    save_csv,
    # Constants
    DAY_NAMES,
    DAY_ABBREV,
)
from .metrics import (
    SessionBalanceMetrics,
    DistributionMetrics,
    DailyLoadMetrics,
    UtilizationMetrics,
    MetricsReport,
    QualityMetricsCalculator,
    calculate_all_metrics,
    generate_report,
)

__all__ = [
    # Conflicts
    "ConflictOutput",
    "ConflictReport",
    "ConflictReporter",
    # Schema models
    "AssignmentOutput",
    "DaySchedule",
    "EntitySchedule",
    "RunInfo",
    "TimetableOutput",
    "TimetableViews",
    "create_timetable_output",
    "load_timetable_output",
    "result_to_json",
    # Formatters
    "JSONFormatter",
    "CSVFormatter",
    "ConsoleFormatter",
    "WeekGridFormatter",
    "format_json",
    "format_csv",
    "format_console",
    "print_console",
    "format_class_grid",
    "format_teacher_grid",
    "save_json",
    "save_csv",
    "DAY_NAMES",
    "DAY_ABBREV",
    # Metrics
    "SessionBalanceMetrics",
    "DistributionMetrics",
    "DailyLoadMetrics",
    "UtilizationMetrics",
    "MetricsReport",
    "QualityMetricsCalculator",
    "calculate_all_metrics",
    "generate_report",
]
