"""
Output formatters for generated timetables.

This module provides formatters for different output formats:
- JSON: Complete output with report and views
- CSV: Flat assignment rows for spreadsheets
- Console: Run summary and conflict table for the CLI
- Grid: Weekly periods x days grid for one class or teacher
"""

from __future__ import annotations

import csv
import json
import sys
from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..data.models import DAY_ORDER

if TYPE_CHECKING:
    from .schema import AssignmentOutput, EntitySchedule, TimetableOutput


# =============================================================================
# Constants
# =============================================================================

DAY_NAMES = [day.label for day in DAY_ORDER]
DAY_ABBREV = [day.label[:3] for day in DAY_ORDER]


# =============================================================================
# JSON Formatter
# =============================================================================

class JSONFormatter:
    """Formats timetable output as JSON."""

    def __init__(self, indent: int = 2, ensure_ascii: bool = False):
        """
        Args:
            indent: JSON indentation level
            ensure_ascii: If True, escape non-ASCII characters
        """
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def format(self, output: TimetableOutput) -> str:
        return output.to_json(indent=self.indent)

    def format_compact(self, output: TimetableOutput) -> str:
        """Format as compact single-line JSON."""
        return json.dumps(output.to_dict(), ensure_ascii=self.ensure_ascii, separators=(',', ':'))

    def format_records(self, output: TimetableOutput) -> str:
        """Only the assignment rows, in the shape used for a bulk insert."""
        rows = [
            {
                "institution_id": output.institution_id,
                "class_id": lesson.class_id,
                "teacher_id": lesson.teacher_id,
                "subject_id": lesson.subject_id,
                "time_slot_id": lesson.time_slot_id,
                "shift": lesson.shift.value if lesson.shift else None,
            }
            for lesson in output.assignments
        ]
        return json.dumps(rows, indent=self.indent, ensure_ascii=self.ensure_ascii)


def format_json(output: TimetableOutput, indent: int = 2) -> str:
    """Convenience function for JSON formatting."""
    return JSONFormatter(indent=indent).format(output)


# =============================================================================
# CSV Formatter
# =============================================================================

class CSVFormatter:
    """Formats timetable output as CSV."""

    DEFAULT_COLUMNS = [
        'day', 'period', 'start_time', 'end_time', 'session', 'shift',
        'class_id', 'class_name', 'subject_id', 'subject_name',
        'teacher_id', 'teacher_name', 'time_slot_id',
    ]

    MINIMAL_COLUMNS = ['day', 'period', 'class_name', 'subject_name', 'teacher_name']

    def __init__(
        self,
        columns: list[str] | None = None,
        include_header: bool = True,
        delimiter: str = ',',
    ):
        """
        Args:
            columns: List of columns to include (None = all)
            include_header: Whether to include header row
            delimiter: Field delimiter
        """
        self.columns = columns or self.DEFAULT_COLUMNS
        self.include_header = include_header
        self.delimiter = delimiter

    def format(self, output: TimetableOutput) -> str:
        buffer = StringIO()
        self.write(output, buffer)
        return buffer.getvalue()

    def write(self, output: TimetableOutput, file: TextIO) -> None:
        """Write CSV rows to a file-like object."""
        writer = csv.writer(file, delimiter=self.delimiter)

        if self.include_header:
            writer.writerow(self.columns)

        for lesson in output.assignments:
            writer.writerow(self._lesson_to_row(lesson))

    def _lesson_to_row(self, lesson: AssignmentOutput) -> list[str]:
        field_map = {
            'day': lesson.day.label,
            'period': str(lesson.period),
            'start_time': lesson.start_time,
            'end_time': lesson.end_time,
            'session': lesson.session.value,
            'shift': lesson.shift.value if lesson.shift else '',
            'class_id': lesson.class_id,
            'class_name': lesson.class_name or lesson.class_id,
            'subject_id': lesson.subject_id,
            'subject_name': lesson.subject_name or lesson.subject_id,
            'teacher_id': lesson.teacher_id,
            'teacher_name': lesson.teacher_name or lesson.teacher_id,
            'time_slot_id': lesson.time_slot_id,
        }
        return [field_map.get(col, '') for col in self.columns]


def format_csv(output: TimetableOutput, columns: list[str] | None = None, minimal: bool = False) -> str:
    """Convenience function for CSV formatting."""
    if minimal:
        columns = CSVFormatter.MINIMAL_COLUMNS
    return CSVFormatter(columns=columns).format(output)


# =============================================================================
# Console Formatter
# =============================================================================

class ConsoleFormatter:
    """Run summary and conflict table."""

    def __init__(self, use_colors: bool = True, width: int | None = None):
        self.use_colors = use_colors
        self.width = width

    def format(self, output: TimetableOutput) -> str:
        if self.use_colors:
            console = Console(file=StringIO(), record=True, width=self.width or 100)
            self._print_rich(output, console)
            return console.export_text()
        return self._format_plain(output)

    def print(self, output: TimetableOutput, file: TextIO = None) -> None:
        """Print the summary to a stream (default: stdout)."""
        if file is None:
            file = sys.stdout

        if self.use_colors:
            self._print_rich(output, Console(file=file, width=self.width))
        else:
            file.write(self._format_plain(output))
            file.write('\n')

    def _format_plain(self, output: TimetableOutput) -> str:
        report = output.report
        status = "SUCCESS" if report.success else "CONFLICTS"
        lines = [
            "=" * 60,
            f"TIMETABLE {output.institution_id} - {status}",
            "=" * 60,
            f"Placed: {report.total_placed}",
            f"Conflicts: {report.total_conflicts}",
            f"Attempts: {output.run.attempts_made} (best seed {output.run.seed})",
        ]

        for conflict in report.conflicts:
            lines.append(
                f"  {conflict.reason.value}: {conflict.subject_id} / {conflict.class_id} "
                f"/ {conflict.teacher_id} - {conflict.message}"
            )
        for warning in report.warnings:
            lines.append(f"  warning: {warning}")

        return '\n'.join(lines)

    def _print_rich(self, output: TimetableOutput, console: Console) -> None:
        report = output.report
        status_color = "green" if report.success else "red"
        status_text = Text("SUCCESS" if report.success else "CONFLICTS", style=f"bold {status_color}")

        console.print(Panel(
            status_text,
            title=f"Timetable {output.institution_id}",
            subtitle=f"Generated in {output.run.elapsed_ms} ms",
        ))

        console.print("\n[bold]Summary:[/bold]")
        console.print(f"  Placed: {report.total_placed}")
        console.print(f"  Conflicts: {report.total_conflicts}")
        console.print(f"  Attempts: {output.run.attempts_made} (best seed {output.run.seed})")

        if report.conflicts:
            table = Table(title="Unplaced Lessons", show_header=True, header_style="bold red")
            table.add_column("Reason")
            table.add_column("Class")
            table.add_column("Subject")
            table.add_column("Teacher")
            table.add_column("Session")
            table.add_column("Message", style="dim")
            for conflict in report.conflicts:
                table.add_row(
                    conflict.reason.value,
                    conflict.class_id,
                    conflict.subject_id,
                    conflict.teacher_id,
                    conflict.session.value,
                    conflict.message,
                )
            console.print(table)

        for warning in report.warnings:
            console.print(f"[yellow]Warning:[/yellow] {warning}")


def format_console(output: TimetableOutput, use_colors: bool = True) -> str:
    return ConsoleFormatter(use_colors=use_colors).format(output)


def print_console(output: TimetableOutput, use_colors: bool = True) -> None:
    ConsoleFormatter(use_colors=use_colors).print(output)


# =============================================================================
# Week Grid Formatter
# =============================================================================

class WeekGridFormatter:
    """
    Formats one class or teacher timetable as a periods x days grid.

    Rows are the periods used anywhere in the timetable, so every grid of the
    same output has the same shape.
    """

    def __init__(self, use_colors: bool = True, width: int = 120):
        self.use_colors = use_colors
        self.width = width

    def format_class(self, output: TimetableOutput, class_id: str) -> str:
        schedule = output.views.by_class.get(class_id)
        if not schedule:
            return f"No schedule found for class: {class_id}"
        return self._format(output, schedule, "Class", show="teacher")

    def format_teacher(self, output: TimetableOutput, teacher_id: str) -> str:
        schedule = output.views.by_teacher.get(teacher_id)
        if not schedule:
            return f"No schedule found for teacher: {teacher_id}"
        return self._format(output, schedule, "Teacher", show="class")

    def format_all_classes(self, output: TimetableOutput) -> str:
        return '\n'.join(self.format_class(output, class_id) for class_id in output.views.by_class)

    def format_all_teachers(self, output: TimetableOutput) -> str:
        return '\n'.join(self.format_teacher(output, teacher_id) for teacher_id in output.views.by_teacher)

    # -------------------------------------------------------------------------

    @staticmethod
    def _rows(output: TimetableOutput) -> list[tuple[str, int, str]]:
        """(shift, period, time) rows in display order."""
        rows = {
            (lesson.shift.value if lesson.shift else "", lesson.period, lesson.start_time)
            for lesson in output.assignments
        }
        return sorted(rows, key=lambda row: (row[0], row[2], row[1]))

    @staticmethod
    def _cell(lessons: list[AssignmentOutput], show: str) -> Optional[tuple[str, str]]:
        if not lessons:
            return None
        lesson = lessons[0]
        subject = lesson.subject_name or lesson.subject_id
        if show == "teacher":
            other = lesson.teacher_name or lesson.teacher_id
        else:
            other = lesson.class_name or lesson.class_id
        return subject, other

    def _grid(self, output: TimetableOutput, schedule: EntitySchedule, show: str):
        index: dict[tuple, list[AssignmentOutput]] = {}
        for lesson in schedule.lessons:
            key = (lesson.shift.value if lesson.shift else "", lesson.period, lesson.day)
            index.setdefault(key, []).append(lesson)

        for shift, period, start in self._rows(output):
            label = f"P{period} {start}" + (f" {shift[:2]}" if shift else "")
            cells = [self._cell(index.get((shift, period, day), []), show) for day in DAY_ORDER]
            yield label, cells

    def _format(self, output: TimetableOutput, schedule: EntitySchedule, kind: str, show: str) -> str:
        if self.use_colors:
            return self._format_rich(output, schedule, kind, show)
        return self._format_plain(output, schedule, kind, show)

    def _format_plain(self, output: TimetableOutput, schedule: EntitySchedule, kind: str, show: str) -> str:
        day_width = 20
        lines = [
            "=" * 50,
            f"{kind.upper()}: {schedule.name} ({schedule.id}) - {schedule.periods} periods",
            "=" * 50,
        ]
        header = "Period".ljust(16) + "".join(abbrev.center(day_width) for abbrev in DAY_ABBREV)
        lines.append(header)
        lines.append("-" * len(header))

        for label, cells in self._grid(output, schedule, show):
            row = label.ljust(16)
            for cell in cells:
                text = f"{cell[0]}/{cell[1]}" if cell else "-"
                row += text[:day_width - 2].center(day_width)
            lines.append(row)

        return '\n'.join(lines)

    def _format_rich(self, output: TimetableOutput, schedule: EntitySchedule, kind: str, show: str) -> str:
        console = Console(file=StringIO(), record=True, width=self.width)

        table = Table(
            title=f"{kind} {schedule.name} ({schedule.id}) - {schedule.periods} periods",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Period", style="dim")
        for abbrev in DAY_ABBREV:
            table.add_column(abbrev, justify="center")

        for label, cells in self._grid(output, schedule, show):
            row = [label]
            for cell in cells:
                row.append(f"[bold]{cell[0]}[/bold]\n{cell[1]}" if cell else "[dim]-[/dim]")
            table.add_row(*row)

        console.print(table)
        return console.export_text()


def format_class_grid(output: TimetableOutput, class_id: str, use_colors: bool = True) -> str:
    return WeekGridFormatter(use_colors=use_colors).format_class(output, class_id)


def format_teacher_grid(output: TimetableOutput, teacher_id: str, use_colors: bool = True) -> str:
    return WeekGridFormatter(use_colors=use_colors).format_teacher(output, teacher_id)


# =============================================================================
# File Writing Utilities
# =============================================================================

def save_json(output: TimetableOutput, filepath: str | Path, indent: int = 2) -> None:
    """Save output as a JSON file, creating parent directories."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(JSONFormatter(indent=indent).format(output), encoding='utf-8')


def save_csv(
    output: TimetableOutput,
    filepath: str | Path,
    columns: list[str] | None = None,
    minimal: bool = False,
) -> None:
    """Save output as a CSV file, creating parent directories."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    if minimal:
        columns = CSVFormatter.MINIMAL_COLUMNS

    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        CSVFormatter(columns=columns).write(output, f)
