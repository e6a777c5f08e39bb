"""
Command-line interface for the lesson scheduler.

Usage:
    python -m lesson_scheduler generate input.json -o output.json --seed 7
    python -m lesson_scheduler generate input.json --store store/ --class p4a
    python -m lesson_scheduler check input.json
    python -m lesson_scheduler view output.json --class p4a
    python -m lesson_scheduler metrics output.json
    python -m lesson_scheduler sample school.json --classes 6
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import TeacherKeyPolicy, get_settings
from .data.generator import SampleSchoolConfig, save_sample_school
from .data.models import GenerationInput, Session, load_generation_input_from_json
from .data.slots import SlotCatalog
from .engine.pipeline import TimetableGenerator, regenerate_class, regenerate_timetable
from .errors import SchedulingError
from .output.formatters import WeekGridFormatter, save_csv, save_json
from .output.metrics import QualityMetricsCalculator
from .output.schema import TimetableOutput, create_timetable_output, load_timetable_output
from .store import JsonAssignmentStore

# Create Typer app
app = typer.Typer(
    name="lesson-scheduler",
    help="Weekly school timetable generator with morning/afternoon balancing.",
    add_completion=False,
)

# Rich console for pretty output
console = Console()


# =============================================================================
# Helper Functions
# =============================================================================

def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; debug detail only when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def load_input(input_path: Path) -> GenerationInput:
    """Load and validate input data."""
    if not input_path.exists():
        console.print(f"[red]Error:[/red] Input file not found: {input_path}")
        raise typer.Exit(code=1)

    try:
        return load_generation_input_from_json(str(input_path))
    except (ValidationError, json.JSONDecodeError, SchedulingError) as e:
        console.print(f"[red]Error loading input:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def load_output(output_path: Path) -> TimetableOutput:
    """Load a timetable written by the generate command."""
    if not output_path.exists():
        console.print(f"[red]Error:[/red] Output file not found: {output_path}")
        raise typer.Exit(code=1)

    try:
        return load_timetable_output(str(output_path))
    except ValidationError as e:
        console.print(f"[red]Error loading output:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def print_summary(output: TimetableOutput) -> None:
    """Print run summary to console."""
    report = output.report
    status_color = "green" if report.success else "red"
    status_text = Text("SUCCESS" if report.success else "CONFLICTS", style=f"bold {status_color}")

    console.print(Panel(
        status_text,
        title=f"Timetable {output.institution_id}",
        subtitle=f"Generated in {output.run.elapsed_ms} ms",
    ))

    table = Table(title="Summary", show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Lessons placed", str(report.total_placed))
    table.add_row("Conflicts", str(report.total_conflicts))
    table.add_row("Classes", str(len(output.views.by_class)))
    table.add_row("Teachers", str(len(output.views.by_teacher)))
    table.add_row("Attempts", f"{output.run.attempts_made} (best seed {output.run.seed})")
    table.add_row("Backtrack steps", str(output.run.backtrack_steps))
    table.add_row("Session imbalance", str(output.run.imbalance))

    console.print(table)

    if report.by_reason:
        reasons = Table(title="Conflicts by reason", show_header=True, header_style="bold red")
        reasons.add_column("Reason")
        reasons.add_column("Count", justify="right")
        for reason, count in report.by_reason.items():
            reasons.add_row(reason, str(count))
        console.print(reasons)

    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


# =============================================================================
# Commands
# =============================================================================

@app.command()
def generate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to input JSON file with slots and demand",
        exists=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Path to write output JSON (a .csv path writes flat rows)",
    ),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Base random seed"),
    attempts: Optional[int] = typer.Option(
        None, "--attempts", "-a", help="Maximum random restarts", min=1, max=200,
    ),
    backtrack: Optional[int] = typer.Option(
        None, "--backtrack", "-b", help="Relocations tried per blocked lesson", min=0, max=500,
    ),
    teacher_policy: Optional[TeacherKeyPolicy] = typer.Option(
        None, "--teacher-policy", help="Double-shift teacher keying: period or shift",
    ),
    enforce_cap: Optional[bool] = typer.Option(
        None, "--enforce-cap/--no-enforce-cap", help="Treat teachers at their weekly cap as unavailable",
    ),
    max_consecutive: Optional[int] = typer.Option(
        None, "--max-consecutive", help="Longest run of one subject for a class on a day", min=1, max=10,
    ),
    max_teacher_run: Optional[int] = typer.Option(
        None, "--max-teacher-run", help="Longest run of periods a teacher teaches on a day", min=1, max=10,
    ),
    store: Optional[Path] = typer.Option(
        None, "--store", help="Directory of the JSON assignment store to update",
    ),
    class_id: Optional[str] = typer.Option(
        None, "--class", "-C", help="Reschedule only this class around the stored timetable (needs --store)",
    ),
    regenerate: bool = typer.Option(
        True, "--regenerate/--no-regenerate", help="Replace an existing stored timetable",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    Generate a timetable.

    Exits with code 1 when any lesson could not be placed.

    Example:
        python -m lesson_scheduler generate input.json -o output.json --seed 7
    """
    configure_logging(verbose)
    console.print(f"\n[bold]Loading input from:[/bold] {input_file}")
    generation_input = load_input(input_file)

    summary = generation_input.summary()
    console.print(
        f"[green]Loaded:[/green] {summary['demand_rows']} demand rows, {summary['classes']} classes, "
        f"{summary['teachers']} teachers, {summary['assignable_slots']} assignable slots"
    )

    config = get_settings().to_config(
        seed=seed,
        max_attempts=attempts,
        max_backtrack_steps=backtrack,
        teacher_key_policy=teacher_policy,
        enforce_teacher_cap=enforce_cap,
        max_consecutive_same_subject=max_consecutive,
        max_consecutive_teacher_periods=max_teacher_run,
    )

    if class_id is not None and store is None:
        console.print("[red]Error:[/red] --class needs --store to read the other classes from")
        raise typer.Exit(code=1)

    try:
        if class_id is not None:
            result = regenerate_class(
                generation_input, class_id, JsonAssignmentStore(store), config, regenerate=regenerate,
            )
        elif store is not None:
            result = regenerate_timetable(
                generation_input, JsonAssignmentStore(store), config, regenerate=regenerate,
            )
        else:
            result = TimetableGenerator(config).generate(generation_input)
    except SchedulingError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(code=1)

    timetable_output = create_timetable_output(result, generation_input)

    console.print()
    print_summary(timetable_output)

    if output:
        if output.suffix.lower() == ".csv":
            save_csv(timetable_output, output)
        else:
            save_json(timetable_output, output)
        console.print(f"\n[green]Timetable saved to:[/green] {output}")

    if store is not None:
        console.print(f"[green]Stored {result.total_placed} assignments in:[/green] {store}")

    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def check(
    input_file: Path = typer.Argument(..., help="Path to input JSON file to check"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show per-class breakdown"),
) -> None:
    """
    Validate input data and report feasibility.

    Checks for:
    - Valid JSON structure and schema compliance
    - Reference integrity (class, subject and teacher IDs)
    - Classes asking for more periods than a session has
    - Teachers whose load exceeds the week

    Example:
        python -m lesson_scheduler check input.json
    """
    configure_logging(False)
    console.print(f"\n[bold]Checking:[/bold] {input_file}\n")

    console.print("[cyan]1. Validating against schema...[/cyan]")
    generation_input = load_input(input_file)
    console.print("   [green]Schema validation passed[/green]")

    console.print("[cyan]2. Checking slot catalog...[/cyan]")
    try:
        catalog = SlotCatalog(generation_input.slots)
    except SchedulingError as e:
        console.print(f"   [red]Catalog invalid:[/red] {e.message}")
        raise typer.Exit(code=1)
    console.print("   [green]Catalog is consistent[/green]")

    console.print("[cyan]3. Checking feasibility...[/cyan]")
    plans = TimetableGenerator().plan(generation_input, catalog)
    problems = [message for plan in plans for message in plan.feasibility.messages()]
    if problems:
        console.print("   [yellow]Problems found:[/yellow]")
        for problem in problems:
            console.print(f"   - {problem}")
        tips = dict.fromkeys(tip for plan in plans for tip in plan.feasibility.suggestions())
        for tip in tips:
            console.print(f"   [dim]hint: {tip}[/dim]")
    else:
        console.print("   [green]Demand fits the catalog[/green]")

    console.print("\n[bold]Summary:[/bold]")
    table = Table(show_header=False, box=None)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", style="white")
    for key, value in generation_input.summary().items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))
    for key, value in catalog.summary().items():
        table.add_row(f"Catalog {key.replace('_', ' ')}", str(value))
    console.print(table)

    if verbose:
        console.print("\n[bold]Required units per class:[/bold]")
        for plan in plans:
            per_class: dict[str, list[int]] = {}
            for unit in plan.units:
                counts = per_class.setdefault(unit.class_id, [0, 0])
                counts[0 if unit.target_session == Session.MORNING else 1] += 1
            label = f" ({plan.shift.value} shift)" if plan.shift else ""
            for class_id, (morning, afternoon) in sorted(per_class.items()):
                console.print(f"  {class_id}{label}: {morning} morning, {afternoon} afternoon")

    if any(not plan.feasibility.feasible for plan in plans):
        console.print("\n[red]Some classes cannot be fully scheduled.[/red]\n")
        raise typer.Exit(code=1)

    console.print("\n[green]Check complete.[/green]\n")


@app.command()
def view(
    output_file: Path = typer.Argument(..., help="Path to output JSON file", exists=True),
    class_id: Optional[str] = typer.Option(None, "--class", "-C", help="Show grid for a class ID"),
    teacher: Optional[str] = typer.Option(None, "--teacher", "-T", help="Show grid for a teacher ID"),
    all_classes: bool = typer.Option(False, "--all-classes", help="Show grids for all classes"),
    all_teachers: bool = typer.Option(False, "--all-teachers", help="Show grids for all teachers"),
) -> None:
    """
    Display weekly grids of a generated timetable.

    Examples:
        python -m lesson_scheduler view output.json --class p4a
        python -m lesson_scheduler view output.json --teacher t1
    """
    output = load_output(output_file)
    grid = WeekGridFormatter(use_colors=True)

    if class_id:
        if class_id not in output.views.by_class:
            console.print(f"[red]Error:[/red] Class '{class_id}' not found")
            console.print(f"Available classes: {', '.join(output.views.by_class)}")
            raise typer.Exit(code=1)
        console.print(grid.format_class(output, class_id))
    elif teacher:
        if teacher not in output.views.by_teacher:
            console.print(f"[red]Error:[/red] Teacher '{teacher}' not found")
            console.print(f"Available teachers: {', '.join(output.views.by_teacher)}")
            raise typer.Exit(code=1)
        console.print(grid.format_teacher(output, teacher))
    elif all_classes:
        console.print(grid.format_all_classes(output))
    elif all_teachers:
        console.print(grid.format_all_teachers(output))
    else:
        print_summary(output)


@app.command()
def metrics(
    output_file: Path = typer.Argument(..., help="Path to output JSON file", exists=True),
    input_file: Optional[Path] = typer.Option(
        None, "--input", "-i", help="Input JSON, used to measure utilisation against the catalog",
    ),
    format: str = typer.Option("report", "--format", "-f", help="Output format: report or json"),
) -> None:
    """
    Calculate quality metrics for a generated timetable.

    Examples:
        python -m lesson_scheduler metrics output.json
        python -m lesson_scheduler metrics output.json --input input.json --format json
    """
    output = load_output(output_file)
    catalog = SlotCatalog(load_input(input_file).slots) if input_file else None

    calculator = QualityMetricsCalculator()
    report = calculator.calculate_all(output, catalog)

    if format == "json":
        console.print_json(json.dumps(report.to_dict(), indent=2))
    else:
        console.print(calculator.generate_report(report))


@app.command()
def sample(
    output_file: Path = typer.Argument(..., help="Where to write the sample input JSON"),
    classes: int = typer.Option(6, "--classes", "-n", help="Number of classes", min=1, max=60),
    double_shift: bool = typer.Option(False, "--double-shift", help="Generate a double-shift school"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed for names"),
) -> None:
    """
    Write a sample school input file.

    Example:
        python -m lesson_scheduler sample school.json --classes 6
    """
    school = save_sample_school(
        output_file,
        SampleSchoolConfig(num_classes=classes, double_shift=double_shift, seed=seed),
    )
    console.print(
        f"[green]Sample school written to:[/green] {output_file} "
        f"({len(school.classes)} classes, {len(school.teachers)} teachers, "
        f"{school.total_periods_per_week} periods per week)"
    )


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
