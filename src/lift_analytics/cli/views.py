"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of analytics and program data.
"""

from datetime import date

from rich.console import Console
from rich.table import Table

from ..core.models import (
    ChangeMetric,
    ChangeMetricWindow,
    PlannedExerciseTarget,
    ProgramPlan,
    ProgramTodayPlan,
    ProgressContribution,
    ReadinessSnapshot,
    StreakRun,
)
from ..core.trend import TrendFit

console = Console()
err_console = Console(stderr=True)

_BAND_STYLE = {"low": "red", "moderate": "yellow", "high": "green"}
_STATE_STYLE = {"planned": "white", "completed": "green", "skipped": "dim", "moved": "cyan"}


def format_weight(weight: float | None) -> str:
    if weight is None:
        return "BW"
    return f"{weight:g} kg"


def format_percent(percent: float | None) -> str:
    """Signed percentage, or "new" when there is no baseline."""
    if percent is None:
        return "new"
    return f"{percent * 100:+.1f}%"


def format_delta(delta: float) -> str:
    style = "green" if delta > 0 else "red" if delta < 0 else "dim"
    return f"[{style}]{delta:+g}[/{style}]"


# =============================================================================
# ANALYTICS
# =============================================================================


def format_streak_table(
    runs: list[StreakRun],
    current: StreakRun | None,
    title: str = "Training Streaks",
) -> Table:
    """
    Create a Rich table of streak runs.

    Args:
        runs: Runs in display order
        current: The run still alive today, highlighted
        title: Table title

    Returns:
        Rich Table object
    """
    table = Table(title=title)

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Start", style="cyan")
    table.add_column("End", style="cyan")
    table.add_column("Days", justify="right", style="bold")
    table.add_column("Span", justify="right")
    table.add_column("", style="green")

    for i, run in enumerate(runs, 1):
        table.add_row(
            str(i),
            run.start.isoformat(),
            run.end.isoformat(),
            str(run.day_count),
            f"{run.span_days}d",
            "current" if current is not None and run.id == current.id else "",
        )

    return table


def format_change_table(metrics: list[ChangeMetric], window: ChangeMetricWindow) -> Table:
    """Create a Rich table comparing the two halves of a window."""
    table = Table(title=f"Changes · {window.label}")

    table.add_column("Metric", style="cyan")
    table.add_column("Current", justify="right", style="bold")
    table.add_column("Previous", justify="right")
    table.add_column("Δ", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Trend")

    for m in metrics:
        table.add_row(
            m.title,
            f"{m.current:,.1f}",
            f"{m.previous:,.1f}",
            format_delta(round(m.delta, 1)),
            format_percent(m.percent_change),
            m.direction,
        )

    return table


def format_contribution_table(contributions: list[ProgressContribution], title: str) -> Table:
    """Create a Rich table of progress contributions."""
    table = Table(title=title)

    table.add_column("Subject", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Prior", justify="right")
    table.add_column("Recent", justify="right", style="bold")
    table.add_column("Δ", justify="right")
    table.add_column("%", justify="right")

    for c in contributions:
        table.add_row(
            c.subject,
            c.category.replace("_", " "),
            f"{c.previous:g}",
            f"{c.current:g}",
            format_delta(round(c.delta, 2)),
            format_percent(c.percent_change),
        )

    return table


def format_trend(exercise: str, fit: TrendFit, points: int) -> str:
    """Format a trend fit as a text block."""
    lines = [
        f"[bold]{exercise}[/bold] · {points} sessions",
        f"  Start:     {fit.start.value:.1f} ({fit.start.date.isoformat()})",
        f"  End:       {fit.end.value:.1f} ({fit.end.date.isoformat()})",
        f"  Slope:     {fit.slope:+.2f} per session",
        f"  Direction: {fit.direction}",
    ]
    return "\n".join(lines)


def format_readiness(snapshot: ReadinessSnapshot) -> str:
    """Format a readiness snapshot as a text block."""
    style = _BAND_STYLE.get(snapshot.band, "white")
    lines = [
        f"[bold]Readiness {snapshot.day.isoformat()}[/bold]",
        f"  Score:      [{style}]{snapshot.score:.0f}[/{style}] ({snapshot.band})",
        f"  Source:     {snapshot.source}",
    ]
    if snapshot.sleep_hours is not None:
        lines.append(f"  Sleep:      {snapshot.sleep_hours:.1f} h")
    if snapshot.resting_heart_rate_delta is not None:
        lines.append(f"  RHR Δ:      {snapshot.resting_heart_rate_delta:+.1f} bpm")
    if snapshot.hrv_delta is not None:
        lines.append(f"  HRV Δ:      {snapshot.hrv_delta:+.1f} ms")
    return "\n".join(lines)


# =============================================================================
# PROGRAMS
# =============================================================================


def format_targets_table(
    targets: list[PlannedExerciseTarget],
    planned: list[PlannedExerciseTarget] | None = None,
    title: str = "Exercises",
) -> Table:
    """
    Create a Rich table of exercise targets.

    When planned targets are given, changed loads and sets show the
    planned value alongside.
    """
    table = Table(title=title)

    table.add_column("Exercise", style="cyan")
    table.add_column("Sets", justify="right")
    table.add_column("Reps", justify="right")
    table.add_column("Load", justify="right", style="bold")

    for i, target in enumerate(targets):
        sets = str(target.set_count)
        load = format_weight(target.target_weight)
        if planned is not None and i < len(planned):
            before = planned[i]
            if before.set_count != target.set_count:
                sets += f" [dim](was {before.set_count})[/dim]"
            if before.target_weight != target.target_weight:
                load += f" [dim](was {format_weight(before.target_weight)})[/dim]"
        table.add_row(target.exercise_name, sets, f"{target.rep_low}–{target.rep_high}", load)

    return table


def print_today_plan(today: ProgramTodayPlan) -> None:
    """Print the day to train and its readiness-adjusted prescription."""
    day = today.day
    style = _BAND_STYLE.get(today.band, "white")
    console.print()
    header = (
        f"[bold]{day.focus_title}[/bold] · week {day.week_number}, day {day.day_number} · "
        f"{day.scheduled_date.isoformat()}"
    )
    if today.is_overdue:
        header += " [yellow](overdue)[/yellow]"
    console.print(header)
    console.print(
        f"Readiness [{style}]{today.score:.0f}[/{style}] ({today.band}, {today.readiness.source})"
    )
    console.print(f"[dim]Day id: {day.id}[/dim]")
    console.print(format_targets_table(today.adjusted_exercises, planned=day.exercises))
    console.print()


def format_plan_list(active: ProgramPlan | None, archived: list[ProgramPlan], today: date) -> Table:
    """Create a Rich table listing active and archived plans."""
    table = Table(title="Programs")

    table.add_column("Status", style="magenta")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Goal")
    table.add_column("Days/wk", justify="right")
    table.add_column("Start")
    table.add_column("Done", justify="right")
    table.add_column("Archived")

    for plan in ([active] if active is not None else []) + archived:
        done = sum(1 for d in plan.days if d.state == "completed")
        table.add_row(
            "active" if not plan.is_archived else "archived",
            plan.id[:8],
            plan.name,
            plan.goal.replace("_", " "),
            str(plan.days_per_week),
            plan.start_date.isoformat(),
            f"{done}/{len(plan.days)}",
            plan.archived_at.date().isoformat() if plan.archived_at else "-",
        )

    return table


def format_week_table(plan: ProgramPlan, week_number: int) -> Table:
    """Create a Rich table of one program week."""
    table = Table(title=f"{plan.name} · week {week_number}")

    table.add_column("Day", justify="right", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Focus", style="bold")
    table.add_column("State")
    table.add_column("Exercises")

    for day in plan.week(week_number):
        style = _STATE_STYLE.get(day.state, "white")
        exercises = ", ".join(
            f"{t.exercise_name} {format_weight(t.target_weight)}" for t in day.exercises
        )
        table.add_row(
            str(day.day_number),
            day.scheduled_date.isoformat(),
            day.focus_title,
            f"[{style}]{day.state}[/{style}]",
            exercises,
        )

    return table


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
