"""Program commands: create, today, show, list, archive, restore, delete, complete, skip, move, reset."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...core.models import PROGRAM_GOALS, PlanRequest, ProgramPlan
from ...core.program_engine import AdaptiveProgramEngine, ProgramError
from ...io.serializers import ValidationError, plan_to_dict, target_to_dict
from .. import views
from ..app import (
    DataDirOption,
    DateOption,
    JsonOption,
    data_dir_or_default,
    get_program_store,
    get_store,
    load_engine_or_exit,
    load_history_or_exit,
    load_muscle_tags_or_exit,
    load_readiness_inputs_or_exit,
    parse_date_or_exit,
    program_app,
)


def _policy_path(data_dir: Path | None) -> Path:
    return data_dir_or_default(data_dir) / "policy.yaml"


def _engine(data_dir: Path | None) -> AdaptiveProgramEngine:
    return load_engine_or_exit(get_program_store(data_dir), _policy_path(data_dir))


def _resolve_plan_id(plans: list[ProgramPlan], ref: str) -> str:
    """Exact id or a unique id prefix (as shown by 'program list')."""
    exact = [p.id for p in plans if p.id == ref]
    if exact:
        return exact[0]
    matches = [p.id for p in plans if p.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        views.print_error(f"Plan id '{ref}' is ambiguous; use more characters.")
        raise typer.Exit(1)
    return ref


def _resolve_day_id(plan: ProgramPlan, ref: str) -> str:
    """Exact day id, or the short form w<week>d<day>."""
    if plan.day(ref) is not None:
        return ref
    suffix = f"-{ref.lower()}"
    for day in plan.days:
        if day.id.endswith(suffix):
            return day.id
    return ref


def _require_active(engine: AdaptiveProgramEngine) -> ProgramPlan:
    plan = engine.active_plan
    if plan is None:
        views.print_error("No active program.")
        views.print_info("Run 'program create' first.")
        raise typer.Exit(1)
    return plan


def _save(data_dir: Path | None, engine: AdaptiveProgramEngine) -> None:
    get_program_store(data_dir).save_engine(engine)


@program_app.command("create")
def create(
    goal: Annotated[
        str,
        typer.Option("--goal", "-g", help="strength, hypertrophy, endurance or general_fitness"),
    ] = "hypertrophy",
    days_per_week: Annotated[
        int,
        typer.Option("--days-per-week", help="Training days per week: 3, 4 or 5"),
    ] = 4,
    start: Annotated[
        Optional[str],
        typer.Option("--start", help="First program day YYYY-MM-DD (default: today)"),
    ] = None,
    increment: Annotated[
        Optional[float],
        typer.Option("--increment", help="Smallest weight step in kg (default: policy.yaml)"),
    ] = None,
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Program name"),
    ] = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Generate an 8-week program and make it active.

    Any active program is archived.
    """
    if goal not in PROGRAM_GOALS:
        views.print_error(f"Invalid goal: {goal}. Must be one of {', '.join(PROGRAM_GOALS)}")
        raise typer.Exit(1)
    if increment is not None and increment <= 0:
        views.print_error("--increment must be positive")
        raise typer.Exit(1)
    if days_per_week not in (3, 4, 5):
        views.print_warning(f"{days_per_week} days/week is not supported; using 4.")

    store = get_store(data_dir)
    sessions = load_history_or_exit(store) if store.exists() else []
    mappings = load_muscle_tags_or_exit(store)
    daily_health, _ = load_readiness_inputs_or_exit(store)

    engine = _engine(data_dir)
    request = PlanRequest(
        goal=goal,  # type: ignore[arg-type]
        days_per_week=days_per_week,
        start_date=parse_date_or_exit(start),
        weight_increment=increment if increment is not None else engine.progression_rule.weight_increment,
        name=name,
    )

    previous = engine.active_plan
    plan = engine.create_plan(request, sessions, daily_health, mappings)
    _save(data_dir, engine)

    if json_out:
        print(json.dumps(plan_to_dict(plan), indent=2))
        return

    if previous is not None:
        views.print_info(f"Archived '{previous.name}'.")
    views.print_success(f"Created '{plan.name}' ({plan.split.replace('_', ' ')}, {len(plan.days)} days).")
    views.console.print(views.format_week_table(plan, 1))


@program_app.command("today")
def today(
    on: DateOption = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show today's session with the readiness adjustment applied.
    """
    engine = _engine(data_dir)
    _require_active(engine)
    daily_health, wellness = load_readiness_inputs_or_exit(get_store(data_dir))

    plan_today = engine.today_plan(daily_health, wellness, parse_date_or_exit(on))

    if json_out:
        if plan_today is None:
            print(json.dumps(None))
            return
        print(json.dumps({
            "plan_id": plan_today.plan_id,
            "day_id": plan_today.day.id,
            "focus_title": plan_today.day.focus_title,
            "scheduled_date": plan_today.day.scheduled_date.isoformat(),
            "is_overdue": plan_today.is_overdue,
            "readiness": {
                "score": plan_today.score,
                "band": plan_today.band,
                "source": plan_today.readiness.source,
            },
            "planned": [target_to_dict(t) for t in plan_today.day.exercises],
            "adjusted": [target_to_dict(t) for t in plan_today.adjusted_exercises],
        }, indent=2))
        return

    if plan_today is None:
        views.print_info("All program days are done. Create a new program to continue.")
        return
    views.print_today_plan(plan_today)


@program_app.command("show")
def show(
    week: Annotated[
        Optional[int],
        typer.Option("--week", "-w", help="Week to show (default: all)"),
    ] = None,
    plan_ref: Annotated[
        Optional[str],
        typer.Option("--plan", "-p", help="Plan id or prefix (default: active)"),
    ] = None,
    on: DateOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Show a program week by week, with adherence to date.
    """
    engine = _engine(data_dir)
    if plan_ref is None:
        plan = _require_active(engine)
    else:
        plans = [p for p in [engine.active_plan, *engine.archived_plans] if p is not None]
        plan = engine.get_plan(_resolve_plan_id(plans, plan_ref))
        if plan is None:
            views.print_error(f"No plan with id {plan_ref}")
            raise typer.Exit(1)

    store = get_store(data_dir)
    sessions = load_history_or_exit(store) if store.exists() else []
    adherence = engine.adherence_to_date(plan.id, sessions, parse_date_or_exit(on))

    weeks = [week] if week is not None else list(range(1, plan.total_weeks + 1))
    views.console.print()
    for number in weeks:
        views.console.print(views.format_week_table(plan, number))
    if adherence is None:
        views.print_info("No program days are due yet.")
    else:
        views.print_info(f"Adherence to date: {adherence * 100:.0f}%")
    views.console.print()


@program_app.command("list")
def list_programs(
    on: DateOption = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    List the active program and the archive.
    """
    engine = _engine(data_dir)
    active = engine.active_plan
    archived = engine.archived_plans

    if json_out:
        store = get_store(data_dir)
        sessions = load_history_or_exit(store) if store.exists() else []
        today = parse_date_or_exit(on)
        print(json.dumps({
            "active": plan_to_dict(active) if active else None,
            "archived": [plan_to_dict(p) for p in archived],
            "adherence": {
                p.id: engine.adherence_to_date(p.id, sessions, today)
                for p in ([active] if active else []) + archived
            },
        }, indent=2))
        return

    if active is None and not archived:
        views.print_info("No programs yet. Run 'program create'.")
        return
    views.console.print()
    views.console.print(views.format_plan_list(active, archived, parse_date_or_exit(on)))
    views.console.print()


@program_app.command("archive")
def archive(data_dir: DataDirOption = None) -> None:
    """
    Archive the active program.
    """
    engine = _engine(data_dir)
    plan = engine.archive_active_plan()
    if plan is None:
        views.print_info("No active program to archive.")
        return
    _save(data_dir, engine)
    views.print_success(f"Archived '{plan.name}' ({plan.id[:8]}).")


@program_app.command("restore")
def restore(
    plan_ref: Annotated[str, typer.Argument(help="Archived plan id or prefix")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Re-activate an archived program; the active one is archived.
    """
    engine = _engine(data_dir)
    plan_id = _resolve_plan_id(engine.archived_plans, plan_ref)
    try:
        plan = engine.restore_archived_plan(plan_id)
    except ProgramError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    _save(data_dir, engine)
    views.print_success(f"Restored '{plan.name}'.")


@program_app.command("delete")
def delete(
    plan_ref: Annotated[str, typer.Argument(help="Archived plan id or prefix")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip the confirmation prompt"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Permanently delete an archived program.
    """
    engine = _engine(data_dir)
    plan_id = _resolve_plan_id(engine.archived_plans, plan_ref)
    if not force and not typer.confirm(f"Delete archived plan {plan_id[:8]} permanently?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)
    try:
        engine.delete_archived_plan(plan_id)
    except ProgramError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    _save(data_dir, engine)
    views.print_success(f"Deleted plan {plan_id[:8]}.")


@program_app.command("complete")
def complete(
    session_id: Annotated[str, typer.Argument(help="Id of the logged session")],
    day_ref: Annotated[
        Optional[str],
        typer.Option("--day", help="Day id or w<week>d<day> (default: matched by date)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Complete a program day with a logged session and adapt future loads.
    """
    engine = _engine(data_dir)
    plan = _require_active(engine)
    store = get_store(data_dir)
    load_history_or_exit(store)

    try:
        session = store.get_session(session_id)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if session is None:
        views.print_error(f"No session with id {session_id}")
        raise typer.Exit(1)

    daily_health, wellness = load_readiness_inputs_or_exit(store)
    day_id = _resolve_day_id(plan, day_ref) if day_ref is not None else None

    try:
        record = engine.record_completion(session, day_id, daily_health, wellness)
    except ProgramError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if record is None:
        views.print_warning("No open program day matches this session.")
        return
    _save(data_dir, engine)
    views.print_success(
        f"Completed {record.day_id.rsplit('-', 1)[-1]}: "
        f"{record.successful_exercises}/{record.total_exercises} exercises on target "
        f"({record.success_ratio:.0%})."
    )


def _day_transition(data_dir: Path | None, day_ref: str, action: str, change) -> None:
    engine = _engine(data_dir)
    plan = _require_active(engine)
    day_id = _resolve_day_id(plan, day_ref)
    try:
        changed = change(engine, day_id)
    except ProgramError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if not changed:
        views.print_warning(f"Day {day_ref} cannot be {action} in its current state.")
        return
    _save(data_dir, engine)
    views.print_success(f"Day {day_ref} {action}.")


@program_app.command("skip")
def skip(
    day_ref: Annotated[str, typer.Argument(help="Day id or w<week>d<day>")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Skip a planned day.
    """
    _day_transition(data_dir, day_ref, "skipped", lambda e, d: e.skip_day(d))


@program_app.command("move")
def move(
    day_ref: Annotated[str, typer.Argument(help="Day id or w<week>d<day>")],
    to: Annotated[str, typer.Option("--to", help="New date YYYY-MM-DD")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Move a planned day to another date.
    """
    new_date = parse_date_or_exit(to)
    _day_transition(data_dir, day_ref, "moved", lambda e, d: e.move_day(d, new_date))


@program_app.command("reset")
def reset(
    day_ref: Annotated[str, typer.Argument(help="Day id or w<week>d<day>")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Return a skipped or moved day to planned.
    """
    _day_transition(data_dir, day_ref, "reset", lambda e, d: e.reset_day(d))
