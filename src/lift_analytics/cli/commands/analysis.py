"""Analysis commands: streaks, changes, contributions, trend, readiness."""

import json
from datetime import datetime, time
from typing import Annotated

import typer

from ...core.config import DEFAULT_CHANGE_WINDOW_DAYS, DEFAULT_CONTRIBUTION_WEEKS, DEFAULT_INTENTIONAL_REST_DAYS
from ...core.contributions import decliners, gainers, progress_contributions
from ...core.engine.config_loader import load_policy_config, readiness_thresholds, readiness_weights
from ...core.metrics import exercise_progress_series
from ...core.readiness import evaluate_readiness
from ...core.streaks import current_streak_run, longest_streak_run, runs_by_length, runs_by_recency, streak_runs
from ...core.trend import fit_trend
from ...core.windows import change_metrics, change_window, rolling_change_window
from .. import views
from ..app import (
    DataDirOption,
    DateOption,
    JsonOption,
    app,
    data_dir_or_default,
    get_store,
    load_history_or_exit,
    load_muscle_tags_or_exit,
    load_readiness_inputs_or_exit,
    load_resolver_or_exit,
    parse_date_or_exit,
)


@app.command()
def streaks(
    data_dir: DataDirOption = None,
    rest_days: Annotated[
        int,
        typer.Option("--rest-days", "-r", help="Rest days allowed inside a streak"),
    ] = DEFAULT_INTENTIONAL_REST_DAYS,
    sort: Annotated[
        str,
        typer.Option("--sort", "-s", help="Order runs by 'length' or 'recent'"),
    ] = "length",
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Number of runs to show"),
    ] = 10,
    on: DateOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show training streaks.
    """
    if sort not in ("length", "recent"):
        views.print_error(f"Invalid sort: {sort}. Use 'length' or 'recent'.")
        raise typer.Exit(1)

    sessions = load_history_or_exit(get_store(data_dir))
    today = parse_date_or_exit(on)

    runs = streak_runs(sessions, rest_days)
    ordered = runs_by_length(runs) if sort == "length" else runs_by_recency(runs)
    current = current_streak_run(runs, rest_days, today)
    longest = longest_streak_run(runs)

    if json_out:
        def run_dict(run):
            return {
                "id": run.id,
                "start": run.start.isoformat(),
                "end": run.end.isoformat(),
                "day_count": run.day_count,
            }

        print(json.dumps({
            "current": run_dict(current) if current else None,
            "longest": run_dict(longest) if longest else None,
            "runs": [run_dict(r) for r in ordered[:limit]],
        }, indent=2))
        return

    if not runs:
        views.print_info("No sessions yet.")
        return

    views.console.print()
    views.console.print(views.format_streak_table(ordered[:limit], current))
    if current is not None:
        views.print_success(f"Current streak: {current.day_count} training days since {current.start.isoformat()}")
    else:
        views.print_info("No active streak.")
    views.console.print()


@app.command()
def changes(
    data_dir: DataDirOption = None,
    window_days: Annotated[
        int,
        typer.Option("--window", "-w", help="Window length in days"),
    ] = DEFAULT_CHANGE_WINDOW_DAYS,
    on: DateOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Compare the last N days with the N days before.

    Without --date the window ends at the latest session and needs
    sessions in both halves. With --date the window ends at the end of
    that day and is shown even when one half is empty.
    """
    if window_days <= 0:
        views.print_error("--window must be positive")
        raise typer.Exit(1)

    sessions = load_history_or_exit(get_store(data_dir))

    if on is None:
        window = rolling_change_window(sessions, window_days)
        if window is None:
            if json_out:
                print(json.dumps({"window": None, "metrics": []}, indent=2))
            else:
                views.print_info(
                    f"Not enough data: need sessions in both halves of a {2 * window_days}-day span."
                )
            return
    else:
        end = datetime.combine(parse_date_or_exit(on), time.max)
        window = change_window(end, window_days)

    metrics = change_metrics(sessions, window)

    if json_out:
        print(json.dumps({
            "window": {
                "label": window.label,
                "current_start": window.current.start.isoformat(),
                "current_end": window.current.end.isoformat(),
                "previous_start": window.previous.start.isoformat(),
                "previous_end": window.previous.end.isoformat(),
            },
            "metrics": [
                {
                    "title": m.title,
                    "current": m.current,
                    "previous": m.previous,
                    "delta": m.delta,
                    "percent_change": m.percent_change,
                    "direction": m.direction,
                }
                for m in metrics
            ],
        }, indent=2))
        return

    views.console.print()
    views.console.print(views.format_change_table(metrics, window))
    views.console.print()


@app.command()
def contributions(
    data_dir: DataDirOption = None,
    weeks: Annotated[
        int,
        typer.Option("--weeks", "-w", help="Window length K in weeks"),
    ] = DEFAULT_CONTRIBUTION_WEEKS,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Rows per table"),
    ] = 5,
    json_out: JsonOption = False,
) -> None:
    """
    Show what moved between the last K weeks and the K weeks before.
    """
    store = get_store(data_dir)
    sessions = load_history_or_exit(store)
    mappings = load_muscle_tags_or_exit(store)

    resolver = load_resolver_or_exit(store, mappings)

    results = progress_contributions(sessions, weeks, mappings, resolver)
    up = gainers(results)
    down = decliners(results)

    if json_out:
        def item(c):
            return {
                "subject": c.subject,
                "category": c.category,
                "current": c.current,
                "previous": c.previous,
                "delta": c.delta,
                "percent_change": c.percent_change,
            }

        print(json.dumps({
            "contributions": [item(c) for c in results],
            "gainers": [item(c) for c in up],
            "decliners": [item(c) for c in down],
        }, indent=2))
        return

    if not results:
        views.print_info(f"Nothing to compare: no exercise appears in both {weeks}-week windows.")
        return

    views.console.print()
    if up:
        views.console.print(views.format_contribution_table(up[:limit], f"Top gainers · {weeks}w"))
    if down:
        views.console.print(views.format_contribution_table(down[:limit], f"Top decliners · {weeks}w"))
    views.console.print()


@app.command()
def trend(
    exercise: Annotated[str, typer.Argument(help="Exercise name as logged")],
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Fit a trend line to an exercise's best set per day.
    """
    store = get_store(data_dir)
    sessions = load_history_or_exit(store)
    resolver = load_resolver_or_exit(store, load_muscle_tags_or_exit(store))

    series = exercise_progress_series(sessions, exercise, resolver)
    fit = fit_trend(series)

    if json_out:
        print(json.dumps({
            "exercise": exercise,
            "points": [{"date": d.isoformat(), "value": v} for d, v in series],
            "slope": fit.slope if fit else None,
            "intercept": fit.intercept if fit else None,
            "direction": fit.direction if fit else None,
        }, indent=2))
        return

    if fit is None:
        views.print_info(f"Need at least two training days of '{exercise}' for a trend.")
        return

    views.console.print()
    views.console.print(views.format_trend(exercise, fit, len(series)))
    views.console.print()


@app.command()
def readiness(
    data_dir: DataDirOption = None,
    on: DateOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the readiness score for a day.
    """
    store = get_store(data_dir)
    daily_health, wellness = load_readiness_inputs_or_exit(store)
    day = parse_date_or_exit(on)

    config = load_policy_config(data_dir_or_default(data_dir) / "policy.yaml")
    snapshot = evaluate_readiness(
        daily_health,
        wellness,
        day,
        thresholds=readiness_thresholds(config),
        weights=readiness_weights(config),
    )

    if json_out:
        print(json.dumps({
            "day": snapshot.day.isoformat(),
            "score": snapshot.score,
            "band": snapshot.band,
            "source": snapshot.source,
            "sleep_hours": snapshot.sleep_hours,
            "resting_heart_rate_delta": snapshot.resting_heart_rate_delta,
            "hrv_delta": snapshot.hrv_delta,
        }, indent=2))
        return

    views.console.print()
    views.console.print(views.format_readiness(snapshot))
    views.console.print()
