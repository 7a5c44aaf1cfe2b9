"""Shared Typer app object, shared option types, and store utilities."""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from ..core.engine.config_loader import (
    load_policy,
    load_policy_config,
    progression_rule,
    readiness_thresholds,
    readiness_weights,
)
from ..core.metrics import MetricResolver
from ..core.program_engine import AdaptiveProgramEngine
from ..io.history_store import HISTORY_FILE, PROGRAMS_FILE, HistoryStore, get_default_data_dir
from ..io.program_store import ProgramStore
from ..io.serializers import ValidationError, validate_date
from . import views

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-d", help="Data directory (default: ~/.lift-analytics)"),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

DateOption = Annotated[
    Optional[str],
    typer.Option("--date", help="Reference date YYYY-MM-DD (default: today)"),
]

app = typer.Typer(
    name="lift-analytics",
    help="Workout analytics and adaptive training programs.",
    no_args_is_help=True,
)

program_app = typer.Typer(
    name="program",
    help="Create, follow and archive adaptive training programs.",
    no_args_is_help=True,
)
app.add_typer(program_app, name="program")


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log engine decisions to stderr"),
    ] = False,
) -> None:
    """
    Workout analytics and adaptive training programs.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=views.err_console, rich_tracebacks=True)],
            force=True,
        )


def data_dir_or_default(data_dir: Path | None) -> Path:
    return data_dir if data_dir is not None else get_default_data_dir()


def get_store(data_dir: Path | None) -> HistoryStore:
    """History store in the data directory."""
    return HistoryStore(data_dir_or_default(data_dir) / HISTORY_FILE)


def get_program_store(data_dir: Path | None) -> ProgramStore:
    """Program snapshot store in the data directory."""
    return ProgramStore(data_dir_or_default(data_dir) / PROGRAMS_FILE)


def load_history_or_exit(store: HistoryStore) -> list:
    """Load sessions, printing the error and exiting 1 on failure."""
    if not store.exists():
        views.print_error(f"History file not found: {store.history_path}")
        views.print_info("Write one session per line as JSON, or pass --data-dir.")
        raise typer.Exit(1)
    try:
        return store.load_history()
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def load_readiness_inputs_or_exit(store: HistoryStore) -> tuple[list, list]:
    """(daily health, wellness scores), exiting 1 on invalid files."""
    try:
        return store.load_daily_health(), store.load_wellness_scores()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def load_muscle_tags_or_exit(store: HistoryStore) -> dict[str, list[str]]:
    try:
        return store.load_muscle_tags()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def load_resolver_or_exit(store: HistoryStore, mappings: dict[str, list[str]]) -> MetricResolver:
    """Metric resolver from the muscle tags and metric_preferences.yaml."""
    try:
        preferences = store.load_metric_preferences()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    return MetricResolver.from_mappings(mappings, preferences)


def parse_date_or_exit(value: str | None) -> date:
    """Parse --date, defaulting to today."""
    if value is None:
        return datetime.now().date()
    try:
        return validate_date(value)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def load_engine_or_exit(program_store: ProgramStore, policy_path: Path | None = None) -> AdaptiveProgramEngine:
    """Engine over the saved snapshot, configured from policy.yaml."""
    config = load_policy_config(policy_path)
    try:
        return program_store.load_engine(
            progression_rule=progression_rule(config),
            load_policy=load_policy(config),
            thresholds=readiness_thresholds(config),
            weights=readiness_weights(config),
        )
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
