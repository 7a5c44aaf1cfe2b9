"""
Training streak detection.

A streak run is a maximal sequence of training days in which no gap
between consecutive days exceeds the allowed rest. With one intentional
rest day, Mon/Wed/Fri training is a single run; a two-day break ends it.
"""

from datetime import date
from typing import Sequence

from .config import DEFAULT_INTENTIONAL_REST_DAYS
from .metrics import training_days
from .models import Session, StreakRun


def allowed_gap(intentional_rest_days: int) -> int:
    """Largest day difference that still continues a run."""
    return max(0, intentional_rest_days) + 1


def _make_run(start: date, end: date, day_count: int) -> StreakRun:
    return StreakRun(id=start.isoformat(), start=start, end=end, day_count=day_count)


def streak_runs(
    history: Sequence[Session],
    intentional_rest_days: int = DEFAULT_INTENTIONAL_REST_DAYS,
) -> list[StreakRun]:
    """
    Partition training days into maximal streak runs.

    Sessions are reduced to distinct calendar days first, so two sessions
    on one day count once. A run continues while the difference to the
    next training day is at most intentional_rest_days + 1; negative
    tolerances behave like 0.

    Args:
        history: Logged sessions in any order
        intentional_rest_days: Rest days allowed between training days

    Returns:
        Runs in ascending start order; [] for empty history
    """
    days = training_days(history)
    if not days:
        return []

    gap = allowed_gap(intentional_rest_days)
    runs: list[StreakRun] = []
    start = previous = days[0]
    count = 1

    for day in days[1:]:
        if (day - previous).days <= gap:
            count += 1
        else:
            runs.append(_make_run(start, previous, count))
            start = day
            count = 1
        previous = day

    runs.append(_make_run(start, previous, count))
    return runs


def runs_by_length(runs: Sequence[StreakRun]) -> list[StreakRun]:
    """Longest first; equal lengths put the most recent end first."""
    return sorted(runs, key=lambda r: (r.day_count, r.end), reverse=True)


def runs_by_recency(runs: Sequence[StreakRun]) -> list[StreakRun]:
    """Most recently ended first."""
    return sorted(runs, key=lambda r: r.end, reverse=True)


def current_streak_run(
    runs: Sequence[StreakRun],
    intentional_rest_days: int,
    today: date,
) -> StreakRun | None:
    """
    The run still alive on a given day.

    A run is current when its last training day is no more than the
    allowed gap before today, so a rest day inside the tolerance does not
    break the streak.
    """
    gap = allowed_gap(intentional_rest_days)
    for run in runs_by_recency(runs):
        days_since = (today - run.end).days
        if days_since < 0:
            continue
        if days_since <= gap:
            return run
        break
    return None


def longest_streak_run(runs: Sequence[StreakRun]) -> StreakRun | None:
    """The longest run, or None when there are no runs."""
    ordered = runs_by_length(runs)
    return ordered[0] if ordered else None
