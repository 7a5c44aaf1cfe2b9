"""
Progress contribution aggregation.

Splits history into a recent and a prior window of K weeks each and
reports how each exercise, muscle group, and workout type moved between
them. Exercises seen in only one window carry no comparison and are
left out.
"""

from datetime import datetime, timedelta
from typing import Sequence

from .config import CARDIO_TAG, DEFAULT_CONTRIBUTION_WEEKS
from .metrics import MetricResolver, exercise_sets
from .models import DateInterval, ProgressContribution, Session
from .windows import percent_change, sessions_in


def contribution_windows(now: datetime, weeks: int) -> tuple[DateInterval, DateInterval]:
    """
    (recent, prior) intervals anchored at now.

    recent = [now − 7K days, now], prior = [now − 14K days, now − 7K days).
    """
    recent_start = now - timedelta(days=7 * weeks)
    recent = DateInterval(start=recent_start, end=now, include_end=True)
    prior = DateInterval(start=now - timedelta(days=14 * weeks), end=recent_start, include_end=False)
    return recent, prior


def _best_values(
    sessions: Sequence[Session],
    kinds: dict[str, str],
    resolver: MetricResolver,
) -> dict[str, float]:
    best: dict[str, float] = {}
    for session in sessions:
        for entry in session.exercises:
            value = resolver.best_value(entry.name, entry.sets, kinds[entry.name])
            if value is None:
                continue
            best[entry.name] = max(best.get(entry.name, value), value)
    return best


def _volume_by_name(sessions: Sequence[Session]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for session in sessions:
        totals[session.name] = totals.get(session.name, 0.0) + session.total_volume
    return totals


def _contribution(subject: str, category: str, current: float, previous: float) -> ProgressContribution:
    return ProgressContribution(
        subject=subject,
        category=category,  # type: ignore[arg-type]
        current=current,
        previous=previous,
        delta=current - previous,
        percent_change=percent_change(current, previous),
    )


def progress_contributions(
    history: Sequence[Session],
    weeks: int = DEFAULT_CONTRIBUTION_WEEKS,
    mappings: dict[str, list[str]] | None = None,
    resolver: MetricResolver | None = None,
    now: datetime | None = None,
) -> list[ProgressContribution]:
    """
    Compare best performance between the recent and prior K-week windows.

    Args:
        history: Logged sessions
        weeks: Window length K in weeks
        mappings: Exercise name → muscle tags; exercises tagged cardio use
            the cardio composite metric and do not feed muscle groups
        resolver: Metric resolver; built from mappings when omitted
        now: Anchor (default: latest session start)

    Returns:
        Exercise, muscle group and workout type contributions ranked by
        |delta| descending, then subject; [] when weeks ≤ 0 or no history
    """
    if weeks <= 0 or not history:
        return []

    mappings = mappings or {}
    resolver = resolver or MetricResolver.from_mappings(mappings)
    anchor = now if now is not None else max(s.started_at for s in history)
    recent_window, prior_window = contribution_windows(anchor, weeks)

    ordered = sorted(history, key=lambda s: s.started_at)
    recent = sessions_in(ordered, recent_window)
    prior = sessions_in(ordered, prior_window)

    names = {e.name for s in recent + prior for e in s.exercises}
    kinds = {name: resolver.kind_for(name, exercise_sets(recent + prior, name)) for name in names}

    recent_best = _best_values(recent, kinds, resolver)
    prior_best = _best_values(prior, kinds, resolver)

    results: list[ProgressContribution] = []
    muscle_totals: dict[str, list[float]] = {}

    for name in sorted(recent_best.keys() & prior_best.keys()):
        item = _contribution(name, "exercise", recent_best[name], prior_best[name])
        results.append(item)
        for tag in mappings.get(name, []):
            if tag.lower() == CARDIO_TAG:
                continue
            totals = muscle_totals.setdefault(tag, [0.0, 0.0])
            totals[0] += item.current
            totals[1] += item.previous

    for tag in sorted(muscle_totals):
        current, previous = muscle_totals[tag]
        results.append(_contribution(tag, "muscle_group", current, previous))

    recent_volume = _volume_by_name(recent)
    prior_volume = _volume_by_name(prior)
    for name in sorted(recent_volume.keys() & prior_volume.keys()):
        results.append(_contribution(name, "workout_type", recent_volume[name], prior_volume[name]))

    return sorted(results, key=lambda c: (-abs(c.delta), c.subject))


def gainers(contributions: Sequence[ProgressContribution]) -> list[ProgressContribution]:
    """Positive contributions, largest gain first."""
    return sorted((c for c in contributions if c.delta > 0), key=lambda c: (-c.delta, c.subject))


def decliners(contributions: Sequence[ProgressContribution]) -> list[ProgressContribution]:
    """Negative contributions, largest decline first."""
    return sorted((c for c in contributions if c.delta < 0), key=lambda c: (c.delta, c.subject))
