"""
Pure metric computation functions.

Per-set and per-session values the analytics modules share: best-set
resolution for strength and cardio exercises, session durations, and
per-exercise progress series.

All functions are pure and typed for testability.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Sequence

from .config import CARDIO_TAG
from .models import ExerciseEntry, Session, SetEntry

MetricKind = Literal["weight", "distance", "duration", "count"]
CardioMetricKind = Literal["distance", "duration", "count"]
CARDIO_METRIC_KINDS = ("distance", "duration", "count")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([hms])", re.IGNORECASE)


def sorted_history(history: Sequence[Session]) -> list[Session]:
    """Return sessions in chronological order (ties keep caller order)."""
    return sorted(history, key=lambda s: s.started_at)


def training_days(history: Sequence[Session]) -> list[date]:
    """Distinct calendar days with at least one session, ascending."""
    return sorted({s.day for s in history})


def session_duration_minutes(session: Session) -> float | None:
    """
    Duration of a session in minutes.

    Uses the logged duration when present, otherwise the sum of set
    durations if any set carries one. None when nothing is known.
    """
    if session.duration_minutes is not None:
        return session.duration_minutes
    seconds = sum(s.duration_seconds for e in session.exercises for s in e.sets)
    if seconds > 0:
        return seconds / 60.0
    return None


def parse_duration_minutes(text: str) -> float:
    """
    Parse a duration string into minutes.

    Accepts plain minutes ("45", "52.5") and unit forms such as "1h 5m",
    "1h", "30m 15s".

    Raises:
        ValueError: If the string has no recognizable duration
    """
    cleaned = text.strip()
    if not cleaned:
        raise ValueError("empty duration")
    try:
        minutes = float(cleaned)
    except ValueError:
        parts = _DURATION_PART.findall(cleaned)
        if not parts or _DURATION_PART.sub("", cleaned).strip():
            raise ValueError(f"Unrecognized duration: {text!r}") from None
        minutes = 0.0
        for amount, unit in parts:
            value = float(amount)
            unit = unit.lower()
            if unit == "h":
                minutes += value * 60
            elif unit == "m":
                minutes += value
            else:
                minutes += value / 60
    if minutes < 0:
        raise ValueError("duration must be non-negative")
    return minutes


def exercise_frequency(history: Sequence[Session]) -> Counter:
    """Number of sessions each exercise name appears in."""
    counts: Counter = Counter()
    for session in history:
        for name in {e.name for e in session.exercises}:
            counts[name] += 1
    return counts


def resolve_cardio_metric(sets: Sequence[SetEntry]) -> CardioMetricKind:
    """
    Pick the primary metric for a cardio exercise from its logged sets.

    Distance wins over duration, duration over count. With no signal at
    all, duration is the most universal choice.
    """
    if any(s.distance > 0 for s in sets):
        return "distance"
    if any(s.duration_seconds > 0 for s in sets):
        return "duration"
    if any(s.reps > 0 for s in sets):
        return "count"
    return "duration"


def set_value(entry: SetEntry, kind: MetricKind) -> float:
    """Value of a single set under a metric kind."""
    if kind == "weight":
        return entry.weight
    if kind == "distance":
        return entry.distance
    if kind == "duration":
        return entry.duration_seconds
    return float(entry.reps)


def best_set_value(sets: Sequence[SetEntry], kind: MetricKind) -> float | None:
    """Best single-set value under a metric kind, or None when no set counts."""
    if kind == "weight":
        values = [s.weight for s in sets if s.is_strength]
    else:
        values = [set_value(s, kind) for s in sets]
    values = [v for v in values if v > 0]
    return max(values) if values else None


@dataclass
class MetricResolver:
    """
    Decides which metric describes an exercise's performance.

    Strength exercises are measured by max weight. Exercises tagged cardio,
    or logged without any loaded set, use the cardio composite
    (distance, then duration, then count). Explicit per-exercise
    preferences override the automatic choice.
    """

    cardio_exercises: set[str] = field(default_factory=set)
    preferences: dict[str, CardioMetricKind] = field(default_factory=dict)

    @classmethod
    def from_mappings(
        cls,
        mappings: dict[str, list[str]] | None,
        preferences: dict[str, CardioMetricKind] | None = None,
    ) -> "MetricResolver":
        """Build a resolver that treats every exercise tagged cardio as cardio."""
        cardio = {
            name
            for name, tags in (mappings or {}).items()
            if CARDIO_TAG in {t.lower() for t in tags}
        }
        return cls(cardio_exercises=cardio, preferences=dict(preferences or {}))

    def kind_for(self, exercise_name: str, sets: Sequence[SetEntry]) -> MetricKind:
        """
        Metric kind for an exercise given all of its logged sets.

        Resolve over the full history of the exercise so that two windows
        compare the same unit.
        """
        if exercise_name in self.preferences:
            return self.preferences[exercise_name]
        if exercise_name not in self.cardio_exercises and any(s.is_strength for s in sets):
            return "weight"
        return resolve_cardio_metric(sets)

    def best_value(
        self,
        exercise_name: str,
        sets: Sequence[SetEntry],
        kind: MetricKind | None = None,
    ) -> float | None:
        """Best single-set value for the exercise, or None if nothing counts."""
        if kind is None:
            kind = self.kind_for(exercise_name, sets)
        return best_set_value(sets, kind)


def exercise_sets(history: Sequence[Session], exercise_name: str) -> list[SetEntry]:
    """Every set logged for an exercise, in chronological session order."""
    result: list[SetEntry] = []
    for session in sorted_history(history):
        for entry in session.exercises:
            if entry.name == exercise_name:
                result.extend(entry.sets)
    return result


def exercise_progress_series(
    history: Sequence[Session],
    exercise_name: str,
    resolver: MetricResolver | None = None,
) -> list[tuple[date, float]]:
    """
    Best value of an exercise per training day, ascending by date.

    Several sessions on one day collapse to that day's best value.
    """
    resolver = resolver or MetricResolver()
    kind = resolver.kind_for(exercise_name, exercise_sets(history, exercise_name))

    by_day: dict[date, float] = {}
    for session in sorted_history(history):
        for entry in session.exercises:
            if entry.name != exercise_name:
                continue
            value = best_set_value(entry.sets, kind)
            if value is None:
                continue
            by_day[session.day] = max(by_day.get(session.day, value), value)
    return sorted(by_day.items())


def last_top_weight(history: Sequence[Session], exercise_name: str) -> float | None:
    """
    Top working weight from the most recent session with strength sets
    for the exercise, or None.
    """
    for session in reversed(sorted_history(history)):
        entry: ExerciseEntry | None = session.exercise(exercise_name)
        if entry is None:
            continue
        strength = entry.strength_sets
        if strength:
            return max(s.weight for s in strength)
    return None
