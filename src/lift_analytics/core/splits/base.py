"""
Base types for training split templates.

A SplitTemplate lists the day templates of one split. Each DayTemplate
names the muscle groups it targets, in priority order, and fallback
exercises used when history and tags cannot fill the day.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FallbackExercise:
    """A default exercise and its conservative starting load."""

    name: str
    start_kg: float | None = None  # None for bodyweight or self-selected loads


@dataclass(frozen=True)
class DayTemplate:
    """One training day of a split."""

    title: str                      # e.g. "Upper A"
    groups: tuple[str, ...]         # muscle tags, highest priority first
    fallback: tuple[FallbackExercise, ...] = ()

    def start_weight(self, exercise_name: str) -> float | None:
        """Conservative default load for a fallback exercise, if listed."""
        key = exercise_name.strip().lower()
        for item in self.fallback:
            if item.name.strip().lower() == key:
                return item.start_kg
        return None


@dataclass(frozen=True)
class SplitTemplate:
    """Full configuration for one training split."""

    split_id: str                   # "full_body", "upper_lower", "push_pull_legs"
    display_name: str
    days: tuple[DayTemplate, ...] = field(default_factory=tuple)

    def days_for(self, days_per_week: int) -> list[DayTemplate]:
        """The first N day templates; N larger than the split repeats nothing."""
        return list(self.days[:days_per_week])
