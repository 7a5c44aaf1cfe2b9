"""
Adaptation rules: readiness load adjustment, completion evaluation,
and target propagation.

Implements how a program day's prescription responds to the day's
readiness band and how logged performance moves future targets.
"""

from dataclasses import dataclass, replace
from datetime import date
from typing import Sequence

from .config import (
    HIGH_READINESS_INCREMENT_STEPS,
    HIT_WEIGHT_TOLERANCE,
    LOW_READINESS_LOAD_FACTOR,
    LOW_READINESS_SET_REDUCTION,
    MIN_SETS_PER_EXERCISE,
    UNDERLOAD_TOLERANCE,
    round_to_increment,
)
from .models import PlannedExerciseTarget, ProgramDay, ProgressionRule, SetEntry


@dataclass(frozen=True)
class LoadPolicy:
    """Day-level load adjustment per readiness band, and hit/miss tolerances."""

    low_load_factor: float = LOW_READINESS_LOAD_FACTOR
    low_set_reduction: int = LOW_READINESS_SET_REDUCTION
    min_sets: int = MIN_SETS_PER_EXERCISE
    high_increment_steps: int = HIGH_READINESS_INCREMENT_STEPS
    hit_weight_tolerance: float = HIT_WEIGHT_TOLERANCE
    underload_tolerance: float = UNDERLOAD_TOLERANCE

    def __post_init__(self) -> None:
        if not 0 < self.low_load_factor <= 1:
            raise ValueError("low_load_factor must be within (0, 1]")
        if self.low_set_reduction < 0 or self.high_increment_steps < 0:
            raise ValueError("set reduction and increment steps must be non-negative")
        if self.min_sets < 1:
            raise ValueError("min_sets must be at least 1")


@dataclass(frozen=True)
class ExerciseEvaluation:
    """Outcome of one planned exercise after a completed session."""

    next_target: PlannedExerciseTarget
    was_successful: bool


def adjust_targets_for_readiness(
    targets: Sequence[PlannedExerciseTarget],
    band: str,
    weight_increment: float,
    policy: LoadPolicy | None = None,
) -> list[PlannedExerciseTarget]:
    """
    Apply the readiness load policy to a day's targets.

    - low: load × low_load_factor rounded to the increment, one fewer set
      (never below min_sets)
    - high: load + high_increment_steps × increment
    - moderate: unchanged

    Bodyweight targets (target_weight None) keep their load; only the set
    count responds on low days. Returns new objects; inputs are untouched.

    Args:
        targets: Planned targets for the day
        band: Readiness band
        weight_increment: Plate increment used for rounding
        policy: Load policy (default LoadPolicy())

    Returns:
        Adjusted copies of the targets
    """
    policy = policy or LoadPolicy()
    adjusted: list[PlannedExerciseTarget] = []

    for target in targets:
        weight = target.target_weight
        sets = target.set_count

        if band == "low":
            sets = max(policy.min_sets, sets - policy.low_set_reduction)
            if weight is not None and weight > 0:
                weight = round_to_increment(weight * policy.low_load_factor, weight_increment)
        elif band == "high":
            if weight is not None and weight > 0:
                weight = round_to_increment(
                    weight + policy.high_increment_steps * weight_increment, weight_increment
                )

        adjusted.append(replace(target, set_count=sets, target_weight=weight))

    return adjusted


def top_set(sets: Sequence[SetEntry]) -> SetEntry | None:
    """Heaviest set; equal weights prefer more reps."""
    if not sets:
        return None
    return max(sets, key=lambda s: (s.weight, s.reps))


def _register_miss(target: PlannedExerciseTarget, planned_weight: float, rule: ProgressionRule) -> PlannedExerciseTarget:
    streak = target.failure_streak + 1
    if streak >= rule.miss_threshold:
        deloaded = round_to_increment(planned_weight * (1 - rule.deload_percent), rule.weight_increment)
        return replace(target, target_weight=deloaded, failure_streak=0)
    return replace(target, failure_streak=streak)


def evaluate_completion(
    planned: PlannedExerciseTarget,
    completed_sets: Sequence[SetEntry],
    rule: ProgressionRule,
    policy: LoadPolicy | None = None,
) -> ExerciseEvaluation:
    """
    Evaluate a logged exercise against its planned target.

    Success: top set weight ≥ hit tolerance × plan AND reps ≥ rep_high.
    The next target gains one weight increment and the miss streak resets.

    Miss: top set reps < rep_low OR weight < underload tolerance × plan,
    or no sets at all. The miss streak grows; reaching the rule's miss
    threshold deloads by deload_percent and resets the streak.

    Anything in between keeps the target as is. Bodyweight targets always
    count as successful.
    """
    policy = policy or LoadPolicy()
    planned_weight = planned.target_weight
    if planned_weight is None or planned_weight <= 0:
        return ExerciseEvaluation(next_target=replace(planned), was_successful=True)

    best = top_set(completed_sets)
    if best is None:
        return ExerciseEvaluation(next_target=_register_miss(planned, planned_weight, rule), was_successful=False)

    hit_weight = best.weight >= planned_weight * policy.hit_weight_tolerance
    hit_reps = best.reps >= planned.rep_high
    failed_reps = best.reps < planned.rep_low
    under_loaded = best.weight < planned_weight * policy.underload_tolerance

    if hit_weight and hit_reps:
        progressed = round_to_increment(planned_weight + rule.weight_increment, rule.weight_increment)
        return ExerciseEvaluation(
            next_target=replace(planned, target_weight=progressed, failure_streak=0),
            was_successful=True,
        )
    if failed_reps or under_loaded:
        return ExerciseEvaluation(next_target=_register_miss(planned, planned_weight, rule), was_successful=False)

    return ExerciseEvaluation(next_target=replace(planned), was_successful=False)


def normalize_exercise_name(name: str) -> str:
    """Key used to match planned targets with logged exercises."""
    return " ".join(name.split()).lower()


def propagate_targets(
    days: Sequence[ProgramDay],
    after: date,
    updates: dict[str, PlannedExerciseTarget],
    exclude_day_id: str | None = None,
) -> int:
    """
    Carry updated targets forward to later open days.

    Every planned or moved day scheduled after the given date that
    prescribes an updated exercise takes its new weight and miss streak.
    updates is keyed by normalize_exercise_name.
    Days are modified in place; callers pass copies.

    Returns:
        Number of exercise targets changed
    """
    changed = 0
    for day in days:
        if day.id == exclude_day_id or not day.is_open or day.scheduled_date <= after:
            continue
        for i, target in enumerate(day.exercises):
            update = updates.get(normalize_exercise_name(target.exercise_name))
            if update is None:
                continue
            day.exercises[i] = replace(
                target,
                target_weight=update.target_weight,
                failure_streak=update.failure_streak,
            )
            changed += 1
    return changed
