"""
Multi-week program generation.

Builds an 8-week plan from a PlanRequest, the training history and the
exercise → muscle tag mapping:

1. The split follows from days per week (3 → full body, 4 → upper/lower,
   5 → push/pull/legs); unsupported values fall back to 4.
2. Each day template picks one exercise per target muscle group from
   the mapping (most frequently trained first), then the template's
   fallback exercises, then the most frequent exercises in history,
   until the day holds five.
3. Base loads come from the latest logged top set, or the template's
   conservative starting load for never-logged exercises.
4. Each week scales base loads by its multiplier; week 8 is a deload.

Generation is deterministic: the same request and history always give
the same plan, including ids.
"""

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Sequence

from .adaptation import normalize_exercise_name
from .config import (
    CARDIO_TAG,
    DEFAULT_SPLIT_FOR_DAYS,
    DEFAULT_WEIGHT_INCREMENT,
    EXERCISES_PER_DAY,
    FALLBACK_DAYS_PER_WEEK,
    PROGRAM_WEEKS,
    SUPPORTED_DAYS_PER_WEEK,
    TRAINING_DAY_OFFSETS,
    WEEK_LOAD_MULTIPLIERS,
    round_to_increment,
)
from .metrics import exercise_frequency, last_top_weight
from .models import PlannedExerciseTarget, PlanRequest, ProgramDay, ProgramPlan, ProgressionRule, Session
from .splits.base import DayTemplate, SplitTemplate
from .splits.registry import get_split

logger = logging.getLogger(__name__)

PLAN_ID_NAMESPACE = uuid.UUID("6f1c2d4e-8a3b-5c7d-9e0f-1a2b3c4d5e6f")


def sanitize_days_per_week(days_per_week: int) -> int:
    """Supported training frequency: 3, 4 or 5 days; anything else becomes 4."""
    if days_per_week in SUPPORTED_DAYS_PER_WEEK:
        return days_per_week
    return FALLBACK_DAYS_PER_WEEK


def split_for_days(days_per_week: int) -> str:
    return DEFAULT_SPLIT_FOR_DAYS[sanitize_days_per_week(days_per_week)]


def plan_id_for(request: PlanRequest, attempt: int = 0) -> str:
    """
    Deterministic plan id derived from the request.

    attempt > 0 yields a different id for the same request, which lets the
    engine resolve collisions with existing plans.
    """
    key = "|".join(
        [
            request.goal,
            str(sanitize_days_per_week(request.days_per_week)),
            request.start_date.isoformat(),
            f"{request.weight_increment:g}",
            (request.name or "").strip(),
            str(attempt),
        ]
    )
    return str(uuid.uuid5(PLAN_ID_NAMESPACE, key))


def day_id_for(plan_id: str, week_number: int, day_number: int) -> str:
    """Day ids are readable and navigable: <plan id>-w<week>d<day>."""
    return f"{plan_id}-w{week_number}d{day_number}"


def _frequency_order(names: Sequence[str], frequency: dict[str, int]) -> list[str]:
    """Most frequently logged first; ties alphabetical, case-insensitive."""
    return sorted(names, key=lambda n: (-frequency.get(n, 0), n.lower(), n))


def exercises_by_group(
    mappings: dict[str, list[str]],
    frequency: dict[str, int],
) -> dict[str, list[str]]:
    """Muscle tag → exercise names, most frequently trained first. Cardio is excluded."""
    grouped: dict[str, list[str]] = {}
    for name, tags in mappings.items():
        for tag in tags:
            key = tag.lower()
            if key == CARDIO_TAG:
                continue
            grouped.setdefault(key, []).append(name)
    return {group: _frequency_order(names, frequency) for group, names in grouped.items()}


def pick_exercises(
    template: DayTemplate,
    grouped: dict[str, list[str]],
    frequency: dict[str, int],
    per_day: int = EXERCISES_PER_DAY,
) -> list[str]:
    """
    Choose the exercises for one day template.

    One exercise per target group first, then fallbacks, then the most
    frequent history exercises. Names are unique case-insensitively.
    """
    picked: list[str] = []
    seen: set[str] = set()

    def add(candidate: str) -> bool:
        name = candidate.strip()
        if not name:
            return False
        key = normalize_exercise_name(name)
        if key in seen:
            return False
        seen.add(key)
        picked.append(name)
        return True

    for group in template.groups:
        for candidate in grouped.get(group, []):
            if add(candidate):
                break

    for fallback in template.fallback:
        if len(picked) >= per_day:
            break
        add(fallback.name)

    for candidate in _frequency_order(list(frequency), frequency):
        if len(picked) >= per_day:
            break
        add(candidate)

    return picked[:per_day]


def base_targets(
    template: DayTemplate,
    request: PlanRequest,
    history: Sequence[Session],
    grouped: dict[str, list[str]],
    frequency: dict[str, int],
) -> list[PlannedExerciseTarget]:
    """Week-independent targets for a day template."""
    rep_low, rep_high = request.rep_range
    targets: list[PlannedExerciseTarget] = []

    for name in pick_exercises(template, grouped, frequency):
        weight = last_top_weight(history, name)
        if weight is None:
            weight = template.start_weight(name)
        if weight is not None:
            weight = round_to_increment(weight, request.weight_increment)
        targets.append(
            PlannedExerciseTarget(
                exercise_name=name,
                set_count=request.set_count,
                rep_low=rep_low,
                rep_high=rep_high,
                target_weight=weight,
            )
        )
    return targets


def _week_multiplier(week_index: int) -> float:
    return WEEK_LOAD_MULTIPLIERS[min(week_index, len(WEEK_LOAD_MULTIPLIERS) - 1)]


def generate_plan(
    request: PlanRequest,
    history: Sequence[Session],
    mappings: dict[str, list[str]] | None = None,
    split: SplitTemplate | None = None,
    rule: ProgressionRule | None = None,
    plan_id: str | None = None,
    created_at: datetime | None = None,
) -> ProgramPlan:
    """
    Generate an 8-week plan.

    Args:
        request: Goal, frequency, start date, increment and optional name
        history: Logged sessions used for exercise choice and loads
        mappings: Exercise name → muscle tags
        split: Split template (default: registry entry for the frequency)
        rule: Progression rule; its increment is set from the request
        plan_id: Id to assign (default: derived from the request)
        created_at: Timestamp recorded on the plan

    Returns:
        The generated, not yet activated, ProgramPlan
    """
    days_per_week = sanitize_days_per_week(request.days_per_week)
    if days_per_week != request.days_per_week:
        logger.info(
            "Unsupported frequency %d days/week; using %d", request.days_per_week, days_per_week
        )
    increment = request.weight_increment if request.weight_increment > 0 else DEFAULT_WEIGHT_INCREMENT

    split_id = split_for_days(days_per_week)
    split = split or get_split(split_id)
    templates = split.days_for(days_per_week)

    frequency = dict(exercise_frequency(history))
    grouped = exercises_by_group(mappings or {}, frequency)
    bases = [base_targets(t, request, history, grouped, frequency) for t in templates]

    offsets = TRAINING_DAY_OFFSETS[days_per_week]
    plan_id = plan_id or plan_id_for(request)
    start: date = request.start_date

    days: list[ProgramDay] = []
    for week_index in range(PROGRAM_WEEKS):
        week_start = start + timedelta(days=7 * week_index)
        multiplier = _week_multiplier(week_index)
        for day_index, template in enumerate(templates):
            offset = offsets[min(day_index, len(offsets) - 1)]
            exercises = [
                PlannedExerciseTarget(
                    exercise_name=t.exercise_name,
                    set_count=t.set_count,
                    rep_low=t.rep_low,
                    rep_high=t.rep_high,
                    target_weight=(
                        round_to_increment(t.target_weight * multiplier, increment)
                        if t.target_weight is not None
                        else None
                    ),
                )
                for t in bases[day_index]
            ]
            days.append(
                ProgramDay(
                    id=day_id_for(plan_id, week_index + 1, day_index + 1),
                    week_number=week_index + 1,
                    day_number=day_index + 1,
                    scheduled_date=week_start + timedelta(days=offset),
                    focus_title=template.title,
                    exercises=exercises,
                )
            )

    name = (request.name or "").strip() or f"Adaptive {request.goal_title}"
    rule = replace(rule or ProgressionRule(), weight_increment=increment)

    return ProgramPlan(
        id=plan_id,
        name=name,
        goal=request.goal,
        split=split_id,  # type: ignore[arg-type]
        days_per_week=days_per_week,
        start_date=start,
        days=days,
        progression_rule=rule,
        created_at=created_at,
        updated_at=created_at,
    )
