"""
Configuration constants for the analytics and program engine.

All adjustable parameters are centralized here for easy tuning.
Values marked as policy can be overridden from YAML (see
core/engine/config_loader.py); the rest are structural.
"""

from typing import Final

# =============================================================================
# STREAKS
# =============================================================================

DEFAULT_INTENTIONAL_REST_DAYS: Final[int] = 1  # Rest days allowed inside a streak

# =============================================================================
# ROLLING WINDOWS
# =============================================================================

DEFAULT_CHANGE_WINDOW_DAYS: Final[int] = 14

METRIC_SESSIONS: Final[str] = "Sessions"
METRIC_TOTAL_VOLUME: Final[str] = "Total Volume"
METRIC_AVG_DURATION: Final[str] = "Avg Duration"

# =============================================================================
# TREND
# =============================================================================

TREND_FLAT_THRESHOLD: Final[float] = 0.01  # |slope| per unit scale below this is "flat"

TREND_IMPROVING: Final[str] = "improving"
TREND_DECLINING: Final[str] = "declining"
TREND_FLAT: Final[str] = "flat"

# =============================================================================
# PROGRESS CONTRIBUTIONS
# =============================================================================

DEFAULT_CONTRIBUTION_WEEKS: Final[int] = 8
CARDIO_TAG: Final[str] = "cardio"  # Muscle tag marking an exercise as cardio

# =============================================================================
# READINESS (policy)
# =============================================================================

READINESS_LOW_BELOW: Final[float] = 40.0  # score < this → low
READINESS_HIGH_ABOVE: Final[float] = 70.0  # score > this → high
READINESS_NEUTRAL_SCORE: Final[float] = 50.0  # score with no signal at all

READINESS_SLEEP_POINTS_PER_HOUR: Final[float] = 15.0
READINESS_RHR_POINTS_PER_BPM: Final[float] = 10.0  # inverted: higher RHR lowers score
READINESS_HRV_POINTS_PER_MS: Final[float] = 4.0
READINESS_BASELINE_DAYS: Final[int] = 14  # Trailing window for fallback baselines
READINESS_WELLNESS_LOOKBACK_DAYS: Final[int] = 14  # How far back a wellness score may come from

# =============================================================================
# LOAD ADJUSTMENT (policy)
# =============================================================================

DEFAULT_WEIGHT_INCREMENT: Final[float] = 2.5
LOW_READINESS_LOAD_FACTOR: Final[float] = 0.90  # −10% load on low readiness days
LOW_READINESS_SET_REDUCTION: Final[int] = 1
MIN_SETS_PER_EXERCISE: Final[int] = 1
HIGH_READINESS_INCREMENT_STEPS: Final[int] = 1  # +1 weight increment on high days

MISS_THRESHOLD: Final[int] = 2  # Consecutive misses before a deload
DELOAD_PERCENT: Final[float] = 0.05
HIT_WEIGHT_TOLERANCE: Final[float] = 0.985  # Top set within 1.5% counts as on target
UNDERLOAD_TOLERANCE: Final[float] = 0.97  # Top set below 97% counts as a miss

# =============================================================================
# PROGRAM GENERATION
# =============================================================================

PROGRAM_WEEKS: Final[int] = 8
EXERCISES_PER_DAY: Final[int] = 5
SUPPORTED_DAYS_PER_WEEK: Final[tuple[int, ...]] = (3, 4, 5)
FALLBACK_DAYS_PER_WEEK: Final[int] = 4

# Load multiplier per program week (week 8 is a deload)
WEEK_LOAD_MULTIPLIERS: Final[list[float]] = [0.95, 1.00, 1.02, 1.04, 1.06, 1.08, 1.10, 0.90]

# Fixed day offsets within each 7-day week:
#   3-day: Mon(0), Wed(2), Fri(4)
#   4-day: Mon(0), Tue(1), Thu(3), Fri(4)
#   5-day: Mon(0), Tue(1), Wed(2), Fri(4), Sat(5)
TRAINING_DAY_OFFSETS: Final[dict[int, list[int]]] = {
    3: [0, 2, 4],
    4: [0, 1, 3, 4],
    5: [0, 1, 2, 4, 5],
}

DEFAULT_SPLIT_FOR_DAYS: Final[dict[int, str]] = {
    3: "full_body",
    4: "upper_lower",
    5: "push_pull_legs",
}

GOAL_REP_RANGES: Final[dict[str, tuple[int, int]]] = {
    "strength": (4, 6),
    "hypertrophy": (8, 12),
    "endurance": (12, 20),
    "general_fitness": (6, 10),
}

GOAL_SET_COUNTS: Final[dict[str, int]] = {
    "strength": 4,
    "hypertrophy": 3,
    "endurance": 3,
    "general_fitness": 3,
}

GOAL_TITLES: Final[dict[str, str]] = {
    "strength": "Strength",
    "hypertrophy": "Hypertrophy",
    "endurance": "Endurance",
    "general_fitness": "General Fitness",
}


def round_to_increment(value: float, increment: float) -> float:
    """
    Round a load to the nearest multiple of the plate increment.

    Halves round away from zero so 11.25 @ 2.5 → 12.5, independent of
    Python's banker's rounding.

    Args:
        value: Load in kg
        increment: Smallest load step; non-positive disables rounding

    Returns:
        Rounded load
    """
    if increment <= 0:
        return value
    steps = value / increment
    whole = int(steps)
    if abs(steps - whole) >= 0.5:
        whole += 1 if steps > 0 else -1
    return whole * increment
