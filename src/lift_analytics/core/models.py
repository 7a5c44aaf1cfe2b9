"""
Data models for lift-analytics.

All core dataclasses representing logged sessions, analytics results,
readiness signals, and adaptive training programs. Enumerations are
plain string literals so that models serialize without adapters.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import ClassVar, Literal

from .config import GOAL_REP_RANGES, GOAL_SET_COUNTS, GOAL_TITLES

ContributionCategory = Literal["exercise", "muscle_group", "workout_type"]
ReadinessBand = Literal["low", "moderate", "high"]
ReadinessSource = Literal["wellness", "health", "none"]
ProgramGoal = Literal["strength", "hypertrophy", "endurance", "general_fitness"]
ProgramSplit = Literal["full_body", "upper_lower", "push_pull_legs"]
DayState = Literal["planned", "completed", "skipped", "moved"]

READINESS_BANDS: tuple[str, ...] = ("low", "moderate", "high")
PROGRAM_GOALS: tuple[str, ...] = ("strength", "hypertrophy", "endurance", "general_fitness")
DAY_STATES: tuple[str, ...] = ("planned", "completed", "skipped", "moved")


# =============================================================================
# WORKOUT HISTORY
# =============================================================================


@dataclass(frozen=True)
class SetEntry:
    """
    A single logged set.

    Strength sets carry weight and reps; cardio sets carry any of
    distance, duration, or a count stored in reps.
    """

    order: int
    weight: float = 0.0
    reps: int = 0
    distance: float = 0.0
    duration_seconds: float = 0.0

    def __post_init__(self) -> None:
        """Validate set data."""
        if self.order < 0:
            raise ValueError("order must be non-negative")
        if self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.distance < 0:
            raise ValueError("distance must be non-negative")
        if self.duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative")
        if not (self.reps > 0 or self.distance > 0 or self.duration_seconds > 0):
            raise ValueError(
                "a set needs weight and reps, or at least one of distance, duration, reps"
            )

    @property
    def is_strength(self) -> bool:
        """True when the set is a loaded strength set."""
        return self.weight > 0 and self.reps > 0

    @property
    def volume(self) -> float:
        """weight × reps for strength sets; distance, else duration, for cardio."""
        if self.is_strength:
            return self.weight * self.reps
        if self.distance > 0:
            return self.distance
        return self.duration_seconds


@dataclass(frozen=True)
class ExerciseEntry:
    """One exercise within a session and its ordered sets."""

    name: str
    sets: tuple[SetEntry, ...] = ()

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("exercise name must be non-empty")
        object.__setattr__(self, "sets", tuple(sorted(self.sets, key=lambda s: s.order)))

    @property
    def total_volume(self) -> float:
        return sum(s.volume for s in self.sets)

    @property
    def strength_sets(self) -> tuple[SetEntry, ...]:
        return tuple(s for s in self.sets if s.is_strength)


@dataclass(frozen=True)
class Session:
    """
    A completed workout.

    Immutable once created; edits happen in the history collaborator,
    which hands the engine a fresh snapshot.
    """

    id: str
    started_at: datetime
    name: str
    exercises: tuple[ExerciseEntry, ...] = ()
    duration_minutes: float | None = None

    def __post_init__(self) -> None:
        """Validate session data."""
        if not self.id:
            raise ValueError("session id must be non-empty")
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ValueError("duration_minutes must be non-negative")
        object.__setattr__(self, "exercises", tuple(self.exercises))

    @property
    def day(self) -> date:
        """Calendar day the session started on."""
        return self.started_at.date()

    @property
    def total_volume(self) -> float:
        return sum(e.total_volume for e in self.exercises)

    def exercise(self, name: str) -> ExerciseEntry | None:
        """Return the first exercise with this exact name, if any."""
        for entry in self.exercises:
            if entry.name == name:
                return entry
        return None


# =============================================================================
# ANALYTICS RESULTS
# =============================================================================


@dataclass(frozen=True)
class StreakRun:
    """A maximal run of training days whose gaps stay within tolerance."""

    id: str
    start: date
    end: date
    day_count: int  # distinct training days, not the span length

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("streak start must not be after its end")
        if self.day_count < 1:
            raise ValueError("day_count must be positive")

    @property
    def span_days(self) -> int:
        """Calendar days covered, inclusive of both ends."""
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class DateInterval:
    """
    A time interval [start, end] or [start, end).

    include_end=False makes the interval half-open so that two contiguous
    intervals never both contain the shared boundary instant.
    """

    start: datetime
    end: datetime
    include_end: bool = True

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("interval start must not be after its end")

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def contains(self, moment: datetime) -> bool:
        if moment < self.start:
            return False
        if self.include_end:
            return moment <= self.end
        return moment < self.end


@dataclass(frozen=True)
class ChangeMetricWindow:
    """Two contiguous, equal-length, disjoint intervals ending at a reference time."""

    label: str
    current: DateInterval
    previous: DateInterval

    def __post_init__(self) -> None:
        if self.current.start != self.previous.end:
            raise ValueError("previous interval must end where the current one starts")
        if self.current.length != self.previous.length:
            raise ValueError("current and previous intervals must have equal length")


@dataclass(frozen=True)
class ChangeMetric:
    """
    One metric compared across a ChangeMetricWindow.

    percent_change is delta / previous as a fraction (0.25 = +25%), and
    None when previous is 0: the change is undefined, not infinite.
    """

    title: str
    current: float
    previous: float
    delta: float
    percent_change: float | None
    direction: str


@dataclass(frozen=True)
class ProgressContribution:
    """Change in best performance for an exercise, muscle group, or workout type."""

    subject: str
    category: ContributionCategory
    current: float
    previous: float
    delta: float
    percent_change: float | None = None


@dataclass(frozen=True)
class TrendPoint:
    """A fitted (date, value) point on a trend line."""

    date: date
    value: float


# =============================================================================
# READINESS SIGNALS
# =============================================================================


@dataclass(frozen=True)
class DailyHealthRecord:
    """Device health summary for one calendar day. Every metric is optional."""

    day: date
    resting_heart_rate: float | None = None
    sleep_hours: float | None = None
    heart_rate_variability: float | None = None
    steps: float | None = None
    active_energy: float | None = None

    def __post_init__(self) -> None:
        for name in ("resting_heart_rate", "sleep_hours", "heart_rate_variability", "steps", "active_energy"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True)
class WellnessScoreDay:
    """Daily scores from an external wellness service; each 0–100 or absent."""

    day: date
    sleep_score: float | None = None
    readiness_score: float | None = None
    activity_score: float | None = None

    def __post_init__(self) -> None:
        for name in ("sleep_score", "readiness_score", "activity_score"):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= 100:
                raise ValueError(f"{name} must be within 0–100, got {value}")


@dataclass(frozen=True)
class ReadinessSnapshot:
    """Readiness for one day, with the inputs that produced it."""

    day: date
    score: float
    band: ReadinessBand
    source: ReadinessSource
    sleep_hours: float | None = None
    resting_heart_rate_delta: float | None = None
    hrv_delta: float | None = None


# =============================================================================
# PROGRAMS
# =============================================================================


@dataclass
class ProgressionRule:
    """
    Per-plan load progression and deload policy.

    Readiness load adjustment lives in core/adaptation.py (LoadPolicy).
    """

    weight_increment: float = 2.5
    miss_threshold: int = 2
    deload_percent: float = 0.05

    def __post_init__(self) -> None:
        if self.weight_increment <= 0:
            raise ValueError("weight_increment must be positive")
        if self.miss_threshold < 1:
            raise ValueError("miss_threshold must be at least 1")
        if not 0 <= self.deload_percent < 1:
            raise ValueError("deload_percent must be within [0, 1)")


@dataclass
class PlannedExerciseTarget:
    """
    Prescription for one exercise on a program day.

    target_weight is None for bodyweight or self-selected loads.
    """

    exercise_name: str
    set_count: int
    rep_low: int
    rep_high: int
    target_weight: float | None = None
    failure_streak: int = 0

    def __post_init__(self) -> None:
        if self.set_count < 1:
            raise ValueError("set_count must be positive")
        if self.rep_low < 1 or self.rep_high < 1:
            raise ValueError("rep range must be positive")
        if self.rep_low > self.rep_high:
            self.rep_low, self.rep_high = self.rep_high, self.rep_low
        if self.target_weight is not None and self.target_weight < 0:
            raise ValueError("target_weight must be non-negative")


@dataclass
class ProgramDay:
    """One scheduled, template-defined session within a plan."""

    id: str
    week_number: int
    day_number: int
    scheduled_date: date
    focus_title: str
    exercises: list[PlannedExerciseTarget] = field(default_factory=list)
    state: DayState = "planned"
    moved_from: date | None = None
    completed_session_id: str | None = None
    completed_on: date | None = None

    def __post_init__(self) -> None:
        if self.week_number < 1 or self.day_number < 1:
            raise ValueError("week_number and day_number are 1-indexed")
        if self.state not in DAY_STATES:
            raise ValueError(f"Invalid day state: {self.state}")

    @property
    def is_open(self) -> bool:
        """True while the day can still be trained (planned or moved)."""
        return self.state in ("planned", "moved")


@dataclass(frozen=True)
class CompletionRecord:
    """Audit entry written when a session completes a program day."""

    plan_id: str
    day_id: str
    session_id: str
    completed_on: date
    readiness_score: float
    readiness_band: ReadinessBand
    successful_exercises: int
    total_exercises: int

    @property
    def success_ratio(self) -> float:
        if self.total_exercises == 0:
            return 0.0
        return self.successful_exercises / self.total_exercises


@dataclass
class ProgramPlan:
    """
    A multi-week adaptive plan.

    archived_at is None while the plan is active. Adherence is derived
    from session history on demand (see program_engine.adherence_to_date).
    """

    id: str
    name: str
    goal: ProgramGoal
    split: ProgramSplit
    days_per_week: int
    start_date: date
    days: list[ProgramDay] = field(default_factory=list)
    progression_rule: ProgressionRule = field(default_factory=ProgressionRule)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    archived_at: datetime | None = None
    completion_records: list[CompletionRecord] = field(default_factory=list)

    SCHEMA_VERSION: ClassVar[int] = 1

    def __post_init__(self) -> None:
        """Validate plan data."""
        if self.goal not in PROGRAM_GOALS:
            raise ValueError(f"Invalid goal: {self.goal}")
        if self.days_per_week < 1:
            raise ValueError("days_per_week must be positive")
        self.days.sort(key=lambda d: (d.scheduled_date, d.week_number, d.day_number))

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    @property
    def total_weeks(self) -> int:
        return max((d.week_number for d in self.days), default=0)

    def week(self, week_number: int) -> list[ProgramDay]:
        """Days of one program week, in schedule order."""
        return [d for d in self.days if d.week_number == week_number]

    def day(self, day_id: str) -> ProgramDay | None:
        for d in self.days:
            if d.id == day_id:
                return d
        return None

    def remaining_days(self) -> list[ProgramDay]:
        """Days that can still be trained, in schedule order."""
        return [d for d in self.days if d.is_open]


@dataclass(frozen=True)
class PlanRequest:
    """User choices for a new plan."""

    goal: ProgramGoal
    days_per_week: int
    start_date: date
    weight_increment: float = 2.5
    name: str | None = None

    def __post_init__(self) -> None:
        if self.goal not in PROGRAM_GOALS:
            raise ValueError(f"Invalid goal: {self.goal}")

    @property
    def goal_title(self) -> str:
        return GOAL_TITLES[self.goal]

    @property
    def rep_range(self) -> tuple[int, int]:
        return GOAL_REP_RANGES[self.goal]

    @property
    def set_count(self) -> int:
        return GOAL_SET_COUNTS[self.goal]


@dataclass(frozen=True)
class ProgramTodayPlan:
    """The day to train now, with readiness and the load-adjusted prescription."""

    plan_id: str
    day: ProgramDay
    readiness: ReadinessSnapshot
    adjusted_exercises: list[PlannedExerciseTarget]
    is_overdue: bool = False

    @property
    def band(self) -> ReadinessBand:
        return self.readiness.band

    @property
    def score(self) -> float:
        return self.readiness.score
