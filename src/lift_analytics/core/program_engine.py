"""
Adaptive program engine: the single stateful component.

Owns the active plan and the archive. Lifecycle of a plan:

    none → active → archived → (active again via restore | deleted)

At most one plan is active. Every transition builds a new EngineState
from copies and publishes it with one reference assignment under a lock,
so readers always see a consistent pair of (active, archived).

Readers receive deep copies; mutating them never touches engine state.
"""

import copy
import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Sequence

from .adaptation import (
    LoadPolicy,
    adjust_targets_for_readiness,
    evaluate_completion,
    normalize_exercise_name,
    propagate_targets,
)
from .models import (
    CompletionRecord,
    DailyHealthRecord,
    PlanRequest,
    ProgramDay,
    ProgramPlan,
    ProgramTodayPlan,
    ProgressionRule,
    Session,
    WellnessScoreDay,
)
from .program_generator import generate_plan, plan_id_for
from .readiness import ReadinessThresholds, ReadinessWeights, evaluate_readiness

logger = logging.getLogger(__name__)


class ProgramError(Exception):
    """Base class for plan lifecycle errors."""


class NoActivePlanError(ProgramError):
    """Raised when an operation needs an active plan and there is none."""


class PlanNotFoundError(ProgramError, LookupError):
    """Raised when no plan, active or archived, has the given id."""


class ArchivedPlanNotFoundError(PlanNotFoundError):
    """Raised when no archived plan has the given id."""


class PlanDayNotFoundError(ProgramError, LookupError):
    """Raised when the active plan has no day with the given id."""


@dataclass(frozen=True)
class EngineState:
    """Immutable engine state; replaced wholesale on every transition."""

    active: ProgramPlan | None = None
    archived: tuple[ProgramPlan, ...] = ()

    @property
    def all_plans(self) -> list[ProgramPlan]:
        plans = list(self.archived)
        if self.active is not None:
            plans.insert(0, self.active)
        return plans


def _archive_sort_key(plan: ProgramPlan) -> datetime:
    return plan.archived_at or plan.updated_at or datetime.min


def _sorted_archive(plans: Sequence[ProgramPlan]) -> tuple[ProgramPlan, ...]:
    """Most recently archived first."""
    return tuple(sorted(plans, key=_archive_sort_key, reverse=True))


class AdaptiveProgramEngine:
    """
    Creates, adapts, archives and restores training plans.

    Args:
        state: Initial state (e.g. loaded by io.program_store)
        clock: Returns the current time; injectable for tests
        progression_rule: Increment, miss streak and deload size for new plans
        load_policy: Readiness load adjustment and hit/miss tolerances
        thresholds: Readiness band edges
        weights: Readiness fallback weights
    """

    def __init__(
        self,
        state: EngineState | None = None,
        clock: Callable[[], datetime] | None = None,
        progression_rule: ProgressionRule | None = None,
        load_policy: LoadPolicy | None = None,
        thresholds: ReadinessThresholds | None = None,
        weights: ReadinessWeights | None = None,
    ):
        self._state = state or EngineState()
        self._lock = threading.Lock()
        self._clock = clock or datetime.now
        self.progression_rule = progression_rule or ProgressionRule()
        self.load_policy = load_policy or LoadPolicy()
        self.thresholds = thresholds or ReadinessThresholds()
        self.weights = weights or ReadinessWeights()

    @classmethod
    def from_snapshot(cls, state: EngineState, **kwargs) -> "AdaptiveProgramEngine":
        """Engine over a deep copy of a previously taken snapshot."""
        return cls(state=copy.deepcopy(state), **kwargs)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> EngineState:
        """Deep copy of the current state, for persistence."""
        return copy.deepcopy(self._state)

    @property
    def active_plan(self) -> ProgramPlan | None:
        return copy.deepcopy(self._state.active)

    @property
    def archived_plans(self) -> list[ProgramPlan]:
        """Archived plans, most recently archived first."""
        return copy.deepcopy(list(self._state.archived))

    def get_plan(self, plan_id: str) -> ProgramPlan | None:
        """Active or archived plan by id, or None."""
        for plan in self._state.all_plans:
            if plan.id == plan_id:
                return copy.deepcopy(plan)
        return None

    def _today(self, today: date | None) -> date:
        return today if today is not None else self._clock().date()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_plan(
        self,
        request: PlanRequest,
        history: Sequence[Session],
        daily_health: Sequence[DailyHealthRecord] | None = None,
        mappings: dict[str, list[str]] | None = None,
    ) -> ProgramPlan:
        """
        Generate a plan and make it active.

        Any active plan is archived in the same transition. daily_health is
        accepted for interface symmetry with today_plan; generation itself
        only looks at history and mappings.

        Returns:
            A copy of the new active plan
        """
        with self._lock:
            state = self._state
            now = self._clock()
            taken = {p.id for p in state.all_plans}

            attempt = 0
            plan_id = plan_id_for(request, attempt)
            while plan_id in taken:
                attempt += 1
                plan_id = plan_id_for(request, attempt)

            plan = generate_plan(
                request,
                history,
                mappings=mappings,
                rule=self.progression_rule,
                plan_id=plan_id,
                created_at=now,
            )

            archived = list(state.archived)
            if state.active is not None:
                archived.append(replace(copy.deepcopy(state.active), archived_at=now, updated_at=now))
                logger.info("Archived plan %s to make room for %s", state.active.id, plan.id)

            self._state = EngineState(active=plan, archived=_sorted_archive(archived))

        logger.info(
            "Created plan %s (%s, %d days/week, %d days)",
            plan.id,
            plan.goal,
            plan.days_per_week,
            len(plan.days),
        )
        return copy.deepcopy(plan)

    def archive_active_plan(self) -> ProgramPlan | None:
        """
        Archive the active plan, leaving none active.

        Returns:
            A copy of the archived plan, or None when nothing was active
        """
        with self._lock:
            state = self._state
            if state.active is None:
                return None
            now = self._clock()
            archived_plan = replace(copy.deepcopy(state.active), archived_at=now, updated_at=now)
            self._state = EngineState(
                active=None,
                archived=_sorted_archive([*state.archived, archived_plan]),
            )
        logger.info("Archived plan %s", archived_plan.id)
        return copy.deepcopy(archived_plan)

    def restore_archived_plan(self, plan_id: str) -> ProgramPlan:
        """
        Re-activate an archived plan, archiving the current active one.

        Raises:
            ArchivedPlanNotFoundError: If no archived plan has this id
        """
        with self._lock:
            state = self._state
            target = next((p for p in state.archived if p.id == plan_id), None)
            if target is None:
                raise ArchivedPlanNotFoundError(f"No archived plan with id {plan_id}")

            now = self._clock()
            archived = [p for p in state.archived if p.id != plan_id]
            if state.active is not None:
                archived.append(replace(copy.deepcopy(state.active), archived_at=now, updated_at=now))
                logger.info("Archived plan %s while restoring %s", state.active.id, plan_id)

            restored = replace(copy.deepcopy(target), archived_at=None, updated_at=now)
            self._state = EngineState(active=restored, archived=_sorted_archive(archived))

        logger.info("Restored plan %s", plan_id)
        return copy.deepcopy(restored)

    def delete_archived_plan(self, plan_id: str) -> None:
        """
        Permanently remove an archived plan.

        Raises:
            ArchivedPlanNotFoundError: If no archived plan has this id
        """
        with self._lock:
            state = self._state
            if not any(p.id == plan_id for p in state.archived):
                raise ArchivedPlanNotFoundError(f"No archived plan with id {plan_id}")
            self._state = EngineState(
                active=state.active,
                archived=tuple(p for p in state.archived if p.id != plan_id),
            )
        logger.info("Deleted archived plan %s", plan_id)

    # ------------------------------------------------------------------
    # Daily prescription
    # ------------------------------------------------------------------

    @staticmethod
    def select_day(plan: ProgramPlan, today: date) -> ProgramDay | None:
        """
        The day to train: scheduled today, else the earliest overdue open
        day, else the next upcoming one.
        """
        candidates = plan.remaining_days()
        if not candidates:
            return None
        todays = [d for d in candidates if d.scheduled_date == today]
        if todays:
            return todays[0]
        overdue = [d for d in candidates if d.scheduled_date < today]
        if overdue:
            return min(overdue, key=lambda d: (d.scheduled_date, d.week_number, d.day_number))
        return min(candidates, key=lambda d: (d.scheduled_date, d.week_number, d.day_number))

    def today_plan(
        self,
        daily_health: Sequence[DailyHealthRecord] = (),
        wellness_scores: Sequence[WellnessScoreDay] = (),
        today: date | None = None,
    ) -> ProgramTodayPlan | None:
        """
        Today's prescription with readiness applied.

        Returns:
            ProgramTodayPlan, or None when there is no active plan or no
            remaining planned/moved day
        """
        plan = self._state.active
        if plan is None:
            return None

        day_of = self._today(today)
        day = self.select_day(plan, day_of)
        if day is None:
            return None

        readiness = evaluate_readiness(
            daily_health,
            wellness_scores,
            day_of,
            thresholds=self.thresholds,
            weights=self.weights,
        )
        adjusted = adjust_targets_for_readiness(
            day.exercises,
            readiness.band,
            plan.progression_rule.weight_increment,
            self.load_policy,
        )
        logger.debug(
            "Today %s: day %s, readiness %.1f (%s, %s)",
            day_of,
            day.id,
            readiness.score,
            readiness.band,
            readiness.source,
        )
        return ProgramTodayPlan(
            plan_id=plan.id,
            day=copy.deepcopy(day),
            readiness=readiness,
            adjusted_exercises=adjusted,
            is_overdue=day.scheduled_date < day_of,
        )

    # ------------------------------------------------------------------
    # Adherence
    # ------------------------------------------------------------------

    def adherence_to_date(
        self,
        plan_id: str,
        history: Sequence[Session],
        today: date | None = None,
    ) -> float | None:
        """
        Share of due days that were trained.

        A day is due when scheduled on or before the cutoff (the archive
        date for archived plans, otherwise today). It counts as trained
        when completed, or when it is not skipped and a session falls on
        its scheduled date. A moved day is due and matched on its new date
        only; its moved_from date no longer counts.
        Computed on every call from current state and history.

        Returns:
            Ratio in [0, 1], or None when no day is due yet

        Raises:
            PlanNotFoundError: If no plan has this id
        """
        plan = next((p for p in self._state.all_plans if p.id == plan_id), None)
        if plan is None:
            raise PlanNotFoundError(f"No plan with id {plan_id}")

        cutoff = plan.archived_at.date() if plan.archived_at is not None else self._today(today)
        due = [d for d in plan.days if d.scheduled_date <= cutoff]
        if not due:
            return None

        session_days = {s.day for s in history}
        trained = sum(
            1
            for d in due
            if d.state == "completed" or (d.state != "skipped" and d.scheduled_date in session_days)
        )
        return trained / len(due)

    # ------------------------------------------------------------------
    # Day transitions
    # ------------------------------------------------------------------

    def _update_active(self, change: Callable[[ProgramPlan], object]) -> object:
        """Apply change to a copy of the active plan and publish it."""
        with self._lock:
            state = self._state
            if state.active is None:
                raise NoActivePlanError("No active plan")
            plan = copy.deepcopy(state.active)
            result = change(plan)
            plan.updated_at = self._clock()
            self._state = EngineState(active=plan, archived=state.archived)
        return result

    @staticmethod
    def _require_day(plan: ProgramPlan, day_id: str) -> ProgramDay:
        day = plan.day(day_id)
        if day is None:
            raise PlanDayNotFoundError(f"Plan {plan.id} has no day {day_id}")
        return day

    @staticmethod
    def _completion_day(plan: ProgramPlan, session_day: date) -> ProgramDay | None:
        """Open day on the session's date, else the open day nearest to it."""
        candidates = plan.remaining_days()
        for day in candidates:
            if day.scheduled_date == session_day:
                return day
        if not candidates:
            return None
        return min(candidates, key=lambda d: (abs((d.scheduled_date - session_day).days), d.scheduled_date))

    def record_completion(
        self,
        session: Session,
        day_id: str | None = None,
        daily_health: Sequence[DailyHealthRecord] = (),
        wellness_scores: Sequence[WellnessScoreDay] = (),
    ) -> CompletionRecord | None:
        """
        Complete a program day with a logged session and adapt targets.

        The day is day_id when given, otherwise the open day on the
        session's date or the nearest open day. Each planned exercise is
        evaluated against the session's sets; the resulting targets are
        carried forward to later open days.

        Returns:
            The CompletionRecord, or None when no open day matches or the
            day is already completed

        Raises:
            NoActivePlanError: If no plan is active
            PlanDayNotFoundError: If day_id is not in the active plan
        """

        def complete(plan: ProgramPlan) -> CompletionRecord | None:
            if day_id is not None:
                day = self._require_day(plan, day_id)
            else:
                day = self._completion_day(plan, session.day)
            if day is None or day.state == "completed":
                return None

            readiness = evaluate_readiness(
                daily_health,
                wellness_scores,
                session.day,
                thresholds=self.thresholds,
                weights=self.weights,
            )

            logged = {normalize_exercise_name(e.name): e for e in session.exercises}
            updates = {}
            successes = 0
            for target in day.exercises:
                entry = logged.get(normalize_exercise_name(target.exercise_name))
                evaluation = evaluate_completion(
                    target,
                    entry.sets if entry is not None else (),
                    plan.progression_rule,
                    self.load_policy,
                )
                successes += int(evaluation.was_successful)
                updates[normalize_exercise_name(target.exercise_name)] = evaluation.next_target

            day.state = "completed"
            day.completed_session_id = session.id
            day.completed_on = session.day
            propagate_targets(plan.days, day.scheduled_date, updates, exclude_day_id=day.id)

            record = CompletionRecord(
                plan_id=plan.id,
                day_id=day.id,
                session_id=session.id,
                completed_on=session.day,
                readiness_score=readiness.score,
                readiness_band=readiness.band,
                successful_exercises=successes,
                total_exercises=len(day.exercises),
            )
            plan.completion_records.append(record)
            return record

        record = self._update_active(complete)
        if record is not None:
            logger.info(
                "Completed day %s with session %s (%d/%d on target)",
                record.day_id,
                record.session_id,
                record.successful_exercises,
                record.total_exercises,
            )
        return record  # type: ignore[return-value]

    def skip_day(self, day_id: str) -> bool:
        """
        Mark an open day skipped.

        Returns:
            True when the state changed, False when the day was not open
        """

        def skip(plan: ProgramPlan) -> bool:
            day = self._require_day(plan, day_id)
            if not day.is_open:
                return False
            day.state = "skipped"
            day.completed_on = self._clock().date()
            return True

        changed = bool(self._update_active(skip))
        if changed:
            logger.info("Skipped day %s", day_id)
        return changed

    def move_day(self, day_id: str, new_date: date) -> bool:
        """
        Reschedule an open day.

        Returns:
            True when the state changed, False when the day was not open
        """

        def move(plan: ProgramPlan) -> bool:
            day = self._require_day(plan, day_id)
            if not day.is_open:
                return False
            if day.moved_from is None:
                day.moved_from = day.scheduled_date
            day.scheduled_date = new_date
            day.state = "moved"
            plan.days.sort(key=lambda d: (d.scheduled_date, d.week_number, d.day_number))
            return True

        changed = bool(self._update_active(move))
        if changed:
            logger.info("Moved day %s to %s", day_id, new_date)
        return changed

    def reset_day(self, day_id: str) -> bool:
        """
        Return a skipped or moved day to planned on its original date.

        Returns:
            True when the state changed, False for planned or completed days
        """

        def reset(plan: ProgramPlan) -> bool:
            day = self._require_day(plan, day_id)
            if day.state not in ("skipped", "moved"):
                return False
            if day.moved_from is not None:
                day.scheduled_date = day.moved_from
            day.state = "planned"
            day.moved_from = None
            day.completed_on = None
            day.completed_session_id = None
            plan.days.sort(key=lambda d: (d.scheduled_date, d.week_number, d.day_number))
            return True

        changed = bool(self._update_active(reset))
        if changed:
            logger.info("Reset day %s to planned", day_id)
        return changed
