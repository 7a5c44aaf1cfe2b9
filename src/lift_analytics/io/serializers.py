"""
JSON serialization for analytics and program data models.

Handles conversion between dataclasses and JSON-compatible dicts.
"""

import json
import re
from datetime import date, datetime
from typing import Any

from ..core.metrics import parse_duration_minutes
from ..core.models import (
    DAY_STATES,
    PROGRAM_GOALS,
    READINESS_BANDS,
    CompletionRecord,
    DailyHealthRecord,
    ExerciseEntry,
    PlannedExerciseTarget,
    ProgramDay,
    ProgramPlan,
    ProgressionRule,
    Session,
    SetEntry,
    WellnessScoreDay,
)
from ..core.program_engine import EngineState


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> date:
    """
    Validate and parse a YYYY-MM-DD date string.

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e


def validate_datetime(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp; a bare date means midnight.

    Timestamps with a UTC offset are converted to naive local time so every
    loaded timestamp compares with every other.

    Raises:
        ValidationError: If the value is not ISO-8601
    """
    if not isinstance(value, str):
        raise ValidationError(f"Invalid timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value[:-1] + "+00:00" if value.endswith("Z") else value)
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value}. Expected ISO-8601") from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Raises:
        ValidationError: If value is negative or not a number
    """
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def validate_choice(value: str, choices: tuple[str, ...], name: str) -> str:
    """
    Validate that a value is one of the allowed strings.

    Raises:
        ValidationError: If value is not allowed
    """
    if value not in choices:
        raise ValidationError(f"Invalid {name}: {value}. Must be one of {choices}")
    return value


def _optional_number(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    return float(validate_non_negative(value, key))


def _optional_date(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _optional_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# =============================================================================
# SESSIONS
# =============================================================================


def set_entry_to_dict(entry: SetEntry) -> dict[str, Any]:
    """Convert SetEntry to dict, omitting zero cardio fields."""
    d: dict[str, Any] = {"order": entry.order, "weight": entry.weight, "reps": entry.reps}
    if entry.distance:
        d["distance"] = entry.distance
    if entry.duration_seconds:
        d["duration_seconds"] = entry.duration_seconds
    return d


def dict_to_set_entry(data: dict[str, Any], order: int = 0) -> SetEntry:
    """
    Convert dict to SetEntry.

    Raises:
        ValidationError: If data is invalid
    """
    for key in ("weight", "reps", "distance", "duration_seconds"):
        validate_non_negative(data.get(key, 0), key)
    try:
        return SetEntry(
            order=int(data.get("order", order)),
            weight=float(data.get("weight", 0.0)),
            reps=int(data.get("reps", 0)),
            distance=float(data.get("distance", 0.0)),
            duration_seconds=float(data.get("duration_seconds", 0.0)),
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


def session_to_dict(session: Session) -> dict[str, Any]:
    """Convert Session to dict."""
    d: dict[str, Any] = {
        "id": session.id,
        "started_at": session.started_at.isoformat(),
        "name": session.name,
        "exercises": [
            {"name": e.name, "sets": [set_entry_to_dict(s) for s in e.sets]}
            for e in session.exercises
        ],
    }
    if session.duration_minutes is not None:
        d["duration_minutes"] = session.duration_minutes
    return d


def dict_to_session(data: dict[str, Any]) -> Session:
    """
    Convert dict to Session.

    duration may be given as minutes (duration_minutes) or as a string
    such as "1h 5m" (duration).

    Raises:
        ValidationError: If data is invalid
    """
    try:
        session_id = str(data["id"])
        started_at = validate_datetime(data["started_at"])
        name = str(data.get("name", "Workout"))
    except KeyError as e:
        raise ValidationError(f"Session missing field: {e.args[0]}") from e

    duration: float | None = _optional_number(data, "duration_minutes")
    if duration is None and data.get("duration") is not None:
        try:
            duration = parse_duration_minutes(str(data["duration"]))
        except ValueError as e:
            raise ValidationError(str(e)) from e

    exercises = []
    for raw in data.get("exercises", []):
        if not isinstance(raw, dict) or "name" not in raw:
            raise ValidationError(f"Exercise entry needs a name: {raw!r}")
        sets = tuple(dict_to_set_entry(s, i) for i, s in enumerate(raw.get("sets", [])))
        try:
            exercises.append(ExerciseEntry(name=str(raw["name"]), sets=sets))
        except ValueError as e:
            raise ValidationError(str(e)) from e

    try:
        return Session(
            id=session_id,
            started_at=started_at,
            name=name,
            exercises=tuple(exercises),
            duration_minutes=duration,
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


def session_to_json_line(session: Session) -> str:
    """
    Serialize a session to a single JSON line.

    Returns:
        JSON string (single line, no trailing newline)
    """
    return json.dumps(session_to_dict(session), separators=(",", ":"))


# =============================================================================
# READINESS INPUTS
# =============================================================================


def dict_to_daily_health(data: dict[str, Any]) -> DailyHealthRecord:
    """
    Convert dict to DailyHealthRecord.

    Raises:
        ValidationError: If data is invalid
    """
    if "day" not in data:
        raise ValidationError("Health record missing field: day")
    return DailyHealthRecord(
        day=validate_date(data["day"]),
        resting_heart_rate=_optional_number(data, "resting_heart_rate"),
        sleep_hours=_optional_number(data, "sleep_hours"),
        heart_rate_variability=_optional_number(data, "heart_rate_variability"),
        steps=_optional_number(data, "steps"),
        active_energy=_optional_number(data, "active_energy"),
    )


def dict_to_wellness_day(data: dict[str, Any]) -> WellnessScoreDay:
    """
    Convert dict to WellnessScoreDay.

    Raises:
        ValidationError: If data is invalid or a score is outside 0–100
    """
    if "day" not in data:
        raise ValidationError("Wellness record missing field: day")
    try:
        return WellnessScoreDay(
            day=validate_date(data["day"]),
            sleep_score=_optional_number(data, "sleep_score"),
            readiness_score=_optional_number(data, "readiness_score"),
            activity_score=_optional_number(data, "activity_score"),
        )
    except ValueError as e:
        raise ValidationError(str(e)) from e


# =============================================================================
# PROGRAMS
# =============================================================================


def target_to_dict(target: PlannedExerciseTarget) -> dict[str, Any]:
    return {
        "exercise_name": target.exercise_name,
        "set_count": target.set_count,
        "rep_low": target.rep_low,
        "rep_high": target.rep_high,
        "target_weight": target.target_weight,
        "failure_streak": target.failure_streak,
    }


def dict_to_target(data: dict[str, Any]) -> PlannedExerciseTarget:
    weight = data.get("target_weight")
    return PlannedExerciseTarget(
        exercise_name=str(data["exercise_name"]),
        set_count=int(data["set_count"]),
        rep_low=int(data["rep_low"]),
        rep_high=int(data["rep_high"]),
        target_weight=float(weight) if weight is not None else None,
        failure_streak=int(data.get("failure_streak", 0)),
    )


def program_day_to_dict(day: ProgramDay) -> dict[str, Any]:
    return {
        "id": day.id,
        "week_number": day.week_number,
        "day_number": day.day_number,
        "scheduled_date": day.scheduled_date.isoformat(),
        "focus_title": day.focus_title,
        "exercises": [target_to_dict(t) for t in day.exercises],
        "state": day.state,
        "moved_from": _optional_date(day.moved_from),
        "completed_session_id": day.completed_session_id,
        "completed_on": _optional_date(day.completed_on),
    }


def dict_to_program_day(data: dict[str, Any]) -> ProgramDay:
    validate_choice(data.get("state", "planned"), DAY_STATES, "day state")
    return ProgramDay(
        id=str(data["id"]),
        week_number=int(data["week_number"]),
        day_number=int(data["day_number"]),
        scheduled_date=validate_date(data["scheduled_date"]),
        focus_title=str(data["focus_title"]),
        exercises=[dict_to_target(t) for t in data.get("exercises", [])],
        state=data.get("state", "planned"),
        moved_from=validate_date(data["moved_from"]) if data.get("moved_from") else None,
        completed_session_id=data.get("completed_session_id"),
        completed_on=validate_date(data["completed_on"]) if data.get("completed_on") else None,
    )


def completion_record_to_dict(record: CompletionRecord) -> dict[str, Any]:
    return {
        "plan_id": record.plan_id,
        "day_id": record.day_id,
        "session_id": record.session_id,
        "completed_on": record.completed_on.isoformat(),
        "readiness_score": record.readiness_score,
        "readiness_band": record.readiness_band,
        "successful_exercises": record.successful_exercises,
        "total_exercises": record.total_exercises,
    }


def dict_to_completion_record(data: dict[str, Any]) -> CompletionRecord:
    validate_choice(data["readiness_band"], READINESS_BANDS, "readiness band")
    return CompletionRecord(
        plan_id=str(data["plan_id"]),
        day_id=str(data["day_id"]),
        session_id=str(data["session_id"]),
        completed_on=validate_date(data["completed_on"]),
        readiness_score=float(data["readiness_score"]),
        readiness_band=data["readiness_band"],
        successful_exercises=int(data["successful_exercises"]),
        total_exercises=int(data["total_exercises"]),
    )


def rule_to_dict(rule: ProgressionRule) -> dict[str, Any]:
    return {
        "weight_increment": rule.weight_increment,
        "miss_threshold": rule.miss_threshold,
        "deload_percent": rule.deload_percent,
    }


def dict_to_rule(data: dict[str, Any]) -> ProgressionRule:
    allowed = set(ProgressionRule.__dataclass_fields__)
    return ProgressionRule(**{k: v for k, v in data.items() if k in allowed})


def plan_to_dict(plan: ProgramPlan) -> dict[str, Any]:
    """Convert ProgramPlan to dict."""
    return {
        "schema_version": ProgramPlan.SCHEMA_VERSION,
        "id": plan.id,
        "name": plan.name,
        "goal": plan.goal,
        "split": plan.split,
        "days_per_week": plan.days_per_week,
        "start_date": plan.start_date.isoformat(),
        "progression_rule": rule_to_dict(plan.progression_rule),
        "created_at": _optional_datetime(plan.created_at),
        "updated_at": _optional_datetime(plan.updated_at),
        "archived_at": _optional_datetime(plan.archived_at),
        "days": [program_day_to_dict(d) for d in plan.days],
        "completion_records": [completion_record_to_dict(r) for r in plan.completion_records],
    }


def dict_to_plan(data: dict[str, Any]) -> ProgramPlan:
    """
    Convert dict to ProgramPlan.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        validate_choice(data["goal"], PROGRAM_GOALS, "goal")
        return ProgramPlan(
            id=str(data["id"]),
            name=str(data["name"]),
            goal=data["goal"],
            split=data["split"],
            days_per_week=int(data["days_per_week"]),
            start_date=validate_date(data["start_date"]),
            days=[dict_to_program_day(d) for d in data.get("days", [])],
            progression_rule=dict_to_rule(data.get("progression_rule", {})),
            created_at=validate_datetime(data["created_at"]) if data.get("created_at") else None,
            updated_at=validate_datetime(data["updated_at"]) if data.get("updated_at") else None,
            archived_at=validate_datetime(data["archived_at"]) if data.get("archived_at") else None,
            completion_records=[dict_to_completion_record(r) for r in data.get("completion_records", [])],
        )
    except KeyError as e:
        raise ValidationError(f"Plan missing field: {e.args[0]}") from e
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid plan data: {e}") from e


def engine_state_to_dict(state: EngineState) -> dict[str, Any]:
    return {
        "active": plan_to_dict(state.active) if state.active is not None else None,
        "archived": [plan_to_dict(p) for p in state.archived],
    }


def dict_to_engine_state(data: dict[str, Any]) -> EngineState:
    """
    Convert dict to EngineState.

    Raises:
        ValidationError: If data is invalid or more than one plan is active
    """
    active = dict_to_plan(data["active"]) if data.get("active") else None
    archived = [dict_to_plan(p) for p in data.get("archived", [])]
    if active is not None and active.archived_at is not None:
        raise ValidationError(f"Active plan {active.id} carries an archive date")
    if any(p.archived_at is None for p in archived):
        raise ValidationError("Archived plans must carry an archive date")
    return EngineState(
        active=active,
        archived=tuple(sorted(archived, key=lambda p: p.archived_at, reverse=True)),  # type: ignore[arg-type, return-value]
    )
