"""
File-based storage for workout history and readiness inputs.

Sessions live in a JSONL file, one session per line. Device health and
wellness scores are JSON arrays, and the exercise → muscle tag mapping
is a YAML file. All of them sit in one data directory.
"""

import json
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml

from ..core.metrics import CARDIO_METRIC_KINDS, CardioMetricKind
from ..core.models import DailyHealthRecord, Session, WellnessScoreDay
from .serializers import (
    ValidationError,
    dict_to_daily_health,
    dict_to_session,
    dict_to_wellness_day,
    session_to_json_line,
)

T = TypeVar("T")

HISTORY_FILE = "history.jsonl"
HEALTH_FILE = "health.json"
WELLNESS_FILE = "wellness.json"
MUSCLE_TAGS_FILE = "muscle_tags.yaml"
METRIC_PREFERENCES_FILE = "metric_preferences.yaml"
PROGRAMS_FILE = "programs.json"


class HistoryStore:
    """
    Manages workout history stored in JSONL format.

    The history file contains one JSON session object per line. Sibling
    files in the same directory hold readiness inputs and tags:
    health.json, wellness.json, muscle_tags.yaml and metric_preferences.yaml.
    """

    def __init__(self, history_path: str | Path):
        """
        Initialize the history store.

        Args:
            history_path: Path to the JSONL history file
        """
        self.history_path = Path(history_path)
        self.data_dir = self.history_path.parent
        self.health_path = self.data_dir / HEALTH_FILE
        self.wellness_path = self.data_dir / WELLNESS_FILE
        self.muscle_tags_path = self.data_dir / MUSCLE_TAGS_FILE
        self.metric_preferences_path = self.data_dir / METRIC_PREFERENCES_FILE

    def exists(self) -> bool:
        """Check if the history file exists."""
        return self.history_path.exists()

    def init(self) -> None:
        """
        Initialize empty history file if it doesn't exist.

        Creates parent directories if needed.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if not self.history_path.exists():
            self.history_path.touch()

    def load_history(self) -> list[Session]:
        """
        Load all sessions from the history file.

        Returns:
            List of Session, sorted by start time

        Raises:
            FileNotFoundError: If history file doesn't exist
            ValidationError: If a line cannot be parsed
        """
        if not self.history_path.exists():
            raise FileNotFoundError(f"History file not found: {self.history_path}")

        sessions: list[Session] = []
        seen_ids: set[str] = set()

        with open(self.history_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                try:
                    data = json.loads(line)
                    if not isinstance(data, dict):
                        raise ValidationError("Session line must be a JSON object")
                    session = dict_to_session(data)
                except (json.JSONDecodeError, ValidationError) as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.history_path}: {e}"
                    ) from e

                if session.id in seen_ids:
                    raise ValidationError(
                        f"Duplicate session id '{session.id}' on line {line_num} in {self.history_path}"
                    )
                seen_ids.add(session.id)
                sessions.append(session)

        sessions.sort(key=lambda s: s.started_at)
        return sessions

    def append_session(self, session: Session) -> None:
        """
        Append a session to the history file.

        Raises:
            ValidationError: If a session with the same id already exists
        """
        self.init()
        if any(s.id == session.id for s in self.load_history()):
            raise ValidationError(f"Session id '{session.id}' already exists")
        with open(self.history_path, "a", encoding="utf-8") as f:
            f.write(session_to_json_line(session) + "\n")

    def get_session(self, session_id: str) -> Session | None:
        """Session with this id, or None."""
        for session in self.load_history():
            if session.id == session_id:
                return session
        return None

    def load_daily_health(self) -> list[DailyHealthRecord]:
        """Health records from health.json; [] when the file is absent."""
        return _load_json_records(self.health_path, dict_to_daily_health)

    def load_wellness_scores(self) -> list[WellnessScoreDay]:
        """Wellness scores from wellness.json; [] when the file is absent."""
        return _load_json_records(self.wellness_path, dict_to_wellness_day)

    def load_muscle_tags(self) -> dict[str, list[str]]:
        """
        Exercise → muscle tags from muscle_tags.yaml; {} when absent.

        Raises:
            ValidationError: If the file is not a mapping of name → list of tags
        """
        if not self.muscle_tags_path.exists():
            return {}
        try:
            with open(self.muscle_tags_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {self.muscle_tags_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError(f"{self.muscle_tags_path} must map exercise names to tag lists")

        mappings: dict[str, list[str]] = {}
        for name, tags in data.items():
            if isinstance(tags, str):
                tags = [tags]
            if not isinstance(tags, list):
                raise ValidationError(f"Tags for '{name}' in {self.muscle_tags_path} must be a list")
            mappings[str(name)] = [str(t).lower() for t in tags]
        return mappings

    def load_metric_preferences(self) -> dict[str, CardioMetricKind]:
        """
        Exercise → cardio metric override from metric_preferences.yaml.

        "auto" entries are dropped; {} when the file is absent.

        Raises:
            ValidationError: If a value is not distance, duration, count or auto
        """
        path = self.metric_preferences_path
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError(f"{path} must map exercise names to a metric")

        preferences: dict[str, CardioMetricKind] = {}
        for name, kind in data.items():
            kind = str(kind).lower()
            if kind == "auto":
                continue
            if kind not in CARDIO_METRIC_KINDS:
                raise ValidationError(
                    f"Invalid metric '{kind}' for '{name}' in {path}. "
                    f"Must be one of {', '.join(CARDIO_METRIC_KINDS)} or auto"
                )
            preferences[str(name)] = kind  # type: ignore[assignment]
        return preferences


def _load_json_records(path: Path, convert: Callable[[dict[str, Any]], T]) -> list[T]:
    """Parse a JSON array of objects; [] when the file does not exist."""
    if not path.exists():
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a JSON array")

    records: list[T] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValidationError(f"Entry {index} in {path} must be an object")
        try:
            records.append(convert(item))
        except (ValidationError, ValueError) as e:
            raise ValidationError(f"Error parsing entry {index} in {path}: {e}") from e
    return records


def get_default_data_dir() -> Path:
    """~/.lift-analytics"""
    return Path.home() / ".lift-analytics"

