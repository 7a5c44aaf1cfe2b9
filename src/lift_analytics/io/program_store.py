"""
JSON snapshot storage for the program engine.

programs.json holds the active plan (or null) and the archive. Writes go
to a temporary sibling first and replace the file in one rename, so a
crash mid-write never leaves a half-written snapshot.
"""

import json
import os
from pathlib import Path

from ..core.program_engine import AdaptiveProgramEngine, EngineState
from .serializers import ValidationError, dict_to_engine_state, engine_state_to_dict


class ProgramStore:
    """Loads and saves EngineState snapshots."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> EngineState:
        """
        Load the saved state; an absent file is an empty state.

        Raises:
            ValidationError: If the file is not a valid snapshot
        """
        if not self.path.exists():
            return EngineState()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"{self.path} must contain a JSON object")
        try:
            return dict_to_engine_state(data)
        except ValidationError as e:
            raise ValidationError(f"Error parsing {self.path}: {e}") from e

    def save(self, state: EngineState) -> None:
        """Write the state atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(engine_state_to_dict(state), f, indent=2)
        os.replace(tmp_path, self.path)

    def load_engine(self, **kwargs) -> AdaptiveProgramEngine:
        """Engine over the saved state; kwargs go to the engine constructor."""
        return AdaptiveProgramEngine.from_snapshot(self.load(), **kwargs)

    def save_engine(self, engine: AdaptiveProgramEngine) -> None:
        self.save(engine.snapshot())
