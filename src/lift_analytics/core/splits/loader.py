"""
YAML → SplitTemplate loader.

Loads split templates from individual YAML files in the bundled
``src/lift_analytics/splits/`` directory. Each file (e.g. upper_lower.yaml)
contains one split definition matching the SplitTemplate schema.

User overrides: place matching files in ``~/.lift-analytics/splits/``.
A user file is deep-merged over the bundled definition, so only changed
keys need to be listed. Lists (such as ``days``) are replaced wholesale.
"""

from __future__ import annotations

import warnings
from pathlib import Path

from ..engine.config_loader import deep_merge, load_yaml_file, user_config_dir
from .base import DayTemplate, FallbackExercise, SplitTemplate

_REQUIRED_SPLIT_FIELDS: frozenset[str] = frozenset({"split_id", "display_name", "days"})
_REQUIRED_DAY_FIELDS: frozenset[str] = frozenset({"title", "groups"})


def _fallback_from_raw(raw) -> FallbackExercise:
    if isinstance(raw, str):
        return FallbackExercise(name=raw)
    if not isinstance(raw, dict) or "name" not in raw:
        raise ValueError(f"fallback entry needs a name: {raw!r}")
    start = raw.get("start_kg")
    return FallbackExercise(name=str(raw["name"]), start_kg=float(start) if start is not None else None)


def day_from_dict(d: dict) -> DayTemplate:
    """Convert a raw dict to a DayTemplate, raising ValueError on missing fields."""
    missing = _REQUIRED_DAY_FIELDS - set(d)
    if missing:
        raise ValueError(f"DayTemplate missing fields: {sorted(missing)}")
    return DayTemplate(
        title=str(d["title"]),
        groups=tuple(str(g).lower() for g in d["groups"]),
        fallback=tuple(_fallback_from_raw(f) for f in d.get("fallback", [])),
    )


def split_from_dict(d: dict) -> SplitTemplate:
    """Convert a raw dict (from YAML) to a SplitTemplate.

    Raises ValueError if any required field is absent or no days are listed.
    """
    missing = _REQUIRED_SPLIT_FIELDS - set(d)
    if missing:
        raise ValueError(f"SplitTemplate missing fields: {sorted(missing)}")
    days = tuple(day_from_dict(day) for day in d["days"])
    if not days:
        raise ValueError("SplitTemplate needs at least one day")
    return SplitTemplate(
        split_id=str(d["split_id"]),
        display_name=str(d["display_name"]),
        days=days,
    )


def _get_bundled_splits_dir() -> Path | None:
    """Return path to the bundled splits/ data directory, or None if not found."""
    # loader.py lives at src/lift_analytics/core/splits/loader.py
    # three levels up → src/lift_analytics/
    candidate = Path(__file__).parent.parent.parent / "splits"
    return candidate if candidate.is_dir() else None


def _get_user_splits_dir() -> Path | None:
    """Return ~/.lift-analytics/splits/ if it exists, else None."""
    p = user_config_dir() / "splits"
    return p if p.is_dir() else None


def load_splits_from_yaml(
    bundled_dir: Path | None = None,
    user_dir: Path | None = None,
) -> dict[str, SplitTemplate] | None:
    """Return {split_id: SplitTemplate} loaded from per-split YAML files.

    Bundled files are deep-merged with a same-named user file when one
    exists. Invalid definitions are skipped with a warning.

    Returns None when nothing could be loaded.
    """
    bundled_dir = bundled_dir or _get_bundled_splits_dir()
    user_dir = user_dir or _get_user_splits_dir()

    if bundled_dir is None:
        return None

    result: dict[str, SplitTemplate] = {}
    for bundled_path in sorted(bundled_dir.glob("*.yaml")):
        raw = load_yaml_file(bundled_path)
        if not raw:
            continue
        if user_dir is not None:
            user_path = user_dir / bundled_path.name
            if user_path.exists():
                user_raw = load_yaml_file(user_path, warn=True)
                if user_raw:
                    raw = deep_merge(raw, user_raw)
        try:
            split = split_from_dict(raw)
        except (ValueError, TypeError) as exc:
            warnings.warn(
                f"lift-analytics: skipping split '{bundled_path.stem}' ({exc})",
                stacklevel=2,
            )
            continue
        result[split.split_id] = split

    return result if result else None
