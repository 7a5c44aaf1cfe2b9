"""
YAML → typed policy loader.

Loads readiness and load-adjustment policy from policy.yaml (bundled with
the package) and optionally merges user overrides from
~/.lift-analytics/policy.yaml.

Usage:
    from lift_analytics.core.engine.config_loader import load_policy_config
    cfg = load_policy_config()
    low_below = cfg.get("readiness", {}).get("low_below", 40.0)

If the bundled YAML cannot be parsed, all lookups return the Python defaults
from config.py (no crash). If the user override file exists but has parse
errors, a warning is issued and the file is ignored.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path
from typing import Any

import yaml

from ..adaptation import LoadPolicy
from ..models import ProgressionRule
from ..readiness import ReadinessThresholds, ReadinessWeights

APP_DIR_NAME = ".lift-analytics"

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def load_yaml_file(path: Path, warn: bool = False) -> dict[str, Any]:
    """Load a single YAML mapping; return {} when unreadable or not a mapping."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        if warn:
            warnings.warn(f"lift-analytics: ignoring {path} ({exc})", stacklevel=2)
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def user_config_dir() -> Path:
    """~/.lift-analytics, honouring $HOME."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / APP_DIR_NAME


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled policy.yaml, or None if not found."""
    # config_loader.py lives at src/lift_analytics/core/engine/config_loader.py
    candidate = Path(__file__).parent.parent.parent / "policy.yaml"
    return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.lift-analytics/policy.yaml if it exists, else None."""
    p = user_config_dir() / "policy.yaml"
    return p if p.exists() else None


def load_policy_config(user_path: Path | None = None) -> dict[str, Any]:
    """
    Load and merge policy configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/lift_analytics/policy.yaml
    2. User override (user_path, default ~/.lift-analytics/policy.yaml)

    Returns:
        Merged dict of config sections. Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = deep_merge(config, load_yaml_file(bundled))

    user = user_path if user_path is not None else get_user_yaml_path()
    if user is not None and user.exists():
        user_cfg = load_yaml_file(user, warn=True)
        if user_cfg:
            config = deep_merge(config, user_cfg)

    return config


def _section(config: dict[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    raw = config.get(name) or {}
    if not isinstance(raw, dict):
        warnings.warn(f"lift-analytics: policy section '{name}' is not a mapping", stacklevel=3)
        return {}
    unknown = set(raw) - allowed
    if unknown:
        warnings.warn(
            f"lift-analytics: unknown keys in policy section '{name}': {sorted(unknown)}",
            stacklevel=3,
        )
    return {k: v for k, v in raw.items() if k in allowed}


def _build(cls, config: dict[str, Any], name: str):
    fields = set(cls.__dataclass_fields__)
    values = _section(config, name, fields)
    try:
        return cls(**values)
    except (TypeError, ValueError) as exc:
        warnings.warn(
            f"lift-analytics: invalid policy section '{name}' ({exc}); using defaults",
            stacklevel=3,
        )
        return cls()


def readiness_thresholds(config: dict[str, Any] | None = None) -> ReadinessThresholds:
    """ReadinessThresholds from the 'readiness' section."""
    cfg = load_policy_config() if config is None else config
    return _build(ReadinessThresholds, cfg, "readiness")


def readiness_weights(config: dict[str, Any] | None = None) -> ReadinessWeights:
    """ReadinessWeights from the 'readiness_weights' section."""
    cfg = load_policy_config() if config is None else config
    return _build(ReadinessWeights, cfg, "readiness_weights")


def load_policy(config: dict[str, Any] | None = None) -> LoadPolicy:
    """LoadPolicy from the 'load_adjustment' section."""
    cfg = load_policy_config() if config is None else config
    return _build(LoadPolicy, cfg, "load_adjustment")


def progression_rule(config: dict[str, Any] | None = None, weight_increment: float | None = None) -> ProgressionRule:
    """ProgressionRule from the 'progression' section; weight_increment wins if given."""
    cfg = load_policy_config() if config is None else config
    rule = _build(ProgressionRule, cfg, "progression")
    if weight_increment is not None and weight_increment > 0:
        rule.weight_increment = weight_increment
    return rule
