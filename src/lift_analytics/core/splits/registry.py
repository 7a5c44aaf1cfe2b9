"""
Split registry.

All supported splits are registered here. Use get_split() to look up a
SplitTemplate by its split_id string.

Splits are loaded from per-split YAML files in the bundled
``src/lift_analytics/splits/`` directory at import time. If none can be
loaded, a RuntimeError is raised: plans cannot be generated without
templates.
"""

from .base import SplitTemplate


def _build_registry() -> dict[str, SplitTemplate]:
    from .loader import load_splits_from_yaml

    loaded = load_splits_from_yaml()
    if not loaded:
        raise RuntimeError(
            "lift-analytics: no split templates could be loaded from YAML. "
            "Check that src/lift_analytics/splits/*.yaml files are present and valid."
        )
    return loaded


SPLIT_REGISTRY: dict[str, SplitTemplate] = _build_registry()


def get_split(split_id: str) -> SplitTemplate:
    """
    Return the SplitTemplate for the given split_id.

    Args:
        split_id: One of "full_body", "upper_lower", "push_pull_legs"

    Returns:
        SplitTemplate for the requested split

    Raises:
        ValueError: If split_id is not in the registry
    """
    if split_id not in SPLIT_REGISTRY:
        valid = ", ".join(SPLIT_REGISTRY)
        raise ValueError(f"Unknown split '{split_id}'. Valid IDs: {valid}")
    return SPLIT_REGISTRY[split_id]
