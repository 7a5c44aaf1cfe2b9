"""
Training split templates for lift-analytics.

Each split is described by a SplitTemplate whose day templates drive
program generation.
"""

from .base import DayTemplate, FallbackExercise, SplitTemplate
from .registry import SPLIT_REGISTRY, get_split

__all__ = [
    "DayTemplate",
    "FallbackExercise",
    "SplitTemplate",
    "SPLIT_REGISTRY",
    "get_split",
]
