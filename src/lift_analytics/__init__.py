"""Workout analytics and adaptive training programs."""

__version__ = "0.1.0"
