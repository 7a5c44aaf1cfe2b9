"""
Rolling window comparison.

Compares a trailing window of W days against the W days immediately
before it. The previous interval is half-open so a session exactly on
the boundary belongs to the current window only.
"""

import logging
from datetime import datetime, timedelta
from typing import Sequence

from .config import (
    DEFAULT_CHANGE_WINDOW_DAYS,
    METRIC_AVG_DURATION,
    METRIC_SESSIONS,
    METRIC_TOTAL_VOLUME,
)
from .metrics import session_duration_minutes
from .models import ChangeMetric, ChangeMetricWindow, DateInterval, Session
from .trend import classify_slope

logger = logging.getLogger(__name__)


def window_label(window_days: int) -> str:
    """Short label for a window length."""
    if window_days <= 14:
        return "Last 2w"
    if window_days <= 28:
        return "Last 4w"
    return f"Last {window_days}d"


def change_window(end: datetime, window_days: int) -> ChangeMetricWindow:
    """
    Build the two comparison intervals ending at a reference time.

    current = [end − W, end], previous = [end − 2W, end − W).
    """
    span = timedelta(days=window_days)
    current_start = end - span
    return ChangeMetricWindow(
        label=window_label(window_days),
        current=DateInterval(start=current_start, end=end, include_end=True),
        previous=DateInterval(start=current_start - span, end=current_start, include_end=False),
    )


def sessions_in(history: Sequence[Session], interval: DateInterval) -> list[Session]:
    """Sessions whose start time falls inside the interval."""
    return [s for s in history if interval.contains(s.started_at)]


def rolling_change_window(
    history: Sequence[Session],
    window_days: int = DEFAULT_CHANGE_WINDOW_DAYS,
    now: datetime | None = None,
) -> ChangeMetricWindow | None:
    """
    Window ending at now (default: latest session start).

    Returns:
        The window when both intervals contain at least one session,
        otherwise None (insufficient data)
    """
    if not history or window_days <= 0:
        return None

    end = now if now is not None else max(s.started_at for s in history)
    window = change_window(end, window_days)

    if not sessions_in(history, window.current) or not sessions_in(history, window.previous):
        logger.debug("No %d-day comparison: one half of the window is empty", window_days)
        return None
    return window


def percent_change(current: float, previous: float) -> float | None:
    """(current − previous) / previous as a fraction; None when previous is 0."""
    if previous == 0:
        return None
    return (current - previous) / previous


def make_change_metric(title: str, current: float, previous: float) -> ChangeMetric:
    delta = current - previous
    return ChangeMetric(
        title=title,
        current=current,
        previous=previous,
        delta=delta,
        percent_change=percent_change(current, previous),
        direction=classify_slope(delta, scale=previous),
    )


def _average_duration(sessions: Sequence[Session]) -> float:
    known = [d for d in (session_duration_minutes(s) for s in sessions) if d is not None]
    if not known:
        return 0.0
    return sum(known) / len(known)


def change_metrics(history: Sequence[Session], window: ChangeMetricWindow) -> list[ChangeMetric]:
    """
    Sessions, Total Volume and Avg Duration compared across a window.

    Accepts any window, including ones with an empty half: an empty
    previous half yields previous 0, delta = current and no percentage.
    """
    current = sorted(sessions_in(history, window.current), key=lambda s: s.started_at)
    previous = sorted(sessions_in(history, window.previous), key=lambda s: s.started_at)

    return [
        make_change_metric(METRIC_SESSIONS, float(len(current)), float(len(previous))),
        make_change_metric(
            METRIC_TOTAL_VOLUME,
            sum(s.total_volume for s in current),
            sum(s.total_volume for s in previous),
        ),
        make_change_metric(METRIC_AVG_DURATION, _average_duration(current), _average_duration(previous)),
    ]


def change_metrics_for_days(
    history: Sequence[Session],
    window_days: int = DEFAULT_CHANGE_WINDOW_DAYS,
    now: datetime | None = None,
) -> list[ChangeMetric]:
    """Change metrics over the rolling window, or [] when none exists."""
    window = rolling_change_window(history, window_days, now)
    if window is None:
        return []
    return change_metrics(history, window)
