"""
Daily readiness evaluation.

A readiness score in [0, 100] comes from an external wellness service
when one is available for the day (or a recent prior day). Otherwise it
is estimated from device health data: each of sleep, resting heart rate
and HRV is compared with its trailing baseline and mapped onto a 50-point
neutral scale, and the available components are averaged.

The component weights are policy, not physiology; they are overridable
through policy.yaml.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Sequence

from .config import (
    READINESS_BASELINE_DAYS,
    READINESS_HIGH_ABOVE,
    READINESS_HRV_POINTS_PER_MS,
    READINESS_LOW_BELOW,
    READINESS_NEUTRAL_SCORE,
    READINESS_RHR_POINTS_PER_BPM,
    READINESS_SLEEP_POINTS_PER_HOUR,
    READINESS_WELLNESS_LOOKBACK_DAYS,
)
from .models import DailyHealthRecord, ReadinessSnapshot, WellnessScoreDay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadinessThresholds:
    """Band edges: score < low_below is low, score > high_above is high."""

    low_below: float = READINESS_LOW_BELOW
    high_above: float = READINESS_HIGH_ABOVE

    def __post_init__(self) -> None:
        if not 0 <= self.low_below <= self.high_above <= 100:
            raise ValueError("thresholds must satisfy 0 ≤ low_below ≤ high_above ≤ 100")


@dataclass(frozen=True)
class ReadinessWeights:
    """Points per unit of deviation from baseline for each health signal."""

    sleep_points_per_hour: float = READINESS_SLEEP_POINTS_PER_HOUR
    rhr_points_per_bpm: float = READINESS_RHR_POINTS_PER_BPM
    hrv_points_per_ms: float = READINESS_HRV_POINTS_PER_MS
    baseline_days: int = READINESS_BASELINE_DAYS
    wellness_lookback_days: int = READINESS_WELLNESS_LOOKBACK_DAYS

    def __post_init__(self) -> None:
        if self.baseline_days < 1:
            raise ValueError("baseline_days must be positive")
        if self.wellness_lookback_days < 0:
            raise ValueError("wellness_lookback_days must be non-negative")


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def band_for_score(score: float, thresholds: ReadinessThresholds | None = None) -> str:
    """Map a 0–100 score onto low / moderate / high."""
    thresholds = thresholds or ReadinessThresholds()
    if score < thresholds.low_below:
        return "low"
    if score > thresholds.high_above:
        return "high"
    return "moderate"


def _wellness_score(
    wellness_scores: Sequence[WellnessScoreDay],
    on: date,
    lookback_days: int,
) -> float | None:
    """Readiness sub-score for the day, or the nearest prior one in the lookback."""
    earliest = on - timedelta(days=lookback_days)
    best: WellnessScoreDay | None = None
    for day in wellness_scores:
        if day.readiness_score is None or not earliest <= day.day <= on:
            continue
        if best is None or day.day > best.day:
            best = day
    return best.readiness_score if best is not None else None


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def _component(current: float | None, baseline: float | None, points: float, invert: bool = False) -> float | None:
    if current is None or baseline is None:
        return None
    delta = current - baseline
    if invert:
        delta = -delta
    return clamp_score(READINESS_NEUTRAL_SCORE + delta * points)


def _delta(current: float | None, baseline: float | None) -> float | None:
    if current is None or baseline is None:
        return None
    return current - baseline


def evaluate_readiness(
    daily_health: Sequence[DailyHealthRecord],
    wellness_scores: Sequence[WellnessScoreDay],
    on: date,
    thresholds: ReadinessThresholds | None = None,
    weights: ReadinessWeights | None = None,
) -> ReadinessSnapshot:
    """
    Readiness snapshot for a day. Always returns a snapshot.

    Args:
        daily_health: Device health records, any order
        wellness_scores: External wellness scores, any order
        on: Day to evaluate
        thresholds: Band edges
        weights: Fallback component weights and windows

    Returns:
        ReadinessSnapshot; source "wellness", "health", or "none" with a
        neutral score of 50 when no signal exists
    """
    thresholds = thresholds or ReadinessThresholds()
    weights = weights or ReadinessWeights()

    wellness = _wellness_score(wellness_scores, on, weights.wellness_lookback_days)
    if wellness is not None:
        score = clamp_score(wellness)
        band = band_for_score(score, thresholds)
        return ReadinessSnapshot(
            day=on,
            score=score,
            band=band,  # type: ignore[arg-type]
            source="wellness",
        )

    current: DailyHealthRecord | None = None
    baseline_start = on - timedelta(days=weights.baseline_days)
    lookback: list[DailyHealthRecord] = []
    for record in sorted(daily_health, key=lambda r: r.day):
        if record.day == on:
            current = record
        elif baseline_start <= record.day < on:
            lookback.append(record)

    baseline_sleep = _mean([r.sleep_hours for r in lookback if r.sleep_hours is not None])
    baseline_rhr = _mean([r.resting_heart_rate for r in lookback if r.resting_heart_rate is not None])
    baseline_hrv = _mean([r.heart_rate_variability for r in lookback if r.heart_rate_variability is not None])

    sleep = current.sleep_hours if current else None
    rhr = current.resting_heart_rate if current else None
    hrv = current.heart_rate_variability if current else None

    components = [
        c
        for c in (
            _component(sleep, baseline_sleep, weights.sleep_points_per_hour),
            _component(rhr, baseline_rhr, weights.rhr_points_per_bpm, invert=True),
            _component(hrv, baseline_hrv, weights.hrv_points_per_ms),
        )
        if c is not None
    ]

    if components:
        score = clamp_score(sum(components) / len(components))
        source = "health"
    else:
        logger.debug("No readiness signal for %s; using neutral score", on)
        score = READINESS_NEUTRAL_SCORE
        source = "none"

    band = band_for_score(score, thresholds) if components else "moderate"
    return ReadinessSnapshot(
        day=on,
        score=score,
        band=band,  # type: ignore[arg-type]
        source=source,  # type: ignore[arg-type]
        sleep_hours=sleep,
        resting_heart_rate_delta=_delta(rhr, baseline_rhr),
        hrv_delta=_delta(hrv, baseline_hrv),
    )
