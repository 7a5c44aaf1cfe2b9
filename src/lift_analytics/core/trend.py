"""
Least-squares trend estimation.

Trends are fitted over the sample index (0..n-1) rather than calendar
days, so irregular logging does not distort the slope of a progress
series. The generic regression works on arbitrary (x, y) pairs.
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from .config import TREND_DECLINING, TREND_FLAT, TREND_FLAT_THRESHOLD, TREND_IMPROVING
from .models import TrendPoint

_DEGENERATE_DENOMINATOR = 1e-9


@dataclass(frozen=True)
class TrendFit:
    """Fitted line over an ordered series and its endpoints."""

    slope: float  # change per sample
    intercept: float
    start: TrendPoint
    end: TrendPoint
    direction: str

    @property
    def change(self) -> float:
        """Fitted change from first to last sample."""
        return self.end.value - self.start.value


@dataclass(frozen=True)
class RegressionResult:
    """Ordinary least squares fit y = intercept + slope·x."""

    slope: float
    intercept: float
    r_squared: float
    residual_std: float
    n: int

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


def classify_slope(
    slope: float,
    scale: float = 1.0,
    threshold: float = TREND_FLAT_THRESHOLD,
) -> str:
    """
    Classify a slope as improving, declining, or flat.

    The flat band is threshold × max(|scale|, 1), so a 0.5 kg/session drift
    on a 100 kg lift counts as flat while the same drift on 5 reps does not.

    Args:
        slope: Change per sample
        scale: Typical magnitude of the series
        threshold: Relative flat band

    Returns:
        "improving", "declining" or "flat"
    """
    band = threshold * max(abs(scale), 1.0)
    if abs(slope) <= band:
        return TREND_FLAT
    return TREND_IMPROVING if slope > 0 else TREND_DECLINING


def _least_squares(xs: Sequence[float], ys: Sequence[float]) -> tuple[float, float] | None:
    """Closed-form (slope, intercept), or None for a degenerate x spread."""
    n = len(xs)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_x2 = sum(x * x for x in xs)

    denominator = n * sum_x2 - sum_x**2
    if abs(denominator) <= _DEGENERATE_DENOMINATOR:
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def fit_trend(points: Sequence[tuple[date, float]]) -> TrendFit | None:
    """
    Fit a linear trend to an ordered (date, value) series.

    x is the sample index; the start point is the fitted value at index 0
    on the first date and the end point the fitted value at n-1 on the
    last date.

    Args:
        points: Series in chronological order

    Returns:
        TrendFit, or None for fewer than two points
    """
    n = len(points)
    if n < 2:
        return None

    xs = [float(i) for i in range(n)]
    ys = [float(v) for _, v in points]
    fitted = _least_squares(xs, ys)
    if fitted is None:
        return None
    slope, intercept = fitted

    scale = sum(abs(y) for y in ys) / n
    return TrendFit(
        slope=slope,
        intercept=intercept,
        start=TrendPoint(date=points[0][0], value=intercept),
        end=TrendPoint(date=points[-1][0], value=slope * (n - 1) + intercept),
        direction=classify_slope(slope, scale=scale),
    )


def linear_regression(pairs: Sequence[tuple[float, float]]) -> RegressionResult | None:
    """
    Ordinary least squares over (x, y) pairs.

    Returns:
        RegressionResult with r² and residual standard deviation, or None
        for fewer than two points or when all x values coincide
    """
    n = len(pairs)
    if n < 2:
        return None

    xs = [float(x) for x, _ in pairs]
    ys = [float(y) for _, y in pairs]
    fitted = _least_squares(xs, ys)
    if fitted is None:
        return None
    slope, intercept = fitted

    mean_y = sum(ys) / n
    ss_tot = sum((y - mean_y) ** 2 for y in ys)
    ss_res = sum((y - (intercept + slope * x)) ** 2 for x, y in zip(xs, ys))
    r_squared = 1.0 if ss_tot == 0 else max(0.0, 1.0 - ss_res / ss_tot)
    residual_std = math.sqrt(ss_res / (n - 2)) if n > 2 else 0.0

    return RegressionResult(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        residual_std=residual_std,
        n=n,
    )
