"""
Numeric primitives shared by every analytics service.

All functions here are pure and stateless. Central tendency and dispersion
functions raise ValueError on empty input; callers guard against empty
sequences before invoking them.
"""

import math
from datetime import datetime
from typing import List, NamedTuple, Sequence

import numpy as np
from scipy import stats

from ..models import TrendDirection

OUTLIER_IQR_MULTIPLIER = 1.5
OUTLIER_MIN_POINTS = 5
TREND_SLOPE_THRESHOLD = 0.01


class TimeSeriesPoint(NamedTuple):
    timestamp: datetime
    value: float


class RegressionResult(NamedTuple):
    slope: float
    intercept: float
    r_squared: float


class TrendAnalysis(NamedTuple):
    trend: TrendDirection
    slope: float
    confidence: float


def _as_array(values: Sequence[float]) -> np.ndarray:
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        raise ValueError("Cannot compute statistics of an empty sequence")
    return data


def mean(values: Sequence[float]) -> float:
    return float(np.mean(_as_array(values)))


def median(values: Sequence[float]) -> float:
    return float(np.median(_as_array(values)))


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation."""
    return float(np.std(_as_array(values)))


def calculate_correlation(data1: Sequence[float], data2: Sequence[float]) -> float:
    """
    Pearson correlation coefficient between two equal-length sequences.

    Returns 0 when the sequences differ in length, have fewer than two
    points, or either one has zero variance.
    """
    if len(data1) != len(data2) or len(data1) < 2:
        return 0.0

    x = np.asarray(data1, dtype=float)
    y = np.asarray(data2, dtype=float)
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0

    correlation, _ = stats.pearsonr(x, y)
    if math.isnan(correlation):
        return 0.0
    return float(max(-1.0, min(1.0, correlation)))


def calculate_significance(sample_size: int, correlation: float) -> float:
    """
    Map a sample size and correlation strength to a 0-100 score.

    Uses the t statistic of the correlation with n - 2 degrees of freedom and
    reports (1 - two-sided p-value) as a percentage, so the score grows with
    both the sample size and |correlation|.
    """
    if sample_size < 3:
        return 0.0

    r = min(1.0, abs(correlation))
    if r == 0:
        return 0.0
    if r == 1.0:
        return 100.0

    degrees_of_freedom = sample_size - 2
    t_statistic = r * math.sqrt(degrees_of_freedom / (1.0 - r * r))
    p_value = 2.0 * stats.t.sf(t_statistic, degrees_of_freedom)
    return float(min(100.0, max(0.0, (1.0 - p_value) * 100.0)))


def detect_outliers(values: Sequence[float]) -> List[float]:
    """
    Values lying outside the Tukey fences (1.5 x IQR beyond the quartiles).

    Returns an empty list for fewer than five points or zero variance. Input
    order is preserved.
    """
    if len(values) < OUTLIER_MIN_POINTS:
        return []

    data = np.asarray(values, dtype=float)
    if np.ptp(data) == 0:
        return []

    q1, q3 = np.percentile(data, [25, 75])
    iqr = q3 - q1
    lower_bound = q1 - OUTLIER_IQR_MULTIPLIER * iqr
    upper_bound = q3 + OUTLIER_IQR_MULTIPLIER * iqr

    return [float(value) for value in data if value < lower_bound or value > upper_bound]


def linear_regression(x_values: Sequence[float], y_values: Sequence[float]) -> RegressionResult:
    """
    Least-squares fit of y on x.

    Degenerate inputs (fewer than two points, or constant x) resolve to a
    flat line through the mean with zero fit quality.
    """
    if len(x_values) != len(y_values):
        raise ValueError("x and y must have the same length")
    if len(x_values) == 0:
        return RegressionResult(0.0, 0.0, 0.0)

    x = np.asarray(x_values, dtype=float)
    y = np.asarray(y_values, dtype=float)
    if len(x) < 2 or np.ptp(x) == 0:
        return RegressionResult(0.0, float(np.mean(y)), 0.0)

    result = stats.linregress(x, y)
    r_value = 0.0 if math.isnan(result.rvalue) else float(result.rvalue)
    return RegressionResult(float(result.slope), float(result.intercept), r_value ** 2)


def analyze_time_series(points: Sequence[TimeSeriesPoint]) -> TrendAnalysis:
    """
    Fit a linear trend over chronologically ordered points.

    The regression uses the point index as x. Confidence combines the fit
    quality with the sample size: min(100, r^2 * 100 * log10(n + 1)).
    """
    if len(points) < 2:
        return TrendAnalysis("stable", 0.0, 0.0)

    ordered = sorted(points, key=lambda point: point.timestamp)
    values = [point.value for point in ordered]
    regression = linear_regression(range(len(values)), values)

    if abs(regression.slope) < TREND_SLOPE_THRESHOLD:
        trend = "stable"
    elif regression.slope > 0:
        trend = "increasing"
    else:
        trend = "decreasing"

    confidence = min(100.0, regression.r_squared * 100 * math.log10(len(values) + 1))
    return TrendAnalysis(trend, regression.slope, max(0.0, confidence))
