# trends.py
"""
Time series analysis for projected or historical series.

Works on plain numbers or DataPoint(date, value) sequences and knows nothing
about regions or domains. Everything here is deterministic; guarded edge
cases (empty series, zero variance, single points) return documented
degenerate values instead of raising.
"""
from __future__ import annotations

import datetime as dt
import logging
import math
from collections import OrderedDict
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from models import (
    AccuracyMetrics,
    Anomaly,
    DailyResult,
    DataPoint,
    ForecastPoint,
    ForecastResult,
    GrowthRateResult,
    MovingAverageResult,
    RegressionResult,
    Severity,
    TrendReport,
)

log = logging.getLogger(__name__)

TREND_DEAD_BAND = 0.01
Z_95 = 1.96
Z_99 = 2.576


def moving_average(values: Sequence[float], window: int = 7) -> MovingAverageResult:
    """SMA (NaN until the window fills) and EMA seeded with the first value.

    Each SMA window is summed left to right and the EMA is evaluated as
    alpha * v + (1 - alpha) * previous, term by term, so every entry is
    bit-identical to the plain recurrences.
    """
    if window < 1:
        raise ValueError("window must be >= 1")
    v = np.asarray(values, dtype=float).tolist()
    if not v:
        return MovingAverageResult(simple=[], exponential=[])

    simple = [math.nan] * len(v)
    for i in range(window - 1, len(v)):
        total = 0.0
        for x in v[i - window + 1:i + 1]:
            total += x
        simple[i] = total / window

    exponential = _smooth(v, 2.0 / (window + 1))
    return MovingAverageResult(simple=simple, exponential=exponential)


def growth_rate(values: Sequence[float]) -> GrowthRateResult:
    v = [float(x) for x in values]
    if len(v) < 2:
        return GrowthRateResult(overall=0.0, period_over_period=[], average_daily=0.0, trend_direction="stable")

    overall = (v[-1] - v[0]) / v[0] if v[0] != 0 else 0.0
    pop = [(v[i] - v[i - 1]) / v[i - 1] if v[i - 1] != 0 else 0.0 for i in range(1, len(v))]
    average = sum(pop) / len(pop)

    direction = "stable"
    if abs(average) > TREND_DEAD_BAND:
        direction = "increasing" if average > 0 else "decreasing"
    return GrowthRateResult(overall=overall, period_over_period=pop, average_daily=average, trend_direction=direction)


def detect_anomalies(points: Sequence[DataPoint], threshold: float = 2.0) -> List[Anomaly]:
    """Z-score outliers against the whole-series (population) mean and std."""
    if len(points) < 3:
        return []
    values = np.array([p.value for p in points], dtype=float)
    mean = float(values.mean())
    std = float(values.std())  # ddof=0
    if std == 0:
        return []

    anomalies: List[Anomaly] = []
    for p, x in zip(points, values):
        z = (float(x) - mean) / std
        if abs(z) <= threshold:
            continue
        if abs(z) > threshold * 2:
            severity = Severity.HIGH
        elif abs(z) > threshold * 1.5:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW
        anomalies.append(Anomaly(
            date=p.date,
            value=float(x),
            expected=mean,
            deviation=float(x) - mean,
            z_score=z,
            severity=severity,
        ))
    return anomalies


def linear_regression(values: Sequence[float]) -> RegressionResult:
    """Ordinary least squares of value on index."""
    y = np.asarray(values, dtype=float)
    n = len(y)
    if n < 2:
        return RegressionResult(slope=0.0, intercept=0.0, r_squared=0.0, predictions=y.tolist(), equation="y = 0")

    x = np.arange(n, dtype=float)
    dx = x - x.mean()
    slope = float(np.dot(dx, y - y.mean()) / np.dot(dx, dx))
    intercept = float(y.mean() - slope * x.mean())
    predictions = slope * x + intercept

    if n == 2:
        # two points are always fit exactly
        r_squared = 1.0
    else:
        ss_tot = float(np.sum((y - y.mean()) ** 2))
        ss_res = float(np.sum((y - predictions) ** 2))
        r_squared = 1.0 - ss_res / ss_tot if ss_tot != 0 else 0.0

    return RegressionResult(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        predictions=predictions.tolist(),
        equation=f"y = {slope:.2f}x + {intercept:.2f}",
    )


# ---------------------------------
# Forecasting
# ---------------------------------

def _smooth(values: Sequence[float], alpha: float) -> List[float]:
    smoothed = [values[0]]
    for v in values[1:]:
        smoothed.append(alpha * v + (1 - alpha) * smoothed[-1])
    return smoothed

def _mae(actual: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.mean(np.abs(actual - predicted)))

def _rmse(actual: np.ndarray, predicted: np.ndarray) -> float:
    return float(np.sqrt(np.mean((actual - predicted) ** 2)))

def _mape(actual: np.ndarray, predicted: np.ndarray) -> float:
    mask = actual != 0
    if not mask.any():
        return 0.0
    return float(np.mean(np.abs((actual[mask] - predicted[mask]) / actual[mask])) * 100.0)

def _standard_error(actual: np.ndarray, predicted: np.ndarray) -> float:
    n = len(actual)
    if n < 2:
        return 0.0
    return float(np.sqrt(np.sum((actual - predicted) ** 2) / (n - 1)))


def exponential_smoothing(points: Sequence[DataPoint], periods: int = 7, alpha: float = 0.3) -> ForecastResult:
    """
    Single exponential smoothing plus a linear trend on the smoothed series.

    Forecast i steps ahead is last_smoothed + slope * i, floored at 0. The
    95 % band has half-width 1.96 * se * sqrt(i); when the floor at 0 would
    cut it, the band is shifted up to [0, 2 * half-width] so its width never
    shrinks as the horizon grows. Accuracy metrics describe the in-sample fit
    of the smoothed series, not out-of-sample error.
    """
    if len(points) < 2:
        return ForecastResult(predictions=[], accuracy_metrics=AccuracyMetrics())

    values = [float(p.value) for p in points]
    smoothed = _smooth(values, alpha)
    slope = linear_regression(smoothed).slope
    actual = np.asarray(values)
    fitted = np.asarray(smoothed)
    se = _standard_error(actual, fitted)

    last_date = points[-1].date
    if isinstance(last_date, str):
        last_date = dt.date.fromisoformat(last_date[:10])
    last = smoothed[-1]
    predictions: List[ForecastPoint] = []
    for i in range(1, periods + 1):
        value = max(0.0, last + slope * i)
        margin = Z_95 * se * math.sqrt(i)
        lower = value - margin
        if lower < 0:
            band = (0.0, 2 * margin)
        else:
            band = (lower, value + margin)
        predictions.append(ForecastPoint(date=last_date + dt.timedelta(days=i), value=value, confidence_interval=band))

    return ForecastResult(
        predictions=predictions,
        accuracy_metrics=AccuracyMetrics(
            mae=_mae(actual, fitted),
            rmse=_rmse(actual, fitted),
            mape=_mape(actual, fitted),
        ),
    )


def confidence_interval(
    predictions: Sequence[float],
    confidence: float = 0.95,
    historical: Sequence[float] = (),
) -> List[Tuple[float, float]]:
    if len(predictions) == 0:
        return []
    z = Z_99 if confidence == 0.99 else Z_95
    basis = np.asarray(historical if len(historical) > 0 else predictions, dtype=float)
    std = float(basis.std())
    out = []
    for i, pred in enumerate(predictions):
        margin = z * std * math.sqrt(i + 1)
        out.append((max(0.0, pred - margin), pred + margin))
    return out


# ---------------------------------
# Projection bridge
# ---------------------------------

def series_from_results(results: Iterable[DailyResult], field: str = "stress") -> List[DataPoint]:
    """Average one result field across regions per date, ordered by date."""
    by_date: "OrderedDict[dt.date, List[float]]" = OrderedDict()
    for r in results:
        value = getattr(r, field)
        if value is None:
            continue
        by_date.setdefault(r.date, []).append(float(value))
    return [DataPoint(date=d, value=sum(v) / len(v)) for d, v in sorted(by_date.items())]


def analyze_series(
    points: Sequence[DataPoint],
    window: int = 7,
    threshold: float = 2.0,
    periods: int = 7,
    alpha: float = 0.3,
) -> TrendReport:
    values = [p.value for p in points]
    log.debug("analyzing %d points (window=%d, periods=%d)", len(values), window, periods)
    return TrendReport(
        moving_average=moving_average(values, window),
        growth=growth_rate(values),
        anomalies=detect_anomalies(points, threshold),
        regression=linear_regression(values),
        forecast=exponential_smoothing(points, periods, alpha),
    )
