"""Trend, forecast, confidence and seasonality over short numeric series.

Pure functions, no DB or I/O.  Series are ordered oldest first and are
expected to hold a handful of periodic samples (weeks or months), so
everything here is plain arithmetic rather than a statistics library.
"""

from __future__ import annotations

import logging
import math

from clinic_insights.analytics.models import SeasonalityResult, TimeSeriesPoint, TrendResult

logger = logging.getLogger(__name__)

STABLE_SLOPE = 0.1
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95
MAX_DATA_BONUS = 0.2
DATA_BONUS_PER_POINT = 0.05


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean_and_std(values: list[float]) -> tuple[float, float]:
    """Mean and population standard deviation."""
    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    return mean, math.sqrt(variance)


# ---------------------------------------------------------------------------
# 1. calculate_trend
# ---------------------------------------------------------------------------


def calculate_trend(series: list[float]) -> TrendResult:
    """Least-squares slope of value against index 0..n-1.

    Fewer than two points yields a flat ``stable`` trend.
    """
    n = len(series)
    if n < 2:
        return TrendResult(slope=0.0, direction="stable")

    sum_x = n * (n - 1) / 2
    sum_y = sum(series)
    sum_xy = sum(i * y for i, y in enumerate(series))
    sum_xx = sum(i * i for i in range(n))

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)

    if slope > STABLE_SLOPE:
        direction = "up"
    elif slope < -STABLE_SLOPE:
        direction = "down"
    else:
        direction = "stable"

    return TrendResult(slope=slope, direction=direction)


# ---------------------------------------------------------------------------
# 2. predict_next_period
# ---------------------------------------------------------------------------


def predict_next_period(series: list[float], periods_ahead: int = 1) -> int:
    """Weighted moving average (later points weigh more) plus trend adjustment.

    Returns a non-negative integer; an empty series predicts 0.
    """
    if not series:
        return 0

    total_weight = len(series) * (len(series) + 1) / 2
    weighted_average = sum(v * (i + 1) for i, v in enumerate(series)) / total_weight

    adjustment = calculate_trend(series).slope * periods_ahead

    return max(0, _round_half_up(weighted_average + adjustment))


# ---------------------------------------------------------------------------
# 3. calculate_confidence
# ---------------------------------------------------------------------------


def calculate_confidence(series: list[float]) -> float:
    """Confidence in [0.3, 0.95]: lower variability and more samples raise it."""
    n = len(series)
    if n < 3:
        return MIN_CONFIDENCE

    mean, std = _mean_and_std(series)
    if mean == 0:
        logger.debug("Zero-mean series of %d points, confidence floored", n)
        return MIN_CONFIDENCE

    cv = std / mean
    base_confidence = max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, 1 - cv))
    data_bonus = min(MAX_DATA_BONUS, n * DATA_BONUS_PER_POINT)

    return min(MAX_CONFIDENCE, base_confidence + data_bonus)


# ---------------------------------------------------------------------------
# 4. detect_seasonality
# ---------------------------------------------------------------------------


def detect_seasonality(history: list[TimeSeriesPoint]) -> SeasonalityResult:
    """Flag variability in lead volume via the coefficient of variation.

    CV > 0.2 counts as seasonal; the pattern is ``high_variation`` above 0.3
    and ``moderate_variation`` otherwise.  All-zero lead history has no
    variation to speak of.
    """
    if len(history) < 4:
        return SeasonalityResult(has_seasonality=False, pattern="insufficient_data")

    mean, std = _mean_and_std([p.leads for p in history])
    if mean == 0:
        logger.debug("Lead history is all zero, treating variation as none")
        cv = 0.0
    else:
        cv = std / mean

    return SeasonalityResult(
        has_seasonality=cv > 0.2,
        pattern="high_variation" if cv > 0.3 else "moderate_variation",
    )
