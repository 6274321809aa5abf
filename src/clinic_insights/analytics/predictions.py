"""Next-period predictions for leads, conversions and revenue."""

from __future__ import annotations

import logging

from clinic_insights.analytics.models import (
    Prediction,
    StatsSnapshot,
    TimeSeriesPoint,
    coerce_history,
)
from clinic_insights.analytics.trend_analysis import (
    calculate_confidence,
    calculate_trend,
    predict_next_period,
)

logger = logging.getLogger(__name__)

MIN_HISTORY = 3

# (metric label, TimeSeriesPoint field, reasoning); output follows this order
_METRICS: list[tuple[str, str, str]] = [
    ("Leads", "leads", "Baseado na tendência dos últimos {n} períodos"),
    ("Conversões", "conversions", "Baseado no histórico de conversões e sazonalidade"),
    ("Receita", "revenue", "Projeção baseada no ticket médio e conversões esperadas"),
]


def generate_predictions(
    stats: StatsSnapshot | dict | None,
    history: list[TimeSeriesPoint] | list[dict] | None,
) -> list[Prediction]:
    """Forecast each metric one period ahead.

    Needs at least three historical points; otherwise returns an empty
    list.  ``stats`` is accepted for symmetry with ``generate_insights``
    and does not affect the result.
    """
    history = coerce_history(history)
    if len(history) < MIN_HISTORY:
        logger.debug("Only %d history points, skipping predictions", len(history))
        return []

    predictions: list[Prediction] = []
    for label, attr, reasoning in _METRICS:
        series = [getattr(p, attr) for p in history]
        predictions.append(Prediction(
            metric=label,
            current_value=series[-1],
            predicted_value=predict_next_period(series),
            confidence=calculate_confidence(series),
            trend=calculate_trend(series).direction,
            reasoning=reasoning.format(n=len(series)),
        ))
    return predictions
