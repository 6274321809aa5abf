"""Analytics engine facade.

``AnalyticsEngine`` groups the pure analytics functions behind one
stateless object for callers that prefer a service to a module of
functions.  ``analyze`` runs everything the advanced analytics page needs
in one call, and ``format_analytics_report`` renders the result as text.
"""

from __future__ import annotations

import logging

from clinic_insights.analytics import benchmarking, insight_rules, predictions, trend_analysis
from clinic_insights.analytics.models import (
    AnalyticsReport,
    Benchmark,
    Correlation,
    Insight,
    Prediction,
    SeasonalityResult,
    StatsSnapshot,
    TimeSeriesPoint,
    TrendResult,
    coerce_history,
    coerce_stats,
)

logger = logging.getLogger(__name__)

_TREND_ARROWS = {"up": "↑", "down": "↓", "stable": "→"}


class AnalyticsEngine:
    """Stateless entry point to the analytics functions."""

    def calculate_trend(self, series: list[float]) -> TrendResult:
        return trend_analysis.calculate_trend(series)

    def predict_next_period(self, series: list[float], periods_ahead: int = 1) -> int:
        return trend_analysis.predict_next_period(series, periods_ahead)

    def calculate_confidence(self, series: list[float]) -> float:
        return trend_analysis.calculate_confidence(series)

    def detect_seasonality(self, history: list[TimeSeriesPoint] | list[dict]) -> SeasonalityResult:
        return trend_analysis.detect_seasonality(coerce_history(history))

    def generate_insights(self, stats, history) -> list[Insight]:
        return insight_rules.generate_insights(stats, history)

    def generate_predictions(self, stats, history) -> list[Prediction]:
        return predictions.generate_predictions(stats, history)

    def generate_benchmarks(self, stats, overrides: dict[str, float] | None = None) -> list[Benchmark]:
        return benchmarking.generate_benchmarks(stats, overrides)

    def find_correlations(self, stats) -> list[Correlation]:
        return benchmarking.find_correlations(stats)

    def analyze(
        self,
        stats: StatsSnapshot | dict,
        history: list[TimeSeriesPoint] | list[dict] | None,
        benchmarks: dict[str, float] | None = None,
    ) -> AnalyticsReport:
        """Run predictions, insights, benchmarks, correlations and seasonality."""
        stats = coerce_stats(stats)
        history = coerce_history(history)
        report = AnalyticsReport(
            predictions=predictions.generate_predictions(stats, history),
            insights=insight_rules.generate_insights(stats, history),
            benchmarks=benchmarking.generate_benchmarks(stats, benchmarks),
            correlations=benchmarking.find_correlations(stats),
            seasonality=trend_analysis.detect_seasonality(history),
        )
        logger.debug(
            "Analysis over %d periods: %d predictions, %d insights",
            len(history), len(report.predictions), len(report.insights),
        )
        return report


engine = AnalyticsEngine()


def analyze(
    stats: StatsSnapshot | dict,
    history: list[TimeSeriesPoint] | list[dict] | None,
    benchmarks: dict[str, float] | None = None,
) -> AnalyticsReport:
    return engine.analyze(stats, history, benchmarks)


def format_analytics_report(report: AnalyticsReport) -> str:
    """Render an ``AnalyticsReport`` as a plain-text summary."""
    sections: list[str] = []

    if report.predictions:
        lines = ["=== Previsões ==="]
        for p in report.predictions:
            lines.append(
                f"  {p.metric}: {p.current_value:g} -> {p.predicted_value} "
                f"{_TREND_ARROWS.get(p.trend, '')} (confiança {p.confidence * 100:.0f}%)"
            )
        sections.append("\n".join(lines))

    if report.insights:
        lines = ["=== Insights ==="]
        for i in report.insights:
            lines.append(f"  [{i.priority.upper()}] {i.title} (impacto {i.impact})")
            lines.append(f"    {i.description}")
            lines.append(f"    Ação: {i.action}")
        sections.append("\n".join(lines))

    if report.benchmarks:
        lines = ["=== Benchmarks ==="]
        for b in report.benchmarks:
            lines.append(f"  {b.metric}: {b.current:g} vs {b.benchmark:g} ({b.status})")
        sections.append("\n".join(lines))

    if report.correlations:
        lines = ["=== Correlações ==="]
        for c in report.correlations:
            lines.append(f"  {c.factor}: {c.correlation} (força {c.strength})")
        sections.append("\n".join(lines))

    if report.seasonality.pattern != "insufficient_data":
        flag = "sim" if report.seasonality.has_seasonality else "não"
        sections.append(
            f"=== Sazonalidade ===\n  {report.seasonality.pattern} (sazonal: {flag})"
        )

    if not sections:
        return "Dados insuficientes para análise."

    return "\n\n".join(sections)
