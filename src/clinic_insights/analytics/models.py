"""Value objects consumed and produced by the analytics engine.

Inputs (``StatsSnapshot``, ``TimeSeriesPoint``) are built by the data layer
from aggregate counts and sums.  Outputs (``Prediction``, ``Insight``,
``Benchmark``, ``Correlation``) are plain data meant to be rendered as
cards, charts or tables.  Nothing here is persisted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _safe_float(val) -> float | None:
    """Convert a value to float, returning None on failure."""
    if val is None:
        return None
    if isinstance(val, bool):
        return float(val)
    try:
        return float(str(val).replace(",", "").strip())
    except (TypeError, ValueError):
        return None


def _num(val) -> float:
    """Coerce to float, treating anything unparseable or non-finite as 0."""
    f = _safe_float(val)
    if f is None or not math.isfinite(f):
        return 0.0
    return f


def _count(val) -> int:
    return int(_num(val))


def _pick(data: dict, *keys: str, default=None):
    """Return the first present key (camelCase API keys or snake_case fields)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass
class TimeSeriesPoint:
    """One periodic sample of the business history (oldest first in a series)."""
    period: str
    leads: int = 0
    conversions: int = 0
    revenue: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> TimeSeriesPoint:
        return cls(
            period=str(_pick(data, "period", "date", default="")),
            leads=_count(data.get("leads")),
            conversions=_count(data.get("conversions")),
            revenue=_num(data.get("revenue")),
        )


@dataclass
class StageStats:
    count: int = 0
    value: float = 0.0


@dataclass
class FunnelStats:
    """Aggregate for one funnel, broken down by stage."""
    count: int = 0
    value: float = 0.0
    stages: dict[str, StageStats] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> FunnelStats:
        if not isinstance(data, dict):
            return cls()
        raw_stages = data.get("stages")
        stages: dict[str, StageStats] = {}
        if isinstance(raw_stages, dict):
            for name, stage in raw_stages.items():
                if not isinstance(stage, dict):
                    continue
                stages[str(name)] = StageStats(
                    count=_count(stage.get("count")),
                    value=_num(stage.get("value")),
                )
        return cls(
            count=_count(data.get("count")),
            value=_num(data.get("value")),
            stages=stages,
        )

    def stage_count(self, stage: str) -> int:
        s = self.stages.get(stage)
        return s.count if s is not None else 0


@dataclass
class StatsSnapshot:
    """Aggregate business stats for the current reporting window."""
    total_leads: int = 0
    total_clients: int = 0
    conversion_rate: float = 0.0  # percentage 0-100
    avg_pipeline_time: float = 0.0  # days
    clients_needing_reactivation: int = 0
    funnel_stats: dict[str, FunnelStats] = field(default_factory=dict)
    total_pipeline_value: float = 0.0
    total_revenue: float = 0.0

    @classmethod
    def from_dict(cls, data: dict | None) -> StatsSnapshot:
        """Build a snapshot from a loose mapping; bad or missing fields become 0."""
        if not data:
            return cls()
        raw_funnels = _pick(data, "funnelStats", "funnel_stats", default={})
        funnels: dict[str, FunnelStats] = {}
        if isinstance(raw_funnels, dict):
            funnels = {str(k): FunnelStats.from_dict(v) for k, v in raw_funnels.items()}
        return cls(
            total_leads=_count(_pick(data, "totalLeads", "total_leads")),
            total_clients=_count(_pick(data, "totalClients", "total_clients")),
            conversion_rate=_num(_pick(data, "conversionRate", "conversion_rate")),
            avg_pipeline_time=_num(_pick(data, "avgPipelineTime", "avg_pipeline_time")),
            clients_needing_reactivation=_count(
                _pick(data, "clientsNeedingReactivation", "clients_needing_reactivation")
            ),
            funnel_stats=funnels,
            total_pipeline_value=_num(_pick(data, "totalPipelineValue", "total_pipeline_value")),
            total_revenue=_num(_pick(data, "totalRevenue", "total_revenue")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalLeads": self.total_leads,
            "totalClients": self.total_clients,
            "totalPipelineValue": self.total_pipeline_value,
            "totalRevenue": self.total_revenue,
            "conversionRate": self.conversion_rate,
            "avgPipelineTime": self.avg_pipeline_time,
            "clientsNeedingReactivation": self.clients_needing_reactivation,
            "funnelStats": {
                name: {
                    "count": f.count,
                    "value": f.value,
                    "stages": {s: {"count": st.count, "value": st.value} for s, st in f.stages.items()},
                }
                for name, f in self.funnel_stats.items()
            },
        }


def coerce_history(history) -> list[TimeSeriesPoint]:
    """Accept points or dicts and return a list of ``TimeSeriesPoint``."""
    if not history:
        return []
    return [p if isinstance(p, TimeSeriesPoint) else TimeSeriesPoint.from_dict(p) for p in history]


def coerce_stats(stats) -> StatsSnapshot:
    if isinstance(stats, StatsSnapshot):
        return stats
    return StatsSnapshot.from_dict(stats)


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass
class TrendResult:
    slope: float
    direction: str  # up / down / stable


@dataclass
class SeasonalityResult:
    has_seasonality: bool
    pattern: str  # insufficient_data / moderate_variation / high_variation

    def to_dict(self) -> dict[str, Any]:
        return {"hasSeasonality": self.has_seasonality, "pattern": self.pattern}


@dataclass
class Prediction:
    """Next-period forecast for one metric."""
    metric: str
    current_value: float
    predicted_value: int
    confidence: float  # 0.3-0.95
    trend: str  # up / down / stable
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "currentValue": self.current_value,
            "predictedValue": self.predicted_value,
            "confidence": self.confidence,
            "trend": self.trend,
            "reasoning": self.reasoning,
        }


@dataclass
class Insight:
    """A prioritized, human-readable recommendation."""
    type: str  # warning / opportunity / info / success
    title: str
    description: str
    action: str
    priority: str  # high / medium / low
    impact: int  # 1-10

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "action": self.action,
            "priority": self.priority,
            "impact": self.impact,
        }


@dataclass
class Benchmark:
    metric: str
    current: float
    benchmark: float
    status: str  # above / below / on_target

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "current": self.current,
            "benchmark": self.benchmark,
            "status": self.status,
        }


@dataclass
class Correlation:
    factor: str
    correlation: str
    strength: float

    def to_dict(self) -> dict[str, Any]:
        return {"factor": self.factor, "correlation": self.correlation, "strength": self.strength}


@dataclass
class AnalyticsReport:
    """Everything the dashboard shows on the advanced analytics page."""
    predictions: list[Prediction]
    insights: list[Insight]
    benchmarks: list[Benchmark]
    correlations: list[Correlation]
    seasonality: SeasonalityResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "predictions": [p.to_dict() for p in self.predictions],
            "insights": [i.to_dict() for i in self.insights],
            "benchmarks": [b.to_dict() for b in self.benchmarks],
            "correlations": [c.to_dict() for c in self.correlations],
            "seasonality": self.seasonality.to_dict(),
        }
