"""API router for the analytics engine.

7 endpoints:
- POST /analytics/predictions: next-period forecasts
- POST /analytics/insights: prioritized recommendations
- POST /analytics/benchmarks: comparison with industry benchmarks
- POST /analytics/correlations: high-value funnel correlations
- POST /analytics/seasonality: lead volume variability
- POST /analytics/report: all of the above in one response
- POST /analytics/snapshot: build stats + history from raw CRM rows
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from clinic_insights.analytics.benchmarking import find_correlations, generate_benchmarks
from clinic_insights.analytics.engine import analyze, format_analytics_report
from clinic_insights.analytics.insight_rules import generate_insights
from clinic_insights.analytics.models import coerce_history, coerce_stats
from clinic_insights.analytics.predictions import generate_predictions
from clinic_insights.analytics.snapshot_builder import build_history, build_stats_snapshot
from clinic_insights.analytics.trend_analysis import detect_seasonality
from config.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class AnalyticsRequest(BaseModel):
    stats: dict[str, Any] = {}  # StatsSnapshot, camelCase or snake_case keys
    history: list[dict[str, Any]] = []  # [{period|date, leads, conversions, revenue}]


class SnapshotRequest(BaseModel):
    leads: list[dict[str, Any]] = []
    clients: list[dict[str, Any]] = []
    activities: list[dict[str, Any]] = []
    period: str = "week"  # day / week / month
    limit: Optional[int] = None
    user: Optional[dict[str, Any]] = None  # {id, role}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/predictions")
async def predictions(body: AnalyticsRequest) -> list[dict]:
    """Forecast leads, conversions and revenue one period ahead."""
    return [p.to_dict() for p in generate_predictions(body.stats, body.history)]


@router.post("/insights")
async def insights(body: AnalyticsRequest) -> list[dict]:
    """Rule-based recommendations, highest priority first."""
    return [i.to_dict() for i in generate_insights(body.stats, body.history)]


@router.post("/benchmarks")
async def benchmarks(body: AnalyticsRequest) -> list[dict]:
    return [b.to_dict() for b in generate_benchmarks(body.stats, settings.benchmark_overrides())]


@router.post("/correlations")
async def correlations(body: AnalyticsRequest) -> list[dict]:
    return [c.to_dict() for c in find_correlations(body.stats)]


@router.post("/seasonality")
async def seasonality(body: AnalyticsRequest) -> dict:
    return detect_seasonality(coerce_history(body.history)).to_dict()


@router.post("/report")
async def report(body: AnalyticsRequest) -> dict:
    """Full analytics report plus its plain-text rendering."""
    result = analyze(
        coerce_stats(body.stats),
        coerce_history(body.history),
        settings.benchmark_overrides(),
    )
    data = result.to_dict()
    data["text"] = format_analytics_report(result)
    return data


@router.post("/snapshot")
async def snapshot(body: SnapshotRequest) -> dict:
    """Aggregate raw lead/client/activity rows into engine inputs."""
    try:
        history = build_history(
            body.leads,
            body.activities,
            period=body.period,
            limit=body.limit,
            user=body.user,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    stats = build_stats_snapshot(
        body.leads,
        body.clients,
        reactivation_days=settings.reactivation_days,
        user=body.user,
    )
    logger.info(
        "Snapshot for %s: %d leads, %d periods",
        (body.user or {}).get("id", "admin"), stats.total_leads, len(history),
    )
    return {
        "stats": stats.to_dict(),
        "history": [
            {"period": p.period, "leads": p.leads, "conversions": p.conversions, "revenue": p.revenue}
            for p in history
        ],
    }
