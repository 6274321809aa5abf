"""Build engine inputs from raw CRM rows.

The CRM API computes these aggregates in SQL; this module does the same
over plain dict rows (leads, clients, activities) so the engine can be
fed from exports, fixtures or any other source.  Row visibility follows
the CRM rule: admins see everything, other users only rows assigned to
them.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone

from clinic_insights.analytics.models import (
    FunnelStats,
    StageStats,
    StatsSnapshot,
    TimeSeriesPoint,
    _num,
)

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
DEFAULT_REACTIVATION_DAYS = 60
PERIODS = ("day", "week", "month")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_date(val) -> datetime | None:
    """Attempt to parse a date from string or datetime (returned naive, UTC)."""
    if val is None:
        return None
    if isinstance(val, datetime):
        dt = val
    else:
        text = str(val).strip()
        dt = None
        for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%Y-%m-%d %H:%M:%S"):
            try:
                dt = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if dt is None:
            try:
                dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _period_key(dt: datetime, period: str) -> str:
    if period == "day":
        return dt.strftime("%Y-%m-%d")
    if period == "week":
        year, week, _ = dt.isocalendar()
        return f"{year}-W{week:02d}"
    return dt.strftime("%Y-%m")


def _round_half_up(value: float, ndigits: int = 0) -> float:
    """Round to ``ndigits`` decimals with exact halves going up."""
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def _now(now: datetime | None) -> datetime:
    return _parse_date(now) if now is not None else datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Role filtering
# ---------------------------------------------------------------------------


def visible_rows(rows: list[dict], user: dict | None = None) -> list[dict]:
    """Rows the given user may see.

    ``user`` is ``{"id": ..., "role": ...}``.  No user, or an admin, sees
    every row; anyone else only rows whose ``assigned_to`` is their id.
    """
    if not rows:
        return []
    if user is None or user.get("role") == ADMIN_ROLE:
        return list(rows)
    user_id = user.get("id")
    return [r for r in rows if r.get("assigned_to") is not None and r.get("assigned_to") == user_id]


# ---------------------------------------------------------------------------
# Stats snapshot
# ---------------------------------------------------------------------------


def build_funnel_stats(leads: list[dict]) -> dict[str, FunnelStats]:
    """Group leads by funnel and stage, summing counts and values."""
    funnels: dict[str, FunnelStats] = {}
    for lead in leads:
        funnel_name = lead.get("funnel")
        if funnel_name is None:
            continue
        value = _num(lead.get("value"))
        funnel = funnels.setdefault(str(funnel_name), FunnelStats())
        funnel.count += 1
        funnel.value += value

        stage_name = lead.get("stage")
        if stage_name is None:
            continue
        stage = funnel.stages.setdefault(str(stage_name), StageStats())
        stage.count += 1
        stage.value += value
    return funnels


def build_stats_snapshot(
    leads: list[dict],
    clients: list[dict],
    now: datetime | None = None,
    reactivation_days: int = DEFAULT_REACTIVATION_DAYS,
    user: dict | None = None,
) -> StatsSnapshot:
    """Aggregate lead and client rows into a ``StatsSnapshot``.

    Args:
        leads: Lead rows (funnel, stage, value, created_at, updated_at, assigned_to).
        clients: Client rows (total_spent, last_purchase, assigned_to).
        now: Reference time for pipeline ages and inactivity; defaults to the current UTC time.
        reactivation_days: Days without a purchase before a client needs reactivation.
        user: Requesting user for role-based row filtering.
    """
    leads = visible_rows(leads, user)
    clients = visible_rows(clients, user)
    ref = _now(now)

    total_leads = len(leads)
    total_clients = len(clients)

    conversion_rate = 0.0
    if total_leads > 0:
        conversion_rate = _round_half_up(total_clients / (total_leads + total_clients) * 100, 2)

    pipeline_days: list[int] = []
    for lead in leads:
        created = _parse_date(lead.get("created_at"))
        if created is None:
            continue
        updated = _parse_date(lead.get("updated_at")) or ref
        pipeline_days.append((updated - created).days)
    avg_pipeline_time = int(_round_half_up(sum(pipeline_days) / len(pipeline_days))) if pipeline_days else 0

    cutoff = ref - timedelta(days=reactivation_days)
    needing_reactivation = 0
    for client in clients:
        last_purchase = _parse_date(client.get("last_purchase"))
        if last_purchase is not None and last_purchase < cutoff:
            needing_reactivation += 1

    snapshot = StatsSnapshot(
        total_leads=total_leads,
        total_clients=total_clients,
        conversion_rate=conversion_rate,
        avg_pipeline_time=avg_pipeline_time,
        clients_needing_reactivation=needing_reactivation,
        funnel_stats=build_funnel_stats(leads),
        total_pipeline_value=round(sum(_num(lead.get("value")) for lead in leads), 2),
        total_revenue=round(sum(_num(c.get("total_spent")) for c in clients), 2),
    )
    logger.debug(
        "Snapshot built: %d leads, %d clients, %d funnels",
        total_leads, total_clients, len(snapshot.funnel_stats),
    )
    return snapshot


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


def build_history(
    leads: list[dict],
    activities: list[dict],
    period: str = "week",
    limit: int | None = None,
    user: dict | None = None,
) -> list[TimeSeriesPoint]:
    """Bucket leads and conversion activities into periodic samples.

    Leads count by ``created_at``; activities with ``type == "conversion"``
    count as conversions by ``date`` and their ``value`` sums into revenue.
    Activities are filtered on ``user_id`` rather than ``assigned_to``.

    Returns:
        Points ordered oldest first, truncated to the last ``limit`` periods.

    Raises:
        ValueError: if ``period`` is not one of day/week/month.
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown history period {period!r}; expected one of {PERIODS}")

    leads = visible_rows(leads, user)
    if user is not None and user.get("role") != ADMIN_ROLE:
        activities = [a for a in activities or [] if a.get("user_id") == user.get("id")]

    buckets: dict[str, dict[str, float]] = defaultdict(
        lambda: {"leads": 0, "conversions": 0, "revenue": 0.0}
    )

    skipped = 0
    for lead in leads:
        dt = _parse_date(lead.get("created_at"))
        if dt is None:
            skipped += 1
            continue
        buckets[_period_key(dt, period)]["leads"] += 1

    for activity in activities or []:
        if activity.get("type") != "conversion":
            continue
        dt = _parse_date(activity.get("date"))
        if dt is None:
            skipped += 1
            continue
        bucket = buckets[_period_key(dt, period)]
        bucket["conversions"] += 1
        bucket["revenue"] += _num(activity.get("value"))

    if skipped:
        logger.debug("Skipped %d rows with unparseable dates", skipped)

    points = [
        TimeSeriesPoint(
            period=key,
            leads=int(b["leads"]),
            conversions=int(b["conversions"]),
            revenue=round(b["revenue"], 2),
        )
        for key, b in sorted(buckets.items())
    ]
    if limit is not None and limit > 0:
        points = points[-limit:]
    return points
