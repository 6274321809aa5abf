"""Rule-based insights over the stats snapshot and recent history.

Each rule is an independent check that may contribute zero or more
insights.  Rules run in a fixed order, and the combined list is then
stably sorted by ``priority weight x impact`` so that ties keep the rule
order.  Adding a rule means appending an ``InsightRule`` to ``RULES``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from clinic_insights.analytics.models import (
    Insight,
    StatsSnapshot,
    TimeSeriesPoint,
    coerce_history,
    coerce_stats,
)
from clinic_insights.analytics.trend_analysis import calculate_trend

logger = logging.getLogger(__name__)

PRIORITY_WEIGHTS: dict[str, int] = {"high": 3, "medium": 2, "low": 1}

HIGH_CONVERSION_RATE = 30
LOW_CONVERSION_RATE = 15
SLOW_PIPELINE_DAYS = 60
STRONG_FUNNEL_RATE = 0.4
CLOSING_STAGE = "closing"
LEAD_DROP_WINDOW = 3
LEAD_DROP_SLOPE = 2


@dataclass(frozen=True)
class InsightRule:
    name: str
    evaluate: Callable[[StatsSnapshot, list[TimeSeriesPoint]], list[Insight]]


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return f"{value:.0f}"
    return str(value)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def _reactivation_rule(stats: StatsSnapshot, history: list[TimeSeriesPoint]) -> list[Insight]:
    if stats.clients_needing_reactivation <= 0:
        return []
    return [Insight(
        type="warning",
        title="Clientes Precisam de Reativação",
        description=(
            f"{stats.clients_needing_reactivation} clientes não fazem consultas há mais de 60 dias"
        ),
        action="Criar campanha de reengajamento com desconto especial",
        priority="high",
        impact=8,
    )]


def _conversion_rate_rule(stats: StatsSnapshot, history: list[TimeSeriesPoint]) -> list[Insight]:
    rate = stats.conversion_rate
    if rate > HIGH_CONVERSION_RATE:
        return [Insight(
            type="success",
            title="Alta Taxa de Conversão",
            description=f"Taxa de conversão de {rate:.1f}% está acima da média",
            action="Aumentar investimento em marketing para capturar mais leads",
            priority="medium",
            impact=7,
        )]
    if rate < LOW_CONVERSION_RATE:
        return [Insight(
            type="warning",
            title="Taxa de Conversão Baixa",
            description=f"Taxa de conversão de {rate:.1f}% está abaixo do esperado",
            action="Revisar processo de qualificação de leads",
            priority="high",
            impact=9,
        )]
    return []


def _pipeline_time_rule(stats: StatsSnapshot, history: list[TimeSeriesPoint]) -> list[Insight]:
    if stats.avg_pipeline_time <= SLOW_PIPELINE_DAYS:
        return []
    return [Insight(
        type="warning",
        title="Pipeline Lento",
        description=f"Tempo médio de {_fmt(stats.avg_pipeline_time)} dias é muito alto",
        action="Automatizar etapas do processo de vendas",
        priority="medium",
        impact=6,
    )]


def _funnel_performance_rule(stats: StatsSnapshot, history: list[TimeSeriesPoint]) -> list[Insight]:
    results: list[Insight] = []
    for name, funnel in stats.funnel_stats.items():
        rate = funnel.stage_count(CLOSING_STAGE) / funnel.count if funnel.count > 0 else 0.0
        if rate > STRONG_FUNNEL_RATE:
            results.append(Insight(
                type="opportunity",
                title=f"Funil {name} Performando Bem",
                description=f"Taxa de conversão de {rate * 100:.1f}% no funil {name}",
                action="Replicar estratégias deste funil nos outros",
                priority="low",
                impact=5,
            ))
    return results


def _lead_decline_rule(stats: StatsSnapshot, history: list[TimeSeriesPoint]) -> list[Insight]:
    if len(history) < LEAD_DROP_WINDOW:
        return []
    trend = calculate_trend([p.leads for p in history[-LEAD_DROP_WINDOW:]])
    if trend.direction != "down" or abs(trend.slope) <= LEAD_DROP_SLOPE:
        return []
    return [Insight(
        type="warning",
        title="Queda na Geração de Leads",
        description="Tendência de queda nos últimos períodos",
        action="Revisar estratégias de marketing e captação",
        priority="high",
        impact=8,
    )]


RULES: list[InsightRule] = [
    InsightRule("client_reactivation", _reactivation_rule),
    InsightRule("conversion_rate", _conversion_rate_rule),
    InsightRule("pipeline_time", _pipeline_time_rule),
    InsightRule("funnel_performance", _funnel_performance_rule),
    InsightRule("lead_decline", _lead_decline_rule),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def insight_score(insight: Insight) -> int:
    """Sort key used to rank insights (priority weight x impact)."""
    return PRIORITY_WEIGHTS.get(insight.priority, 0) * insight.impact


def generate_insights(
    stats: StatsSnapshot | dict,
    history: list[TimeSeriesPoint] | list[dict] | None = None,
    rules: list[InsightRule] | None = None,
) -> list[Insight]:
    """Run every rule and return the insights, highest score first."""
    stats = coerce_stats(stats)
    history = coerce_history(history)

    insights: list[Insight] = []
    for rule in rules if rules is not None else RULES:
        try:
            found = rule.evaluate(stats, history)
        except Exception:
            logger.exception("Insight rule %s failed", rule.name)
            continue
        if found:
            logger.debug("Rule %s produced %d insight(s)", rule.name, len(found))
        insights.extend(found)

    # sorted() is stable, so equal scores keep rule order
    return sorted(insights, key=insight_score, reverse=True)
