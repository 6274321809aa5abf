"""Tests for the rule-based insight generator."""

from clinic_insights.analytics.insight_rules import (
    RULES,
    InsightRule,
    generate_insights,
    insight_score,
)
from clinic_insights.analytics.models import Insight, StatsSnapshot, TimeSeriesPoint


def _stats(**overrides) -> dict:
    """Neutral snapshot: no rule fires unless a field is overridden."""
    base = {
        "clientsNeedingReactivation": 0,
        "conversionRate": 20,
        "avgPipelineTime": 30,
        "funnelStats": {},
    }
    base.update(overrides)
    return base


def _history(leads: list[int]) -> list[TimeSeriesPoint]:
    return [TimeSeriesPoint(period=f"w{i}", leads=v) for i, v in enumerate(leads)]


class TestNeutralSnapshot:
    def test_no_insights(self):
        assert generate_insights(_stats(), []) == []

    def test_history_defaults_to_empty(self):
        assert generate_insights(_stats()) == []


class TestReactivationRule:
    def test_single_reactivation_warning(self):
        insights = generate_insights(_stats(clientsNeedingReactivation=5), [])
        assert len(insights) == 1
        i = insights[0]
        assert i.type == "warning"
        assert i.priority == "high"
        assert i.impact == 8
        assert i.description.startswith("5 clientes")

    def test_zero_clients_no_warning(self):
        assert generate_insights(_stats(clientsNeedingReactivation=0), []) == []


class TestConversionRateRule:
    def test_high_conversion_success(self):
        insights = generate_insights(_stats(conversionRate=35), [])
        assert len(insights) == 1
        i = insights[0]
        assert i.type == "success"
        assert i.title == "Alta Taxa de Conversão"
        assert i.priority == "medium"
        assert i.impact == 7
        assert "35.0%" in i.description

    def test_low_conversion_warning(self):
        insights = generate_insights(_stats(conversionRate=10), [])
        assert len(insights) == 1
        i = insights[0]
        assert i.type == "warning"
        assert i.title == "Taxa de Conversão Baixa"
        assert i.priority == "high"
        assert i.impact == 9
        assert "10.0%" in i.description

    def test_boundaries_trigger_nothing(self):
        assert generate_insights(_stats(conversionRate=15), []) == []
        assert generate_insights(_stats(conversionRate=30), []) == []

    def test_missing_rate_treated_as_zero(self):
        insights = generate_insights({}, [])
        assert [i.title for i in insights] == ["Taxa de Conversão Baixa"]


class TestPipelineTimeRule:
    def test_slow_pipeline(self):
        insights = generate_insights(_stats(avgPipelineTime=61), [])
        assert len(insights) == 1
        assert insights[0].title == "Pipeline Lento"
        assert insights[0].priority == "medium"
        assert insights[0].impact == 6
        assert "61 dias" in insights[0].description

    def test_large_pipeline_time_keeps_all_digits(self):
        insights = generate_insights(_stats(avgPipelineTime=1234567), [])
        assert insights[0].description == "Tempo médio de 1234567 dias é muito alto"

    def test_fractional_pipeline_time(self):
        insights = generate_insights(_stats(avgPipelineTime=61.5), [])
        assert "61.5 dias" in insights[0].description

    def test_sixty_days_is_fine(self):
        assert generate_insights(_stats(avgPipelineTime=60), []) == []


class TestFunnelRule:
    def test_strong_funnel(self):
        funnels = {"marketing": {"count": 10, "value": 0, "stages": {"closing": {"count": 5, "value": 0}}}}
        insights = generate_insights(_stats(funnelStats=funnels), [])
        assert len(insights) == 1
        i = insights[0]
        assert i.type == "opportunity"
        assert i.title == "Funil marketing Performando Bem"
        assert "50.0%" in i.description
        assert i.priority == "low"
        assert i.impact == 5

    def test_exactly_forty_percent_not_flagged(self):
        funnels = {"sales": {"count": 10, "stages": {"closing": {"count": 4}}}}
        assert generate_insights(_stats(funnelStats=funnels), []) == []

    def test_missing_closing_stage(self):
        funnels = {"sales": {"count": 10, "stages": {"fechamento": {"count": 9}}}}
        assert generate_insights(_stats(funnelStats=funnels), []) == []

    def test_empty_funnel(self):
        funnels = {"sales": {"count": 0, "stages": {"closing": {"count": 0}}}}
        assert generate_insights(_stats(funnelStats=funnels), []) == []

    def test_one_insight_per_strong_funnel(self):
        funnels = {
            "marketing": {"count": 10, "stages": {"closing": {"count": 5}}},
            "sales": {"count": 10, "stages": {"closing": {"count": 1}}},
            "onboarding": {"count": 4, "stages": {"closing": {"count": 3}}},
        }
        titles = [i.title for i in generate_insights(_stats(funnelStats=funnels), [])]
        assert titles == ["Funil marketing Performando Bem", "Funil onboarding Performando Bem"]


class TestLeadDeclineRule:
    def test_steep_decline(self):
        insights = generate_insights(_stats(), _history([30, 25, 20]))
        assert len(insights) == 1
        assert insights[0].title == "Queda na Geração de Leads"
        assert insights[0].priority == "high"
        assert insights[0].impact == 8

    def test_gentle_decline_ignored(self):
        assert generate_insights(_stats(), _history([12, 11, 10])) == []

    def test_only_last_three_points(self):
        assert len(generate_insights(_stats(), _history([5, 30, 25, 20]))) == 1
        assert generate_insights(_stats(), _history([30, 20, 10, 12, 14])) == []

    def test_short_history(self):
        assert generate_insights(_stats(), _history([30, 20])) == []

    def test_dict_history(self):
        history = [{"date": "2024-04-01", "leads": 30}, {"date": "2024-04-08", "leads": 25},
                   {"date": "2024-04-15", "leads": 20}]
        assert len(generate_insights(_stats(), history)) == 1


class TestOrdering:
    def test_sorted_by_priority_times_impact(self):
        funnels = {"marketing": {"count": 10, "stages": {"closing": {"count": 5}}}}
        stats = _stats(
            clientsNeedingReactivation=3,
            conversionRate=10,
            avgPipelineTime=90,
            funnelStats=funnels,
        )
        insights = generate_insights(stats, _history([30, 25, 20]))
        assert [i.title for i in insights] == [
            "Taxa de Conversão Baixa",  # 27
            "Clientes Precisam de Reativação",  # 24, first rule
            "Queda na Geração de Leads",  # 24, last rule
            "Pipeline Lento",  # 12
            "Funil marketing Performando Bem",  # 5
        ]
        scores = [insight_score(i) for i in insights]
        assert scores == sorted(scores, reverse=True)

    def test_idempotent(self):
        stats = _stats(clientsNeedingReactivation=3, conversionRate=40)
        history = _history([30, 25, 20])
        assert generate_insights(stats, history) == generate_insights(stats, history)


class TestRuleList:
    def test_default_rules(self):
        assert [r.name for r in RULES] == [
            "client_reactivation",
            "conversion_rate",
            "pipeline_time",
            "funnel_performance",
            "lead_decline",
        ]

    def test_failing_rule_is_skipped(self):
        def _boom(stats, history):
            raise RuntimeError("bad rule")

        def _always(stats, history):
            return [Insight("info", "Sempre", "d", "a", "low", 1)]

        rules = [InsightRule("boom", _boom), InsightRule("always", _always)]
        insights = generate_insights(StatsSnapshot(), [], rules=rules)
        assert [i.title for i in insights] == ["Sempre"]

    def test_unknown_priority_scores_zero(self):
        assert insight_score(Insight("info", "t", "d", "a", "urgent", 10)) == 0
