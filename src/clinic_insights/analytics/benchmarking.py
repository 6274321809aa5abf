"""Industry benchmarks and funnel correlations.

Compares the current snapshot against fixed industry reference values,
and flags funnels where high-value leads also close well.
"""

from __future__ import annotations

from dataclasses import dataclass

from clinic_insights.analytics.models import Benchmark, Correlation, StatsSnapshot, coerce_stats

# Industry reference values; only the first two are compared today.
INDUSTRY_BENCHMARKS: dict[str, float] = {
    "conversion_rate": 25,  # %
    "avg_pipeline_time": 45,  # days
    "client_retention": 80,  # %
    "response_time": 24,  # hours
}


@dataclass(frozen=True)
class BenchmarkSpec:
    """How one snapshot metric is compared against its reference value."""
    key: str
    label: str
    higher_is_better: bool


BENCHMARK_SPECS: list[BenchmarkSpec] = [
    BenchmarkSpec("conversion_rate", "Taxa de Conversão", higher_is_better=True),
    BenchmarkSpec("avg_pipeline_time", "Tempo no Pipeline", higher_is_better=False),
]

HIGH_VALUE_LEAD = 20000
CORRELATED_CLOSING_RATE = 0.3


def generate_benchmarks(
    stats: StatsSnapshot | dict,
    overrides: dict[str, float] | None = None,
) -> list[Benchmark]:
    """Compare the snapshot against industry benchmarks.

    ``status`` is ``above`` when the metric is at least as good as the
    benchmark in the metric's own direction (lower pipeline time is better).

    Args:
        stats: Current stats snapshot.
        overrides: Replacement reference values keyed like ``INDUSTRY_BENCHMARKS``.
    """
    stats = coerce_stats(stats)
    reference = {**INDUSTRY_BENCHMARKS, **(overrides or {})}

    results: list[Benchmark] = []
    for spec in BENCHMARK_SPECS:
        current = getattr(stats, spec.key)
        target = reference[spec.key]
        better = current >= target if spec.higher_is_better else current <= target
        results.append(Benchmark(
            metric=spec.label,
            current=current,
            benchmark=target,
            status="above" if better else "below",
        ))
    return results


def find_correlations(stats: StatsSnapshot | dict) -> list[Correlation]:
    """Funnels whose leads are both high-value and closing above 30%."""
    stats = coerce_stats(stats)
    results: list[Correlation] = []
    for name, funnel in stats.funnel_stats.items():
        if funnel.count <= 0:
            continue
        avg_value = funnel.value / funnel.count
        closing_rate = funnel.stage_count("closing") / funnel.count
        if avg_value > HIGH_VALUE_LEAD and closing_rate > CORRELATED_CLOSING_RATE:
            results.append(Correlation(
                factor=f"Leads de alto valor no funil {name}",
                correlation="Maior taxa de conversão",
                strength=0.7,
            ))
    return results
