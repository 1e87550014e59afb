"""Statistical summary and prompt text handed to the judge."""

import json

from pydantic import BaseModel

from quini_engine.engine.entropy import most_common_deltas
from quini_engine.engine.statistics import pressure_ranking
from quini_engine.schemas.statistics import DeltaDistribution, StatisticalAnalysis
from quini_engine.schemas.wheeling import ScoredCombination

SYSTEM_PROMPT = (
    "You are a statistical risk analyst specialised in games of chance. "
    "Always answer with a single valid JSON object."
)


class StatisticalSummary(BaseModel):
    total_draws: int
    pressure_numbers: list[tuple[int, float]]
    sum_trend: str
    recent_sum_mean: float
    historical_sum_mean: float
    common_deltas: list[int]
    mean_delta: float
    amplitude_band: tuple[float, float]


def build_summary(
    analysis: StatisticalAnalysis,
    deltas: DeltaDistribution,
    pressure_count: int = 10,
) -> StatisticalSummary:
    windows = sorted(analysis.moving_averages)
    recent = analysis.sum_mean
    for window in windows:
        series = analysis.moving_averages[window]
        if series:
            recent = series[-1]
            break

    if recent > analysis.sum_mean + analysis.sum_std / 2:
        trend = "rising"
    elif recent < analysis.sum_mean - analysis.sum_std / 2:
        trend = "falling"
    else:
        trend = "stable"

    return StatisticalSummary(
        total_draws=analysis.period.total_draws,
        pressure_numbers=[
            (number, round(pressure, 4))
            for number, pressure in pressure_ranking(analysis)[:pressure_count]
        ],
        sum_trend=trend,
        recent_sum_mean=round(recent, 2),
        historical_sum_mean=round(analysis.sum_mean, 2),
        common_deltas=[d.gap for d in most_common_deltas(deltas, 5)],
        mean_delta=round(deltas.mean, 2),
        amplitude_band=(analysis.amplitude.p25, analysis.amplitude.p75),
    )


def render_context(summary: StatisticalSummary) -> str:
    pressure = ", ".join(f"{n:02d} ({p})" for n, p in summary.pressure_numbers)
    deltas = ", ".join(str(d) for d in summary.common_deltas)
    low, high = summary.amplitude_band
    return "\n".join([
        f"- Draws analysed: {summary.total_draws}",
        f"- Highest delay pressure: {pressure}",
        f"- Sum trend: {summary.sum_trend} (recent mean {summary.recent_sum_mean}, "
        f"historical mean {summary.historical_sum_mean})",
        f"- Most common gaps: {deltas} (mean gap {summary.mean_delta})",
        f"- Typical amplitude band (p25-p75): {low:g}-{high:g}",
    ])


def build_prompt(
    candidates: list[ScoredCombination],
    summary: StatisticalSummary,
    number_min: int,
    number_max: int,
) -> str:
    finalists = []
    for i, candidate in enumerate(candidates, start=1):
        numbers = list(candidate.numbers)
        even = sum(1 for n in numbers if n % 2 == 0)
        finalists.append({
            "id": i,
            "numbers": numbers,
            "sum": sum(numbers),
            "even": even,
            "odd": len(numbers) - even,
            "amplitude": numbers[-1] - numbers[0],
            "score": candidate.score,
        })

    return f"""DRAW CONTEXT (domain {number_min:02d}-{number_max:02d}):
{render_context(summary)}

FINALISTS ({len(candidates)} combinations that already passed the statistical filters):
{json.dumps(finalists, indent=2)}

TASK:
Pick the 3 combinations with the best organic coherence. Prefer those that
mix high-delay numbers with numbers on a streak, avoid obvious visual
patterns, keep a balanced parity split, and stay inside the historical
amplitude and sum ranges.

Answer strictly with this JSON structure:
{{
  "top_3": [[n1,n2,n3,n4,n5,n6], [n1,n2,n3,n4,n5,n6], [n1,n2,n3,n4,n5,n6]],
  "analysis": "short technical explanation (at most 200 words)",
  "reasons": ["reason 1", "reason 2", "reason 3"]
}}

Every combination must have exactly 6 distinct numbers between {number_min} and {number_max}.
"""
