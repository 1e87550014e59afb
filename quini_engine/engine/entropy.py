"""Spacing entropy and delta (gap) distribution.

A combination whose gaps repeat (an arithmetic progression being the extreme)
has low Shannon entropy over its gap table and is treated as suspiciously
regular.
"""

from collections import Counter

import numpy as np
from scipy import stats as sp_stats

from quini_engine.config import settings
from quini_engine.engine.normalizer import gaps
from quini_engine.schemas.draws import NormalizedDraw
from quini_engine.schemas.statistics import (
    DeltaAnalysis,
    DeltaDistribution,
    DeltaStat,
    StatisticalAnalysis,
)

# Fixed ceiling shared by every normalized entropy in the system
ENTROPY_CEILING = float(np.log2(6))


def spacing_gaps(numbers) -> list[int]:
    return list(gaps(tuple(sorted(numbers))))


def shannon_entropy(values) -> float:
    """Base-2 entropy of the value frequency table."""
    counts = list(Counter(values).values())
    if not counts:
        return 0.0
    return float(sp_stats.entropy(counts, base=2))


def spacing_entropy(numbers) -> float:
    return shannon_entropy(spacing_gaps(numbers))


def normalize(entropy: float) -> float:
    return float(min(1.0, max(0.0, entropy / ENTROPY_CEILING)))


def normalized_spacing_entropy(numbers) -> float:
    return normalize(spacing_entropy(numbers))


def distribution_entropy(numbers, analysis: StatisticalAnalysis) -> float:
    """Normalized entropy of the combination's relative frequencies."""
    weights = [analysis.statistic(n).relative_frequency for n in numbers]
    if sum(weights) <= 0:
        return 0.0
    return normalize(float(sp_stats.entropy(weights, base=2)))


class EntropyGate:
    """Accept combinations whose normalized spacing entropy lies in a band.

    With ``spacing_weight`` below 1 the gated value blends in the entropy of
    the numbers' historical frequencies, which needs an analysis.
    """

    def __init__(
        self,
        minimum: float | None = None,
        maximum: float | None = None,
        spacing_weight: float | None = None,
    ):
        self.minimum = settings.ENTROPY_MIN if minimum is None else minimum
        self.maximum = settings.ENTROPY_MAX if maximum is None else maximum
        self.spacing_weight = (
            settings.ENTROPY_SPACING_WEIGHT if spacing_weight is None else spacing_weight
        )

    def value(self, numbers, analysis: StatisticalAnalysis | None = None) -> float:
        spacing = normalized_spacing_entropy(numbers)
        if self.spacing_weight >= 1.0 or analysis is None:
            return spacing
        blended = (
            self.spacing_weight * spacing
            + (1.0 - self.spacing_weight) * distribution_entropy(numbers, analysis)
        )
        return float(min(1.0, max(0.0, blended)))

    def passes(self, numbers, analysis: StatisticalAnalysis | None = None) -> bool:
        return self.minimum <= self.value(numbers, analysis) <= self.maximum


def build_delta_distribution(draws: list[NormalizedDraw]) -> DeltaDistribution:
    """Gap histogram across every draw, with mean and population std."""
    all_gaps = [g for draw in draws for g in draw.spacing]
    total = len(all_gaps)
    if not total:
        return DeltaDistribution(deltas=[], mean=0.0, std=0.0, total=0)

    counter = Counter(all_gaps)
    arr = np.asarray(all_gaps, dtype=np.float64)
    deltas = [
        DeltaStat(gap=gap, count=count, relative_frequency=count / total)
        for gap, count in sorted(counter.items())
    ]
    return DeltaDistribution(
        deltas=deltas,
        mean=round(float(arr.mean()), 6),
        std=round(float(arr.std()), 6),
        total=total,
    )


def most_common_deltas(distribution: DeltaDistribution, count: int = 5) -> list[DeltaStat]:
    return sorted(distribution.deltas, key=lambda d: (-d.count, d.gap))[:count]


def least_common_deltas(distribution: DeltaDistribution, count: int = 5) -> list[DeltaStat]:
    return sorted(distribution.deltas, key=lambda d: (d.count, d.gap))[:count]


def analyze_deltas(numbers, distribution: DeltaDistribution) -> DeltaAnalysis:
    """Score a combination's gaps against the historical gap histogram."""
    ordered = sorted(numbers)
    combo_gaps = spacing_gaps(ordered)
    lookup = {d.gap: d.relative_frequency for d in distribution.deltas}
    mean_freq = float(np.mean([lookup.get(g, 0.0) for g in combo_gaps])) if combo_gaps else 0.0

    low = sum(1 for g in combo_gaps if g < distribution.mean)
    high = sum(1 for g in combo_gaps if g > distribution.mean)
    return DeltaAnalysis(
        numbers=ordered,
        deltas=combo_gaps,
        mean_relative_frequency=round(mean_freq, 6),
        conforms=low > high,
    )
