"""Composite scoring of candidate combinations.

Four components in [0, 1], blended by configurable weights:

- affinity: mean pairwise Jaccard
- entropy: normalized spacing entropy
- amplitude: fit of max - min against the healthy band
- frequency: share of numbers whose relative frequency looks healthy
"""

from dataclasses import dataclass
from itertools import combinations

import numpy as np
from scipy import stats as sp_stats

from quini_engine.config import settings
from quini_engine.engine.affinity import AffinityMatrix
from quini_engine.engine.combinatorics import chunked
from quini_engine.engine.entropy import normalize, normalized_spacing_entropy
from quini_engine.engine.executor import ParallelEvaluator
from quini_engine.engine.normalizer import validate_combination
from quini_engine.schemas.statistics import StatisticalAnalysis
from quini_engine.schemas.wheeling import ScoredCombination, ScoringWeights


def weights_from_settings() -> ScoringWeights:
    return ScoringWeights(
        affinity=settings.SCORE_WEIGHT_AFFINITY,
        entropy=settings.SCORE_WEIGHT_ENTROPY,
        amplitude=settings.SCORE_WEIGHT_AMPLITUDE,
        frequency=settings.SCORE_WEIGHT_FREQUENCY,
    )


@dataclass(frozen=True)
class ScoringSnapshot:
    """Immutable inputs shared by every scoring task."""

    number_min: int
    affinity: np.ndarray
    relative_frequency: np.ndarray
    weights: tuple[float, float, float, float]  # affinity, entropy, amplitude, frequency
    amplitude_healthy: tuple[int, int]
    amplitude_near: tuple[int, int]
    frequency_band: tuple[float, float]
    spacing_weight: float = 1.0


def amplitude_fit(numbers, healthy: tuple[int, int], near: tuple[int, int]) -> float:
    amplitude = max(numbers) - min(numbers)
    if healthy[0] <= amplitude <= healthy[1]:
        return 1.0
    if near[0] <= amplitude <= near[1]:
        return 0.7
    return 0.3


def frequency_fit(relative: list[float], band: tuple[float, float]) -> float:
    credits = [1.0 if band[0] <= r <= band[1] else 0.5 for r in relative]
    return float(np.mean(credits))


def score_components(numbers: tuple[int, ...], snap: ScoringSnapshot) -> tuple[float, float, float, float]:
    idx = [n - snap.number_min for n in numbers]
    affinity = float(np.mean([snap.affinity[a, b] for a, b in combinations(idx, 2)]))

    entropy = normalized_spacing_entropy(numbers)
    if snap.spacing_weight < 1.0:
        weights = snap.relative_frequency[idx]
        spread = normalize(float(sp_stats.entropy(weights, base=2))) if weights.sum() > 0 else 0.0
        entropy = snap.spacing_weight * entropy + (1.0 - snap.spacing_weight) * spread

    amplitude = amplitude_fit(numbers, snap.amplitude_healthy, snap.amplitude_near)
    frequency = frequency_fit([float(snap.relative_frequency[i]) for i in idx], snap.frequency_band)
    return affinity, entropy, amplitude, frequency


def score_batch(combos: list[tuple[int, ...]], snap: ScoringSnapshot) -> list[tuple]:
    """Score a batch; returns ``(numbers, components, total)`` per combination."""
    results = []
    for numbers in combos:
        components = score_components(numbers, snap)
        total = float(sum(w * c for w, c in zip(snap.weights, components)))
        results.append((numbers, components, total))
    return results


class CompositeScorer:
    """Rank combinations against one run's statistics and affinity."""

    def __init__(
        self,
        analysis: StatisticalAnalysis,
        affinity: AffinityMatrix,
        weights: ScoringWeights | None = None,
        evaluator: ParallelEvaluator | None = None,
        spacing_weight: float | None = None,
    ):
        self.weights = weights or weights_from_settings()
        self.evaluator = evaluator or ParallelEvaluator()

        ordered = sorted(analysis.numbers, key=lambda s: s.number)
        domain_size = len(ordered)
        expected = settings.PICK_COUNT / domain_size
        tolerance = settings.FREQUENCY_BAND_TOLERANCE

        relative = np.array([s.relative_frequency for s in ordered], dtype=np.float64)
        relative.setflags(write=False)

        self.snapshot = ScoringSnapshot(
            number_min=affinity.number_min,
            affinity=affinity.values,
            relative_frequency=relative,
            weights=(self.weights.affinity, self.weights.entropy,
                     self.weights.amplitude, self.weights.frequency),
            amplitude_healthy=(settings.AMPLITUDE_HEALTHY_MIN, settings.AMPLITUDE_HEALTHY_MAX),
            amplitude_near=(settings.AMPLITUDE_NEAR_MIN, settings.AMPLITUDE_NEAR_MAX),
            frequency_band=(expected * (1 - tolerance), expected * (1 + tolerance)),
            spacing_weight=(
                settings.ENTROPY_SPACING_WEIGHT if spacing_weight is None else spacing_weight
            ),
        )

    def score(self, numbers) -> ScoredCombination:
        return self.rank([numbers])[0]

    def rank(self, combos) -> list[ScoredCombination]:
        """Score and sort descending; equal scores keep generation order."""
        candidates = [validate_combination(c) for c in combos]
        tasks = [
            (chunk, self.snapshot)
            for chunk in chunked(candidates, settings.PARALLEL_CHUNK_SIZE)
        ]
        scored = [
            row
            for batch in self.evaluator.map(score_batch, tasks, workload=len(candidates))
            for row in batch
        ]
        scored = sorted(scored, key=lambda row: -row[2])

        return [
            ScoredCombination(
                rank=position,
                numbers=numbers,
                affinity=round(affinity, 6),
                entropy=round(entropy, 6),
                amplitude=amplitude,
                frequency=round(frequency, 6),
                score=round(total, 6),
            )
            for position, (numbers, (affinity, entropy, amplitude, frequency), total)
            in enumerate(scored, start=1)
        ]
