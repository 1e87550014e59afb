"""First-order Markov transitions between drawn numbers.

A transition is counted between consecutive numbers of one draw (ascending
order) and from the last number of a draw to the first number of the next
draw, in date order. Each row is normalised by the transitions leaving that
number; numbers with no outgoing transition keep an all-zero row.
"""

import numpy as np
from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.normalizer import validate_combination, validate_number
from quini_engine.schemas.draws import NormalizedDraw
from quini_engine.schemas.statistics import MarkovAnalysis, TransitionStat


class MarkovChain:
    """Read-only transition counts and probabilities indexed by number."""

    def __init__(self, counts: np.ndarray, number_min: int = 0):
        counts = np.array(counts, dtype=np.int64, copy=True)
        outgoing = counts.sum(axis=1, keepdims=True)
        probabilities = np.zeros(counts.shape, dtype=np.float64)
        np.divide(counts, outgoing, out=probabilities, where=outgoing > 0)

        counts.setflags(write=False)
        probabilities.setflags(write=False)
        self.counts = counts
        self.probabilities = probabilities
        self.number_min = number_min
        self.number_max = number_min + counts.shape[0] - 1

    @classmethod
    def build(
        cls,
        draws: list[NormalizedDraw],
        number_min: int | None = None,
        number_max: int | None = None,
    ) -> "MarkovChain":
        lo = settings.NUMBER_MIN if number_min is None else number_min
        hi = settings.NUMBER_MAX if number_max is None else number_max
        size = hi - lo + 1
        counts = np.zeros((size, size), dtype=np.int64)

        previous_last = None
        for draw in sorted(draws, key=lambda d: (d.draw_date, d.draw_number)):
            idx = [validate_number(n, lo, hi) - lo for n in draw.numbers]
            np.add.at(counts, (idx[:-1], idx[1:]), 1)
            if previous_last is not None:
                counts[previous_last, idx[0]] += 1
            previous_last = idx[-1]

        logger.debug("[markov] {} transitions from {} draws", int(counts.sum()), len(draws))
        return cls(counts, lo)

    def _index(self, number: int) -> int:
        return validate_number(number, self.number_min, self.number_max) - self.number_min

    def probability(self, source: int, target: int) -> float:
        return float(self.probabilities[self._index(source), self._index(target)])

    def combination_probability(self, numbers) -> float:
        """Product of the transition probabilities along the sorted combination."""
        combo = validate_combination(numbers, self.number_min, self.number_max)
        idx = [n - self.number_min for n in combo]
        return float(np.prod(self.probabilities[idx[:-1], idx[1:]]))

    def _stat(self, i: int, j: int) -> TransitionStat:
        return TransitionStat(
            source=self.number_min + i,
            target=self.number_min + j,
            count=int(self.counts[i, j]),
            probability=round(float(self.probabilities[i, j]), 6),
        )

    def most_likely_next(self, number: int, count: int = 10) -> list[TransitionStat]:
        """Targets of ``number`` by probability, highest first; ties by number."""
        i = self._index(number)
        # stable sort keeps ascending target order among equal probabilities
        order = np.argsort(-self.probabilities[i], kind="stable")[:count]
        return [self._stat(i, int(j)) for j in order]

    def transitions(self) -> list[TransitionStat]:
        """Every observed transition, strongest first."""
        rows, cols = np.nonzero(self.counts)
        stats = [self._stat(int(i), int(j)) for i, j in zip(rows, cols)]
        stats.sort(key=lambda s: (-s.probability, -s.count, s.source, s.target))
        return stats

    def summary(self, total_draws: int, top: int = 20) -> MarkovAnalysis:
        transitions = self.transitions()
        return MarkovAnalysis(
            total_draws=total_draws,
            total_transitions=int(self.counts.sum()),
            distinct_transitions=len(transitions),
            strongest=transitions[:top],
        )
