"""Pairwise co-occurrence affinity (Jaccard index) over the number domain."""

from itertools import combinations

import numpy as np

from quini_engine.config import settings
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.statistics import incidence_matrix
from quini_engine.schemas.draws import NormalizedDraw


class AffinityMatrix:
    """Read-only symmetric Jaccard matrix indexed by number.

    ``values[i, j]`` is |draws with both| / |draws with either| for numbers
    ``number_min + i`` and ``number_min + j``. The diagonal is 1.0 and pairs
    never drawn score 0.0.
    """

    def __init__(self, values: np.ndarray, number_min: int = 0):
        values = np.array(values, dtype=np.float64, copy=True)
        values.setflags(write=False)
        self.values = values
        self.number_min = number_min
        self.number_max = number_min + values.shape[0] - 1

    @classmethod
    def build(
        cls,
        draws: list[NormalizedDraw],
        number_min: int | None = None,
        number_max: int | None = None,
    ) -> "AffinityMatrix":
        lo = settings.NUMBER_MIN if number_min is None else number_min
        hi = settings.NUMBER_MAX if number_max is None else number_max
        incidence = incidence_matrix(draws, lo, hi).astype(np.int64)

        # Gram matrix: diagonal holds per-number counts, off-diagonal joint counts
        joint = incidence.T @ incidence
        counts = np.diag(joint)
        union = counts[:, None] + counts[None, :] - joint

        jaccard = np.zeros(joint.shape, dtype=np.float64)
        np.divide(joint, union, out=jaccard, where=union > 0)
        np.fill_diagonal(jaccard, 1.0)
        return cls(jaccard, lo)

    def _index(self, number: int) -> int:
        if number < self.number_min or number > self.number_max:
            raise PreconditionViolation(
                f"Number {number} outside domain [{self.number_min}, {self.number_max}]"
            )
        return number - self.number_min

    def jaccard(self, a: int, b: int) -> float:
        return float(self.values[self._index(a), self._index(b)])

    def combination_score(self, numbers) -> float:
        """Mean Jaccard over every pair in the combination."""
        pairs = list(combinations(numbers, 2))
        if not pairs:
            return 0.0
        return float(np.mean([self.jaccard(a, b) for a, b in pairs]))

    def top_affinities(self, number: int, count: int = 10) -> list[tuple[int, float]]:
        row = self.values[self._index(number)]
        partners = [
            (self.number_min + j, float(row[j]))
            for j in range(row.size)
            if self.number_min + j != number
        ]
        partners.sort(key=lambda item: (-item[1], item[0]))
        return partners[:count]

    def mean_affinity(self, number: int, count: int = 10) -> float:
        top = self.top_affinities(number, count)
        return float(np.mean([score for _, score in top])) if top else 0.0

    def strongest_pairs(self, count: int = 20) -> list[tuple[int, int, float]]:
        upper_i, upper_j = np.triu_indices(self.values.shape[0], k=1)
        scores = self.values[upper_i, upper_j]
        # lexsort is stable on (i, j) for equal scores
        order = np.lexsort((upper_j, upper_i, -scores))[:count]
        return [
            (self.number_min + int(upper_i[o]), self.number_min + int(upper_j[o]), float(scores[o]))
            for o in order
        ]
