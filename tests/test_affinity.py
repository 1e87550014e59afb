from itertools import combinations

import numpy as np
import pytest

from conftest import make_draws
from quini_engine.engine.affinity import AffinityMatrix
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.normalizer import normalize_history


def test_jaccard_values(small_normalized):
    matrix = AffinityMatrix.build(small_normalized)
    # 0 appears in 3 draws, 6 in 2, together once: 1 / (3 + 2 - 1)
    assert matrix.jaccard(0, 6) == pytest.approx(0.25)
    assert matrix.jaccard(2, 3) == pytest.approx(1.0)
    assert matrix.jaccard(44, 45) == 0.0
    assert matrix.jaccard(44, 44) == 1.0


def test_symmetric_with_unit_diagonal(synthetic_normalized):
    matrix = AffinityMatrix.build(synthetic_normalized)
    values = matrix.values
    assert values.shape == (46, 46)
    assert np.array_equal(values, values.T)
    assert np.all(np.diag(values) == 1.0)
    assert values.min() >= 0.0
    assert values.max() <= 1.0


def test_matrix_is_read_only(small_normalized):
    matrix = AffinityMatrix.build(small_normalized)
    with pytest.raises(ValueError):
        matrix.values[0, 1] = 0.5


def test_combination_score_is_mean_of_pairs(synthetic_normalized):
    matrix = AffinityMatrix.build(synthetic_normalized)
    combo = (2, 9, 17, 23, 38, 44)
    expected = np.mean([matrix.jaccard(a, b) for a, b in combinations(combo, 2)])
    assert matrix.combination_score(combo) == pytest.approx(expected)


def test_out_of_domain_rejected(small_normalized):
    matrix = AffinityMatrix.build(small_normalized)
    with pytest.raises(PreconditionViolation):
        matrix.jaccard(0, 46)


def test_top_affinities_and_pairs(small_normalized):
    matrix = AffinityMatrix.build(small_normalized)
    top = matrix.top_affinities(2, 4)
    assert [n for n, _ in top] == [3, 4, 5, 1]
    assert all(score == 1.0 for _, score in top[:3])

    pairs = matrix.strongest_pairs(3)
    assert pairs == [(2, 3, 1.0), (2, 4, 1.0), (2, 5, 1.0)]
    scores = [s for _, _, s in matrix.strongest_pairs(50)]
    assert scores == sorted(scores, reverse=True)


def test_build_rejects_numbers_outside_domain():
    draws = normalize_history(make_draws([[0, 1, 2, 3, 4, 5]] * 3))
    with pytest.raises(PreconditionViolation, match="outside domain"):
        AffinityMatrix.build(draws, number_min=1, number_max=45)
