import numpy as np
import pytest

from conftest import make_draws
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.markov import MarkovChain
from quini_engine.engine.normalizer import normalize_history

ROWS = [
    [0, 1, 2, 3, 4, 5],
    [1, 2, 10, 20, 30, 40],
    [0, 1, 2, 3, 4, 45],
]


@pytest.fixture
def chain():
    return MarkovChain.build(normalize_history(make_draws(ROWS)))


def test_transition_counts(chain):
    # 5 within each draw plus 5->1 and 40->0 across draws
    assert chain.counts.sum() == 17
    assert chain.counts[1, 2] == 3
    assert chain.counts[5, 1] == 1
    assert chain.counts[40, 0] == 1
    assert chain.counts[45].sum() == 0


def test_rows_are_probability_distributions(chain):
    sums = chain.probabilities.sum(axis=1)
    outgoing = chain.counts.sum(axis=1) > 0
    assert np.allclose(sums[outgoing], 1.0)
    assert np.all(sums[~outgoing] == 0.0)
    assert chain.probability(2, 3) == pytest.approx(2 / 3)
    assert chain.probability(2, 10) == pytest.approx(1 / 3)
    assert chain.probability(4, 45) == pytest.approx(0.5)
    assert chain.probability(45, 0) == 0.0


def test_matrix_is_read_only(chain):
    with pytest.raises(ValueError):
        chain.probabilities[0, 0] = 1.0


def test_history_is_taken_in_date_order():
    draws = normalize_history(make_draws(ROWS))
    reversed_chain = MarkovChain.build(list(reversed(draws)))
    assert np.array_equal(reversed_chain.counts, MarkovChain.build(draws).counts)


def test_combination_probability(chain):
    assert chain.combination_probability([0, 1, 2, 3, 4, 5]) == pytest.approx(1 / 3)
    assert chain.combination_probability([30, 20, 10, 2, 1, 0]) == pytest.approx(1 / 3)
    # 3 -> 5 never observed
    assert chain.combination_probability([0, 1, 2, 3, 5, 6]) == 0.0


def test_most_likely_next(chain):
    top = chain.most_likely_next(2, 3)
    assert [(t.target, t.count) for t in top] == [(3, 2), (10, 1), (0, 0)]
    assert top[0].probability == pytest.approx(0.666667)
    assert all(t.source == 2 for t in top)
    assert [t.target for t in chain.most_likely_next(45, 2)] == [0, 1]


def test_transitions_ordering(chain):
    transitions = chain.transitions()
    assert len(transitions) == 12
    assert [(t.source, t.target) for t in transitions[:3]] == [(1, 2), (0, 1), (3, 4)]
    summary = chain.summary(total_draws=3, top=5)
    assert summary.total_transitions == 17
    assert summary.distinct_transitions == 12
    assert len(summary.strongest) == 5


def test_out_of_domain_is_rejected(chain):
    draws = normalize_history(make_draws(ROWS))
    with pytest.raises(PreconditionViolation, match="outside domain"):
        MarkovChain.build(draws, number_min=1, number_max=45)
    with pytest.raises(PreconditionViolation):
        chain.probability(0, 46)
