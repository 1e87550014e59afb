from datetime import date, timedelta

import numpy as np
import pytest

from quini_engine.engine.executor import ParallelEvaluator
from quini_engine.engine.normalizer import normalize_history
from quini_engine.schemas.draws import HistoricalDraw, Modality

START = date(2024, 1, 3)


def make_draws(rows, modality=Modality.TRADICIONAL, start=START) -> list[HistoricalDraw]:
    """One draw every 3-4 days (Wednesday/Sunday cadence), numbered from 1."""
    return [
        HistoricalDraw(
            draw_number=i + 1,
            draw_date=start + timedelta(days=(i // 2) * 7 + (i % 2) * 4),
            numbers=list(row),
            modality=modality,
        )
        for i, row in enumerate(rows)
    ]


@pytest.fixture
def small_rows():
    return [
        [0, 1, 2, 3, 4, 5],
        [0, 6, 7, 8, 9, 10],
        [1, 6, 11, 12, 13, 14],
        [0, 15, 16, 17, 18, 19],
    ]


@pytest.fixture
def small_history(small_rows):
    return make_draws(small_rows)


@pytest.fixture
def small_normalized(small_history):
    return normalize_history(small_history)


@pytest.fixture
def synthetic_history():
    rng = np.random.default_rng(42)
    rows = [sorted(int(n) for n in rng.choice(46, 6, replace=False)) for _ in range(200)]
    return make_draws(rows)


@pytest.fixture
def synthetic_normalized(synthetic_history):
    return normalize_history(synthetic_history)


@pytest.fixture
def uniform_history():
    """23 draws in which every number of 0..45 appears exactly 3 times."""
    sequence = list(range(46)) * 3
    rows = [sequence[i:i + 6] for i in range(0, len(sequence), 6)]
    return make_draws(rows)


@pytest.fixture
def sequential_evaluator():
    return ParallelEvaluator(limiter_threshold=10**9, pool_threshold=10**9)


@pytest.fixture
def limiter_evaluator():
    return ParallelEvaluator(limiter_threshold=1, pool_threshold=10**9, max_in_flight=3)


@pytest.fixture
def pool_evaluator():
    return ParallelEvaluator(limiter_threshold=1, pool_threshold=1, max_workers=2)
