from itertools import combinations
from types import GeneratorType

from quini_engine.engine.combinatorics import chunked, count_subsets, subset_index, subsets


def test_subsets_are_lazy_and_sorted():
    it = subsets([9, 1, 5], 2)
    assert not isinstance(it, list)
    assert list(it) == [(1, 5), (1, 9), (5, 9)]
    # restartable by calling again
    assert len(list(subsets([9, 1, 5], 2))) == 3


def test_count_subsets():
    assert count_subsets(12, 6) == 924
    assert count_subsets(6, 5) == 6
    assert count_subsets(5, 6) == 0


def test_subset_index_matches_enumeration_order():
    for n, k in [(7, 3), (12, 4), (6, 6), (9, 1)]:
        for rank, subset in enumerate(combinations(range(n), k)):
            assert subset_index(subset, n) == rank


def test_chunked():
    chunks = chunked(iter(range(7)), 3)
    assert isinstance(chunks, GeneratorType)
    assert list(chunks) == [[0, 1, 2], [3, 4, 5], [6]]
    assert list(chunked([], 3)) == []
