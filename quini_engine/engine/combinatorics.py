"""Lazy subset enumeration helpers."""

from collections.abc import Iterable, Iterator
from itertools import combinations, islice
from math import comb


def subsets(items: Iterable[int], size: int) -> Iterator[tuple[int, ...]]:
    """Yield every ``size``-subset of ``items`` in lexicographic order.

    The generator is finite and restartable by calling again; nothing is
    materialized up front.
    """
    return combinations(sorted(items), size)


def count_subsets(n: int, size: int) -> int:
    return comb(n, size) if 0 <= size <= n else 0


def chunked(iterator: Iterable, size: int) -> Iterator[list]:
    """Split an iterator into lists of at most ``size`` items."""
    it = iter(iterator)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


def subset_index(subset: tuple[int, ...], n: int) -> int:
    """Lexicographic rank of a sorted subset of ``range(n)``.

    Matches the position :func:`itertools.combinations` yields the subset at,
    which lets covered objective sets be tracked in a flat boolean array.
    """
    k = len(subset)
    rank = 0
    prev = -1
    for i, value in enumerate(subset):
        for skipped in range(prev + 1, value):
            rank += comb(n - skipped - 1, k - i - 1)
        prev = value
    return rank
