"""Covering-design generator (wheeling engine).

Given a base set B and a guarantee (k, m), builds 6-number combinations from
B such that any m numbers drawn from B share at least k numbers with one of
them. Small bases use greedy set cover over every 6-subset; large bases use a
strided spread of B whose coverage is measured afterwards by the validator.
"""

from itertools import combinations, islice
from math import ceil

import numpy as np
from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.combinatorics import count_subsets, subset_index, subsets
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.executor import ParallelEvaluator
from quini_engine.engine.normalizer import validate_number
from quini_engine.schemas.wheeling import CoverageGuarantee, ReducedSystem, SystemValidation

PICK = 6
EXACT = "exact"
HEURISTIC = "heuristic"


# --- Worker tasks (module-level so a process pool can pickle them) ---

def candidate_objective_rows(n: int, k: int, start: int, stop: int) -> np.ndarray:
    """Objective-set ranks contained in candidates ``start..stop`` of
    ``combinations(range(n), 6)``. One row per candidate."""
    rows = [
        [subset_index(sub, n) for sub in combinations(cand, k)]
        for cand in islice(subsets(range(n), PICK), start, stop)
    ]
    return np.asarray(rows, dtype=np.int64).reshape(-1, count_subsets(PICK, k))


def strided_batch(ordered: tuple[int, ...], start: int, stop: int, stride: int) -> list[tuple[int, ...]]:
    """Candidates ``start..stop`` of the cyclic stride walk over ``ordered``."""
    n = len(ordered)
    batch = []
    for i in range(start, stop):
        offset = i % n
        step = stride + i // n
        picks = []
        for j in range(PICK):
            value = ordered[(offset + j * step) % n]
            if value not in picks:
                picks.append(value)
        for value in ordered:
            if len(picks) == PICK:
                break
            if value not in picks:
                picks.append(value)
        batch.append(tuple(sorted(picks)))
    return batch


def count_covered_subsets(
    n: int, m: int, k: int, membership: np.ndarray, start: int, stop: int
) -> int:
    """How many of m-subsets ``start..stop`` of ``range(n)`` share at least k
    positions with some row of ``membership``."""
    drawn = np.fromiter(
        (i for sub in islice(subsets(range(n), m), start, stop) for i in sub),
        dtype=np.int64,
    ).reshape(-1, m)
    if drawn.size == 0:
        return 0
    # hits[s, c] = |subset s ∩ combination c|
    hits = membership[:, drawn].sum(axis=2).T
    return int((hits >= k).any(axis=1).sum())


def check_inputs(
    base_numbers,
    guarantee: CoverageGuarantee,
    number_min: int | None = None,
    number_max: int | None = None,
) -> tuple[int, ...]:
    """Sorted base set, or PreconditionViolation if B or (k, m) is unusable."""
    values = list(base_numbers)
    for n in values:
        validate_number(n, number_min, number_max)
    if len(set(values)) != len(values):
        raise PreconditionViolation(f"Base set has duplicate numbers: {sorted(values)}")
    if len(values) < PICK:
        raise PreconditionViolation(
            f"Base set needs at least {PICK} numbers, got {len(values)}"
        )
    k, m = guarantee.hits_required, guarantee.numbers_drawn
    if not 1 <= k <= m <= len(values) or k > PICK:
        raise PreconditionViolation(
            f"Invalid guarantee k={k}, m={m} for a base set of {len(values)}"
        )
    return tuple(sorted(values))


class WheelingEngine:
    """Generate and validate reduced wheeling systems."""

    def __init__(
        self,
        evaluator: ParallelEvaluator | None = None,
        exact_candidate_limit: int | None = None,
        max_combinations: int | None = None,
        chunk_size: int | None = None,
        number_min: int | None = None,
        number_max: int | None = None,
    ):
        self.evaluator = evaluator or ParallelEvaluator()
        self.exact_candidate_limit = (
            settings.WHEEL_EXACT_CANDIDATE_LIMIT
            if exact_candidate_limit is None
            else exact_candidate_limit
        )
        self.max_combinations = (
            settings.WHEEL_MAX_COMBINATIONS if max_combinations is None else max_combinations
        )
        self.chunk_size = chunk_size or settings.PARALLEL_CHUNK_SIZE
        self.number_min = number_min
        self.number_max = number_max

    def route(self, base_size: int) -> str:
        """Exact greedy cover while the 6-subsets of B stay enumerable."""
        if count_subsets(base_size, PICK) <= self.exact_candidate_limit:
            return EXACT
        return HEURISTIC

    def generate(
        self,
        base_numbers,
        guarantee: CoverageGuarantee | None = None,
        max_combinations: int | None = None,
    ) -> ReducedSystem:
        guarantee = guarantee or CoverageGuarantee(
            hits_required=settings.GUARANTEE_HITS,
            numbers_drawn=settings.GUARANTEE_DRAWN,
        )
        base = check_inputs(base_numbers, guarantee, self.number_min, self.number_max)
        limit = self.max_combinations if max_combinations is None else max_combinations
        if limit < 1:
            raise PreconditionViolation("max_combinations must be at least 1")

        strategy = self.route(len(base))
        logger.info(
            "[wheeling] |B|={} k={} m={} -> {} branch",
            len(base), guarantee.hits_required, guarantee.numbers_drawn, strategy,
        )
        if strategy == EXACT:
            combos = self._greedy_cover(base, guarantee.hits_required)
        else:
            combos = self._strided_spread(base, limit)

        objectives = count_subsets(len(base), guarantee.hits_required)
        covered = self._covered_objectives(base, combos, guarantee.hits_required)
        if covered < objectives and strategy == EXACT:
            logger.warning(
                "[wheeling] greedy cover stalled at {}/{} objective sets", covered, objectives
            )
        logger.info("[wheeling] {} combinations generated", len(combos))

        return ReducedSystem(
            base_numbers=base,
            combinations=tuple(combos),
            guarantee=guarantee,
            strategy=strategy,
            objective_sets=objectives,
            covered_objective_sets=covered,
        )

    def _ranges(self, total: int, chunk: int) -> list[tuple[int, int]]:
        return [(start, min(start + chunk, total)) for start in range(0, total, chunk)]

    def _greedy_cover(self, base: tuple[int, ...], k: int) -> list[tuple[int, ...]]:
        n = len(base)
        total_candidates = count_subsets(n, PICK)
        tasks = [
            (n, k, start, stop)
            for start, stop in self._ranges(total_candidates, self.chunk_size)
        ]
        rows = self.evaluator.map(candidate_objective_rows, tasks, workload=total_candidates)
        contains = np.vstack(rows)

        uncovered = np.ones(count_subsets(n, k), dtype=bool)
        chosen = []
        while uncovered.any():
            gains = uncovered[contains].sum(axis=1)
            best = int(np.argmax(gains))  # first maximum = earliest in enumeration order
            if gains[best] == 0:
                break
            chosen.append(best)
            uncovered[contains[best]] = False

        candidates = {idx: None for idx in chosen}
        for idx, cand in enumerate(subsets(range(n), PICK)):
            if idx in candidates:
                candidates[idx] = tuple(base[i] for i in cand)
        return [candidates[idx] for idx in chosen]

    def _strided_spread(self, base: tuple[int, ...], limit: int) -> list[tuple[int, ...]]:
        stride = max(1, len(base) // PICK)
        tasks = [(base, start, stop, stride) for start, stop in self._ranges(limit, self.chunk_size)]
        batches = self.evaluator.map(strided_batch, tasks, workload=limit)

        seen = set()
        combos = []
        for batch in batches:
            for combo in batch:
                if combo not in seen:
                    seen.add(combo)
                    combos.append(combo)
        return combos[:limit]

    @staticmethod
    def _covered_objectives(base: tuple[int, ...], combos, k: int) -> int:
        n = len(base)
        position = {v: i for i, v in enumerate(base)}
        covered = set()
        for combo in combos:
            idx = sorted(position[v] for v in combo if v in position)
            covered.update(subset_index(sub, n) for sub in combinations(idx, k))
        return len(covered)

    def validate(self, system: ReducedSystem) -> SystemValidation:
        """Brute-force check of the guarantee over every m-subset of B.

        The system is valid only at exactly 100% coverage.
        """
        base = tuple(sorted(system.base_numbers))
        n = len(base)
        k, m = system.guarantee.hits_required, system.guarantee.numbers_drawn
        total = count_subsets(n, m)

        if not system.combinations or total == 0:
            return SystemValidation(
                valid=False, coverage=0.0, covered=0, total=total,
                message="System has no combinations to validate",
            )

        position = {v: i for i, v in enumerate(base)}
        membership = np.zeros((len(system.combinations), n), dtype=np.int8)
        for row, combo in enumerate(system.combinations):
            for value in combo:
                if value in position:
                    membership[row, position[value]] = 1

        # Fewer, larger ranges: each worker skips ahead to its start lazily
        spread = self.evaluator.max_workers * 4
        chunk = max(self.chunk_size, ceil(total / spread))
        tasks = [(n, m, k, membership, start, stop) for start, stop in self._ranges(total, chunk)]
        covered = sum(self.evaluator.map(count_covered_subsets, tasks, workload=total))

        coverage = covered / total * 100
        valid = covered == total
        if valid:
            message = f"Guarantee holds: every {m}-subset of B shares {k}+ numbers with a combination"
        else:
            message = f"Partial coverage: {covered}/{total} {m}-subsets satisfied"
        logger.info("[wheeling] validation {:.2f}% ({}/{})", coverage, covered, total)
        return SystemValidation(
            valid=valid,
            coverage=round(coverage, 4),
            covered=covered,
            total=total,
            message=message,
        )


def build_system(base_numbers, combos, guarantee: CoverageGuarantee) -> ReducedSystem:
    """Wrap externally supplied combinations so they can be validated."""
    base = check_inputs(base_numbers, guarantee)
    return ReducedSystem(
        base_numbers=base,
        combinations=tuple(tuple(sorted(c)) for c in combos),
        guarantee=guarantee,
        strategy="external",
        objective_sets=count_subsets(len(base), guarantee.hits_required),
        covered_objective_sets=WheelingEngine._covered_objectives(
            base, combos, guarantee.hits_required
        ),
    )
