"""Heuristic filters that prune candidate combinations.

Each filter is optional; an unset bound does not constrain. The report names
only the filters that actually removed something.
"""

from dataclasses import dataclass

from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.entropy import EntropyGate
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.normalizer import gaps, validate_combination
from quini_engine.schemas.statistics import StatisticalAnalysis
from quini_engine.schemas.wheeling import FilterResult


@dataclass(frozen=True)
class FilterBounds:
    min_even: int | None = None
    max_even: int | None = None
    min_odd: int | None = None
    max_odd: int | None = None
    sum_min: float | None = None
    sum_max: float | None = None
    sum_std_deviations: float | None = None
    spacing_min: int | None = None
    spacing_max: int | None = None
    amplitude_min: int | None = None
    amplitude_max: int | None = None
    entropy_min: float | None = None
    entropy_max: float | None = None
    require_high_delay: bool = False

    @classmethod
    def from_settings(cls) -> "FilterBounds":
        return cls(
            min_even=settings.PARITY_MIN_EVEN,
            max_even=settings.PARITY_MAX_EVEN,
            sum_min=settings.SUM_MIN,
            sum_max=settings.SUM_MAX,
            sum_std_deviations=settings.SUM_STD_DEVIATIONS,
            spacing_min=settings.SPACING_MIN,
            spacing_max=settings.SPACING_MAX,
            amplitude_min=settings.AMPLITUDE_MIN,
            amplitude_max=settings.AMPLITUDE_MAX,
            entropy_min=settings.ENTROPY_MIN,
            entropy_max=settings.ENTROPY_MAX,
        )


def _within(value, lower, upper) -> bool:
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


class HeuristicFilters:
    def __init__(self, bounds: FilterBounds | None = None):
        self.bounds = bounds or FilterBounds.from_settings()

    def sum_band(self, analysis: StatisticalAnalysis | None) -> tuple[float | None, float | None]:
        """Explicit bounds, or mean +/- n std of historical draw sums."""
        b = self.bounds
        if b.sum_std_deviations is not None:
            if analysis is None:
                raise PreconditionViolation("A sum band in std units needs a statistical analysis")
            spread = b.sum_std_deviations * analysis.sum_std
            return analysis.sum_mean - spread, analysis.sum_mean + spread
        return b.sum_min, b.sum_max

    def apply(
        self,
        combinations: list,
        analysis: StatisticalAnalysis | None = None,
    ) -> FilterResult:
        b = self.bounds
        candidates = [validate_combination(c) for c in combinations]
        kept = list(candidates)
        applied = []

        def run(name, predicate):
            nonlocal kept
            before = len(kept)
            kept = [c for c in kept if predicate(c)]
            if len(kept) < before:
                applied.append(name)

        if any(v is not None for v in (b.min_even, b.max_even, b.min_odd, b.max_odd)):
            def parity(c):
                even = sum(1 for n in c if n % 2 == 0)
                return _within(even, b.min_even, b.max_even) and _within(
                    len(c) - even, b.min_odd, b.max_odd
                )
            run("parity", parity)

        lo, hi = self.sum_band(analysis)
        if lo is not None or hi is not None:
            run("sum", lambda c: _within(sum(c), lo, hi))

        if b.spacing_min is not None or b.spacing_max is not None:
            run("spacing", lambda c: all(
                _within(g, b.spacing_min, b.spacing_max) for g in gaps(c)
            ))

        if b.amplitude_min is not None or b.amplitude_max is not None:
            run("amplitude", lambda c: _within(c[-1] - c[0], b.amplitude_min, b.amplitude_max))

        if b.entropy_min is not None or b.entropy_max is not None:
            gate = EntropyGate(
                minimum=0.0 if b.entropy_min is None else b.entropy_min,
                maximum=1.0 if b.entropy_max is None else b.entropy_max,
            )
            run("entropy", lambda c: gate.passes(c, analysis))

        if b.require_high_delay:
            if analysis is None:
                raise PreconditionViolation("The high-delay filter needs a statistical analysis")
            delayed = set(analysis.high_delay_numbers)
            if delayed:
                run("high_delay", lambda c: any(n in delayed for n in c))

        removed = len(candidates) - len(kept)
        reduction = removed / len(candidates) * 100 if candidates else 0.0
        logger.debug(
            "[filters] kept {}/{} ({:.1f}% reduction) via {}",
            len(kept), len(candidates), reduction, applied,
        )
        return FilterResult(
            kept=kept,
            removed=removed,
            reduction=round(reduction, 4),
            applied=applied,
        )
