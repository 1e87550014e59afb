"""Bias detection for draw history.

Tests whether the draws deviate from uniform randomness using a chi-square
goodness-of-fit test over the whole domain and a per-number runs test.
"""

from collections import Counter

import numpy as np
from loguru import logger
from scipy import stats as sp_stats

from quini_engine.config import settings
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.normalizer import validate_number
from quini_engine.schemas.statistics import (
    BiasContributor,
    BiasReport,
    BiasTestResult,
    RunsTestNumber,
    RunsTestResult,
)

CONTRIBUTOR_DEVIATION = 0.2  # fraction of the expected frequency


def fisher_p_value(chi2: float, df: int) -> float:
    """Upper-tail p-value via Fisher's normal approximation of chi-square."""
    z = np.sqrt(2.0 * chi2) - np.sqrt(2.0 * df - 1.0)
    return float(sp_stats.norm.sf(z))


class BiasDetector:
    """Detect statistical biases in a draw history."""

    def __init__(
        self,
        number_min: int | None = None,
        number_max: int | None = None,
        significance: float | None = None,
    ):
        self.number_min = settings.NUMBER_MIN if number_min is None else number_min
        self.number_max = settings.NUMBER_MAX if number_max is None else number_max
        self.significance = settings.BIAS_SIGNIFICANCE if significance is None else significance
        self.domain_size = self.number_max - self.number_min + 1

    def _check_history(self, history: list[tuple[int, ...]]) -> None:
        for nums in history:
            for n in nums:
                validate_number(n, self.number_min, self.number_max)

    def chi_square_test(self, history: list[tuple[int, ...]]) -> BiasTestResult:
        """Chi-square goodness-of-fit of per-number frequency against uniform.

        Args:
            history: Draw history as number tuples.

        Returns:
            BiasTestResult with the statistic, p-value and the numbers whose
            deviation exceeds 20% of the expected frequency.
        """
        if not history:
            raise PreconditionViolation("Cannot run a bias test on an empty draw history")
        self._check_history(history)

        counter = Counter()
        for nums in history:
            counter.update(nums)

        domain = range(self.number_min, self.number_max + 1)
        observed = np.array([counter.get(n, 0) for n in domain], dtype=np.float64)
        total = int(observed.sum())
        expected = total / self.domain_size
        df = self.domain_size - 1

        chi2 = float(((observed - expected) ** 2 / expected).sum()) if expected > 0 else 0.0
        p_value = fisher_p_value(chi2, df)
        biased = bool(p_value < self.significance)

        contributors = []
        for num, obs in zip(domain, observed):
            deviation = obs - expected
            if abs(deviation) > CONTRIBUTOR_DEVIATION * expected:
                contributors.append(BiasContributor(
                    number=num,
                    observed=int(obs),
                    expected=round(expected, 4),
                    deviation=round(float(deviation), 4),
                    contribution=round(float(deviation ** 2 / expected), 6),
                    direction="over" if deviation > 0 else "under",
                ))
        contributors.sort(key=lambda c: (-c.contribution, c.number))

        logger.debug("[bias] chi2={:.3f} df={} p={:.4f}", chi2, df, p_value)
        return BiasTestResult(
            chi_square=round(chi2, 6),
            degrees_of_freedom=df,
            p_value=round(p_value, 6),
            biased=biased,
            significance_level=self.significance,
            expected_frequency=round(expected, 4),
            total_appearances=total,
            contributors=contributors,
            interpretation=self._interpret(p_value, biased, contributors),
        )

    def _interpret(
        self, p_value: float, biased: bool, contributors: list[BiasContributor]
    ) -> str:
        if not biased:
            return (
                f"No significant deviation from a uniform distribution "
                f"(p={p_value:.4f} >= {self.significance})."
            )
        top = ", ".join(str(c.number) for c in contributors[:5]) or "none"
        return (
            f"Frequencies deviate from uniform (p={p_value:.4f} < {self.significance}). "
            f"Largest contributors: {top}."
        )

    def runs_test(self, history: list[tuple[int, ...]]) -> RunsTestResult:
        """Wald-Wolfowitz runs test for each number's appearance sequence.

        Tests whether the sequence of appearances (1) and non-appearances (0)
        is random for each number.
        """
        self._check_history(history)
        results = []
        for num in range(self.number_min, self.number_max + 1):
            seq = np.array([1 if num in draw else 0 for draw in history], dtype=np.int8)
            n1 = int(seq.sum())
            n0 = len(seq) - n1

            if n1 == 0 or n0 == 0:
                results.append(RunsTestNumber(
                    number=num, runs=0, expected_runs=0.0, z_score=0.0, p_value=1.0,
                ))
                continue

            runs = 1 + int(np.count_nonzero(seq[1:] != seq[:-1]))

            n = n0 + n1
            expected_runs = 1 + 2 * n0 * n1 / n
            var_runs = (2 * n0 * n1 * (2 * n0 * n1 - n)) / (n * n * (n - 1))

            if var_runs > 0:
                z = (runs - expected_runs) / np.sqrt(var_runs)
                p = 2 * sp_stats.norm.sf(abs(z))
            else:
                z = 0.0
                p = 1.0

            results.append(RunsTestNumber(
                number=num,
                runs=runs,
                expected_runs=round(float(expected_runs), 2),
                z_score=round(float(z), 4),
                p_value=round(float(p), 6),
            ))

        return RunsTestResult(
            per_number=results,
            significant_count=sum(1 for r in results if r.p_value < self.significance),
        )

    def full_report(self, history: list[tuple[int, ...]]) -> BiasReport:
        return BiasReport(
            total_draws=len(history),
            chi_square=self.chi_square_test(history),
            runs_test=self.runs_test(history),
        )
