"""Number statistics engine.

Per-number frequency, delay and Poisson appearance score, plus the draw-level
aggregates (sum moving averages, amplitude spread, atypical draws) used by the
filters and the judge summary. Everything is recomputed from the full history
on every call.
"""

import numpy as np
from loguru import logger
from scipy import stats as sp_stats

from quini_engine.config import settings
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.normalizer import validate_number
from quini_engine.schemas.draws import NormalizedDraw
from quini_engine.schemas.statistics import (
    AmplitudeStatistics,
    AnalysisPeriod,
    AtypicalDraw,
    FrequencyDeviation,
    NumberStatistic,
    StatisticalAnalysis,
)

ATYPICAL_SUM_Z = 2.0


def incidence_matrix(
    draws: list[NormalizedDraw], number_min: int, number_max: int
) -> np.ndarray:
    """Binary draws x domain matrix: 1 where the number was drawn."""
    size = number_max - number_min + 1
    matrix = np.zeros((len(draws), size), dtype=np.int8)
    for row, draw in enumerate(draws):
        cols = [validate_number(n, number_min, number_max) - number_min for n in draw.numbers]
        matrix[row, cols] = 1
    return matrix


class StatisticsEngine:
    """Compute per-number and per-draw statistics over a draw history."""

    def __init__(
        self,
        number_min: int | None = None,
        number_max: int | None = None,
        poisson_window: int | None = None,
        anomaly_threshold: float | None = None,
        windows: list[int] | None = None,
    ):
        self.number_min = settings.NUMBER_MIN if number_min is None else number_min
        self.number_max = settings.NUMBER_MAX if number_max is None else number_max
        self.poisson_window = poisson_window or settings.POISSON_WINDOW
        self.anomaly_threshold = (
            settings.ANOMALY_THRESHOLD if anomaly_threshold is None else anomaly_threshold
        )
        self.windows = windows or list(settings.ANALYSIS_WINDOWS)

    def analyze(self, draws: list[NormalizedDraw]) -> StatisticalAnalysis:
        if not draws:
            raise PreconditionViolation("Cannot compute statistics on an empty draw history")

        ordered = sorted(draws, key=lambda d: (d.draw_date, d.draw_number))
        total = len(ordered)
        matrix = incidence_matrix(ordered, self.number_min, self.number_max)

        numbers = [
            self._number_statistic(self.number_min + col, matrix[:, col], ordered)
            for col in range(matrix.shape[1])
        ]

        frequencies = np.array([s.frequency for s in numbers], dtype=np.float64)
        freq_mean = float(frequencies.mean())
        freq_std = float(frequencies.std())

        sums = np.array([d.total for d in ordered], dtype=np.float64)
        sum_mean = float(sums.mean())
        sum_std = float(sums.std())

        analysis = StatisticalAnalysis(
            period=AnalysisPeriod(
                start=ordered[0].draw_date,
                end=ordered[-1].draw_date,
                total_draws=total,
            ),
            numbers=numbers,
            frequency_mean=round(freq_mean, 6),
            frequency_std=round(freq_std, 6),
            sum_mean=round(sum_mean, 6),
            sum_std=round(sum_std, 6),
            moving_averages={w: self.moving_average(sums, w) for w in self.windows},
            amplitude=self.amplitude_statistics([d.amplitude for d in ordered]),
            high_delay_numbers=[s.number for s in numbers if s.high_delay],
            significant_deviations=self._significant_deviations(numbers, freq_mean, freq_std),
            atypical_draws=self._atypical_draws(ordered, sum_mean, sum_std),
        )
        logger.debug(
            "[statistics] {} draws analysed, {} high-delay numbers",
            total, len(analysis.high_delay_numbers),
        )
        return analysis

    def _number_statistic(
        self, number: int, column: np.ndarray, ordered: list[NormalizedDraw]
    ) -> NumberStatistic:
        total = len(column)
        appearances = np.flatnonzero(column)
        frequency = int(appearances.size)
        relative = frequency / total

        if frequency:
            last = int(appearances[-1])
            delay = total - 1 - last
            last_seen = ordered[last].draw_date
        else:
            delay = total
            last_seen = None

        # Fewer than two appearances leave the gap distribution undefined
        if frequency >= 2:
            intervals = np.diff(appearances).astype(np.float64)
            mean_delay = float(intervals.mean())
            delay_std = float(intervals.std())
        else:
            mean_delay = 0.0
            delay_std = 0.0

        window = min(self.poisson_window, total)
        lam = relative * window
        score = float(sp_stats.poisson.sf(0, lam)) if lam > 0 else 0.0

        return NumberStatistic(
            number=number,
            frequency=frequency,
            relative_frequency=relative,
            last_seen=last_seen,
            delay=delay,
            mean_delay=mean_delay,
            delay_std=delay_std,
            poisson_lambda=lam,
            poisson_score=score,
            high_delay=self.is_high_delay(delay, mean_delay, delay_std),
        )

    def is_high_delay(self, delay: int, mean_delay: float, delay_std: float) -> bool:
        return delay > mean_delay + self.anomaly_threshold * delay_std

    @staticmethod
    def moving_average(values: np.ndarray, window: int) -> list[float]:
        """Mean over each full sliding window; empty when history is shorter."""
        if window <= 0 or len(values) < window:
            return []
        kernel = np.ones(window) / window
        return [round(float(v), 4) for v in np.convolve(values, kernel, mode="valid")]

    @staticmethod
    def amplitude_statistics(amplitudes: list[int]) -> AmplitudeStatistics:
        arr = np.asarray(amplitudes, dtype=np.float64)
        p25, p50, p75 = np.percentile(arr, [25, 50, 75])
        return AmplitudeStatistics(
            mean=round(float(arr.mean()), 4),
            std=round(float(arr.std()), 4),
            min=int(arr.min()),
            max=int(arr.max()),
            p25=float(p25),
            p50=float(p50),
            p75=float(p75),
        )

    def _significant_deviations(
        self, numbers: list[NumberStatistic], mean: float, std: float
    ) -> list[FrequencyDeviation]:
        if std == 0:
            return []
        deviations = []
        for stat in numbers:
            z = (stat.frequency - mean) / std
            if z > self.anomaly_threshold:
                deviations.append(FrequencyDeviation(
                    number=stat.number,
                    frequency=stat.frequency,
                    z_score=round(z, 4),
                ))
        deviations.sort(key=lambda d: (-d.z_score, d.number))
        return deviations

    @staticmethod
    def _atypical_draws(
        ordered: list[NormalizedDraw], mean: float, std: float
    ) -> list[AtypicalDraw]:
        if std == 0:
            return []
        result = []
        for draw in ordered:
            z = (draw.total - mean) / std
            if abs(z) > ATYPICAL_SUM_Z:
                result.append(AtypicalDraw(
                    draw_number=draw.draw_number,
                    draw_date=draw.draw_date,
                    total=draw.total,
                    z_score=round(z, 4),
                ))
        return result


def pressure_ranking(analysis: StatisticalAnalysis) -> list[tuple[int, float]]:
    """Rank numbers by delay pressure: current delay against its usual gap,
    scaled by how spread the domain's frequencies are."""
    spread = analysis.frequency_std
    ranked = []
    for stat in analysis.numbers:
        if stat.mean_delay > 0:
            pressure = stat.delay / stat.mean_delay * spread
        else:
            pressure = stat.delay * spread
        ranked.append((stat.number, pressure))
    ranked.sort(key=lambda item: (-item[1], item[0]))
    return ranked
