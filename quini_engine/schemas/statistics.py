"""Pydantic schemas for statistics."""

from datetime import date

from pydantic import BaseModel


class NumberStatistic(BaseModel):
    model_config = {"frozen": True}

    number: int
    frequency: int
    relative_frequency: float
    last_seen: date | None = None
    delay: int  # draws since last appearance
    mean_delay: float
    delay_std: float
    poisson_lambda: float
    poisson_score: float  # P(X >= 1) within the Poisson window
    high_delay: bool = False


class AnalysisPeriod(BaseModel):
    start: date
    end: date
    total_draws: int


class AmplitudeStatistics(BaseModel):
    mean: float
    std: float
    min: int
    max: int
    p25: float
    p50: float
    p75: float


class FrequencyDeviation(BaseModel):
    number: int
    frequency: int
    z_score: float


class AtypicalDraw(BaseModel):
    draw_number: int
    draw_date: date
    total: int
    z_score: float


class StatisticalAnalysis(BaseModel):
    period: AnalysisPeriod
    numbers: list[NumberStatistic]
    frequency_mean: float
    frequency_std: float
    sum_mean: float
    sum_std: float
    moving_averages: dict[int, list[float]]
    amplitude: AmplitudeStatistics
    high_delay_numbers: list[int]
    significant_deviations: list[FrequencyDeviation]
    atypical_draws: list[AtypicalDraw]

    def statistic(self, number: int) -> NumberStatistic:
        for stat in self.numbers:
            if stat.number == number:
                return stat
        raise KeyError(number)


class DeltaStat(BaseModel):
    gap: int
    count: int
    relative_frequency: float


class DeltaDistribution(BaseModel):
    deltas: list[DeltaStat]
    mean: float
    std: float
    total: int


class DeltaAnalysis(BaseModel):
    numbers: list[int]
    deltas: list[int]
    mean_relative_frequency: float
    conforms: bool  # more low gaps than high gaps relative to the historical mean


class BiasContributor(BaseModel):
    number: int
    observed: int
    expected: float
    deviation: float
    contribution: float
    direction: str  # "over" | "under"


class BiasTestResult(BaseModel):
    chi_square: float
    degrees_of_freedom: int
    p_value: float
    biased: bool
    significance_level: float
    expected_frequency: float
    total_appearances: int
    contributors: list[BiasContributor]
    interpretation: str


class RunsTestNumber(BaseModel):
    number: int
    runs: int
    expected_runs: float
    z_score: float
    p_value: float


class RunsTestResult(BaseModel):
    per_number: list[RunsTestNumber]
    significant_count: int


class BiasReport(BaseModel):
    total_draws: int
    chi_square: BiasTestResult
    runs_test: RunsTestResult


class TransitionStat(BaseModel):
    model_config = {"frozen": True}

    source: int
    target: int
    count: int
    probability: float


class MarkovAnalysis(BaseModel):
    total_draws: int
    total_transitions: int
    distinct_transitions: int
    strongest: list[TransitionStat]
