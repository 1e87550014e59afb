"""Pydantic schemas for covering designs, scoring and the final verdict."""

from pydantic import BaseModel, Field, model_validator

from quini_engine.schemas.draws import HistoricalDraw
from quini_engine.schemas.statistics import (
    BiasTestResult,
    DeltaDistribution,
    StatisticalAnalysis,
)


class CoverageGuarantee(BaseModel):
    """At least ``hits_required`` numbers of any ``numbers_drawn``-subset of the
    base set appear together in one generated combination."""

    model_config = {"frozen": True}

    hits_required: int = Field(4, ge=1, le=6)
    numbers_drawn: int = Field(5, ge=1)

    @model_validator(mode="after")
    def _check_order(self):
        if self.hits_required > self.numbers_drawn:
            raise ValueError("hits_required cannot exceed numbers_drawn")
        return self


class ReducedSystem(BaseModel):
    model_config = {"frozen": True}

    base_numbers: tuple[int, ...]
    combinations: tuple[tuple[int, ...], ...]
    guarantee: CoverageGuarantee
    strategy: str  # "exact" | "heuristic" | "external"
    objective_sets: int = 0
    covered_objective_sets: int = 0


class SystemValidation(BaseModel):
    valid: bool
    coverage: float  # percentage 0-100
    covered: int
    total: int
    message: str


class ScoringWeights(BaseModel):
    model_config = {"frozen": True}

    affinity: float = 0.046
    entropy: float = 0.578
    amplitude: float = 0.262
    frequency: float = 0.113

    @classmethod
    def neutral(cls) -> "ScoringWeights":
        return cls(affinity=0.25, entropy=0.25, amplitude=0.25, frequency=0.25)


class ScoredCombination(BaseModel):
    rank: int
    numbers: tuple[int, ...]
    affinity: float
    entropy: float
    amplitude: float
    frequency: float
    score: float


class JudgeVerdict(BaseModel):
    top3: list[list[int]]
    analysis: str
    reasons: list[str]
    source: str  # "judge" | "fallback" | "score"


class FilterRequest(BaseModel):
    combinations: list[list[int]]
    draws: list[HistoricalDraw] = []
    min_even: int | None = None
    max_even: int | None = None
    min_odd: int | None = None
    max_odd: int | None = None
    sum_min: int | None = None
    sum_max: int | None = None
    sum_std_deviations: float | None = None
    spacing_min: int | None = None
    spacing_max: int | None = None
    amplitude_min: int | None = None
    amplitude_max: int | None = None
    entropy_min: float | None = None
    entropy_max: float | None = None
    require_high_delay: bool = False


class FilterResult(BaseModel):
    kept: list[tuple[int, ...]]
    removed: int
    reduction: float  # percentage
    applied: list[str]


class GenerateRequest(BaseModel):
    base_numbers: list[int]
    guarantee: CoverageGuarantee = CoverageGuarantee()
    max_combinations: int | None = Field(None, ge=1)


class GenerateResponse(BaseModel):
    system: ReducedSystem
    validation: SystemValidation


class ValidateRequest(BaseModel):
    base_numbers: list[int]
    combinations: list[list[int]]
    guarantee: CoverageGuarantee = CoverageGuarantee()


class EntropyRequest(BaseModel):
    combinations: list[list[int]]
    entropy_min: float | None = None
    entropy_max: float | None = None


class EntropyAnalysis(BaseModel):
    numbers: tuple[int, ...]
    gaps: list[int]
    entropy: float
    normalized: float
    valid: bool


class RunRequest(BaseModel):
    draws: list[HistoricalDraw]
    base_numbers: list[int] | None = None
    guarantee: CoverageGuarantee | None = None
    weights: ScoringWeights | None = None
    max_combinations: int | None = Field(None, ge=1)
    use_judge: bool = False


class PipelineResult(BaseModel):
    analysis: StatisticalAnalysis
    deltas: DeltaDistribution
    bias: BiasTestResult
    system: ReducedSystem
    validation: SystemValidation
    ranking: list[ScoredCombination]
    verdict: JudgeVerdict
    degraded: bool = False  # parallel evaluation fell back to sequential
