"""Wheeling service: system generation, validation, filtering and entropy."""

from quini_engine.config import settings
from quini_engine.engine.entropy import EntropyGate, spacing_entropy, spacing_gaps
from quini_engine.engine.filters import FilterBounds, HeuristicFilters
from quini_engine.engine.normalizer import normalize_history, validate_combination
from quini_engine.engine.statistics import StatisticsEngine
from quini_engine.engine.wheeling import WheelingEngine, build_system
from quini_engine.schemas.wheeling import (
    EntropyAnalysis,
    EntropyRequest,
    FilterRequest,
    FilterResult,
    GenerateRequest,
    GenerateResponse,
    SystemValidation,
    ValidateRequest,
)
from quini_engine.services.analysis_service import run_sync


def _generate(request: GenerateRequest) -> GenerateResponse:
    engine = WheelingEngine()
    system = engine.generate(
        request.base_numbers, request.guarantee, request.max_combinations
    )
    return GenerateResponse(system=system, validation=engine.validate(system))


def _validate(request: ValidateRequest) -> SystemValidation:
    combos = [validate_combination(c) for c in request.combinations]
    system = build_system(request.base_numbers, combos, request.guarantee)
    return WheelingEngine().validate(system)


def _filter(request: FilterRequest) -> FilterResult:
    analysis = None
    if request.draws:
        analysis = StatisticsEngine().analyze(normalize_history(request.draws, settings.MODALITY))
    bounds = FilterBounds(
        min_even=request.min_even,
        max_even=request.max_even,
        min_odd=request.min_odd,
        max_odd=request.max_odd,
        sum_min=request.sum_min,
        sum_max=request.sum_max,
        sum_std_deviations=request.sum_std_deviations,
        spacing_min=request.spacing_min,
        spacing_max=request.spacing_max,
        amplitude_min=request.amplitude_min,
        amplitude_max=request.amplitude_max,
        entropy_min=request.entropy_min,
        entropy_max=request.entropy_max,
        require_high_delay=request.require_high_delay,
    )
    return HeuristicFilters(bounds).apply(request.combinations, analysis)


def analyze_entropy(request: EntropyRequest) -> list[EntropyAnalysis]:
    gate = EntropyGate(minimum=request.entropy_min, maximum=request.entropy_max)
    result = []
    for combo in request.combinations:
        numbers = validate_combination(combo)
        value = gate.value(numbers)
        result.append(EntropyAnalysis(
            numbers=numbers,
            gaps=spacing_gaps(numbers),
            entropy=round(spacing_entropy(numbers), 6),
            normalized=round(value, 6),
            valid=gate.minimum <= value <= gate.maximum,
        ))
    return result


async def generate_system(request: GenerateRequest) -> GenerateResponse:
    return await run_sync(_generate, request)


async def validate_system(request: ValidateRequest) -> SystemValidation:
    return await run_sync(_validate, request)


async def apply_filters(request: FilterRequest) -> FilterResult:
    return await run_sync(_filter, request)
