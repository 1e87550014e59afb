"""Analysis service: statistics, bias, deltas, transitions and full reduction runs.

The engines are synchronous and CPU-bound, so they run in an executor to
keep the event loop free.
"""

import asyncio
from functools import partial

from quini_engine.config import settings
from quini_engine.engine.bias import BiasDetector
from quini_engine.engine.entropy import build_delta_distribution
from quini_engine.engine.markov import MarkovChain
from quini_engine.engine.normalizer import normalize_history
from quini_engine.engine.pipeline import ReductionPipeline
from quini_engine.engine.statistics import StatisticsEngine
from quini_engine.schemas.draws import HistoricalDraw
from quini_engine.schemas.statistics import (
    BiasReport,
    DeltaDistribution,
    MarkovAnalysis,
    StatisticalAnalysis,
)
from quini_engine.schemas.wheeling import PipelineResult, RunRequest


async def run_sync(func, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


def _statistics(draws: list[HistoricalDraw]) -> StatisticalAnalysis:
    return StatisticsEngine().analyze(normalize_history(draws, settings.MODALITY))


def _bias(draws: list[HistoricalDraw]) -> BiasReport:
    history = normalize_history(draws, settings.MODALITY)
    return BiasDetector().full_report([d.numbers for d in history])


def _deltas(draws: list[HistoricalDraw]) -> DeltaDistribution:
    return build_delta_distribution(normalize_history(draws, settings.MODALITY))


def _markov(draws: list[HistoricalDraw]) -> MarkovAnalysis:
    history = normalize_history(draws, settings.MODALITY)
    return MarkovChain.build(history).summary(len(history))


async def get_statistics(draws: list[HistoricalDraw]) -> StatisticalAnalysis:
    return await run_sync(_statistics, draws)


async def get_bias_report(draws: list[HistoricalDraw]) -> BiasReport:
    """Chi-square uniformity test plus per-number runs test."""
    return await run_sync(_bias, draws)


async def get_delta_distribution(draws: list[HistoricalDraw]) -> DeltaDistribution:
    return await run_sync(_deltas, draws)


async def get_markov_analysis(draws: list[HistoricalDraw]) -> MarkovAnalysis:
    """Strongest number-to-number transitions in draw order."""
    return await run_sync(_markov, draws)


async def run_reduction(
    request: RunRequest, pipeline: ReductionPipeline
) -> PipelineResult:
    return await run_sync(
        pipeline.run,
        request.draws,
        base_numbers=request.base_numbers,
        guarantee=request.guarantee,
        weights=request.weights,
        max_combinations=request.max_combinations,
        use_judge=request.use_judge or settings.JUDGE_ENABLED,
    )
