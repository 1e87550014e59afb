"""Analysis API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from quini_engine.api.deps import get_pipeline
from quini_engine.engine.pipeline import ReductionPipeline
from quini_engine.schemas.draws import DrawsRequest
from quini_engine.schemas.statistics import (
    BiasReport,
    DeltaDistribution,
    MarkovAnalysis,
    StatisticalAnalysis,
)
from quini_engine.schemas.wheeling import PipelineResult, RunRequest
from quini_engine.services import analysis_service as analysis

router = APIRouter()


def _require_draws(draws: list):
    if not draws:
        raise HTTPException(status_code=400, detail="At least one draw is required")


@router.post("/run", response_model=PipelineResult)
async def run(
    request: RunRequest,
    pipeline: ReductionPipeline = Depends(get_pipeline),
):
    """Full reduction: statistics, covering design, ranking and final top 3."""
    _require_draws(request.draws)
    return await analysis.run_reduction(request, pipeline)


@router.post("/statistics", response_model=StatisticalAnalysis)
async def statistics(request: DrawsRequest):
    _require_draws(request.draws)
    return await analysis.get_statistics(request.draws)


@router.post("/bias", response_model=BiasReport)
async def bias(request: DrawsRequest):
    """Chi-square uniformity and runs tests."""
    _require_draws(request.draws)
    return await analysis.get_bias_report(request.draws)


@router.post("/deltas", response_model=DeltaDistribution)
async def deltas(request: DrawsRequest):
    _require_draws(request.draws)
    return await analysis.get_delta_distribution(request.draws)


@router.post("/markov", response_model=MarkovAnalysis)
async def markov(request: DrawsRequest):
    _require_draws(request.draws)
    return await analysis.get_markov_analysis(request.draws)
