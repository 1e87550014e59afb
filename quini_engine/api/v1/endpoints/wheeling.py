"""Wheeling API endpoints."""

from fastapi import APIRouter

from quini_engine.schemas.wheeling import (
    EntropyAnalysis,
    EntropyRequest,
    GenerateRequest,
    GenerateResponse,
    SystemValidation,
    ValidateRequest,
)
from quini_engine.services import wheeling_service as wheeling

router = APIRouter()


@router.post("/generate", response_model=GenerateResponse)
async def generate(request: GenerateRequest):
    """Build a reduced system from a base set and validate its guarantee."""
    return await wheeling.generate_system(request)


@router.post("/validate", response_model=SystemValidation)
async def validate(request: ValidateRequest):
    return await wheeling.validate_system(request)


@router.post("/entropy", response_model=list[EntropyAnalysis])
async def entropy(request: EntropyRequest):
    """Spacing entropy and gate verdict per combination."""
    return wheeling.analyze_entropy(request)
