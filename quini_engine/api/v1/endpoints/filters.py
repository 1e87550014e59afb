"""Heuristic filter API endpoints."""

from fastapi import APIRouter

from quini_engine.schemas.wheeling import FilterRequest, FilterResult
from quini_engine.services import wheeling_service as wheeling

router = APIRouter()


@router.post("/apply", response_model=FilterResult)
async def apply(request: FilterRequest):
    return await wheeling.apply_filters(request)
