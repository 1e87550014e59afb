"""Aggregate API v1 router."""

from fastapi import APIRouter

from quini_engine.api.v1.endpoints import analysis, filters, wheeling

api_router = APIRouter()

api_router.include_router(analysis.router, prefix="/analysis", tags=["analysis"])
api_router.include_router(wheeling.router, prefix="/wheeling", tags=["wheeling"])
api_router.include_router(filters.router, prefix="/filters", tags=["filters"])
