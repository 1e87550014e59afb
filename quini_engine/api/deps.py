"""Dependency injection for FastAPI."""

from quini_engine.engine.pipeline import ReductionPipeline


def get_pipeline() -> ReductionPipeline:
    """A fresh pipeline per request; runs share nothing."""
    return ReductionPipeline()
