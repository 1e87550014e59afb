"""FastAPI application entry point."""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.errors import PreconditionViolation

# Configure loguru
settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
logger.remove()
logger.add(sys.stderr, level="DEBUG" if settings.DEBUG else "INFO")
logger.add(settings.LOG_DIR / "app.log", rotation="10 MB", retention="7 days", level="INFO")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(
        "Starting {} (domain {}-{}, modality {})",
        settings.APP_NAME, settings.NUMBER_MIN, settings.NUMBER_MAX, settings.MODALITY,
    )
    if settings.JUDGE_ENABLED and not settings.JUDGE_API_KEY:
        logger.warning("Judge enabled without JUDGE_API_KEY; runs will use the score fallback")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Quini 6 draw analysis and combinatorial reduction engine",
    lifespan=lifespan,
)


@app.exception_handler(PreconditionViolation)
async def precondition_handler(request: Request, exc: PreconditionViolation):
    logger.info("Rejected {} {}: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# Include API routers
from quini_engine.api.v1.router import api_router  # noqa: E402
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}
