import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from alpha_screener.api.routes import analyses, health
from alpha_screener.config import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(
        "Pipeline configuration",
        extra={
            "parallel_stages": settings.analysis_parallel_stages,
            "dedupe_inflight": settings.analysis_dedupe_inflight,
            "cache_backend": "redis" if settings.redis_enabled else "memory",
        },
    )

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Due-diligence screening for early-stage crypto projects",
    lifespan=lifespan,
    debug=settings.debug,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    logger.info(f"{request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(analyses.router, prefix="/api", tags=["analyses"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
    }
