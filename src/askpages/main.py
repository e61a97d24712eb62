"""AskPages FastAPI Application Entry Point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from askpages import __version__
from askpages.config import settings
from askpages.exception_handlers import register_exception_handlers
from askpages.middleware import configure_logging, register_middleware
from askpages.routers import ai_router
from askpages.schemas import HealthResponse


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager."""
    configure_logging()
    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        ai_driver=settings.ai_driver,
        embedding_driver=settings.embedding_driver_name,
    )
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="AskPages API",
    description="Semantic search and grounded answers over workspace pages",
    version=__version__,
    lifespan=lifespan,
)

register_middleware(app)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ai_router, prefix="/api")


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health check endpoint",
)
async def health_check() -> HealthResponse:
    """Health check endpoint for container orchestration."""
    return HealthResponse(
        status="healthy",
        service="askpages-api",
        version=__version__,
    )
