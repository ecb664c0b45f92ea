"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contextify import __version__
from contextify.api.routes import health, topics
from contextify.config import settings
from contextify.logging import get_logger, setup_logging
from contextify.services.pipeline import PipelineService

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the store and run the background pipeline for the app's lifetime."""
    logger.info("application_starting", version=__version__)

    pipeline = PipelineService.from_settings()
    recovered = await asyncio.to_thread(pipeline.initialize)
    logger.info("database_connected", recovered=recovered)
    pipeline.start()

    app.state.pipeline = pipeline
    app.state.store = pipeline.store

    yield

    logger.info("application_shutting_down")
    await pipeline.stop()
    pipeline.close()


app = FastAPI(
    title="Contextify",
    description="Topic extraction over ingested social content",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(topics.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {
        "name": "Contextify",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "contextify.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
