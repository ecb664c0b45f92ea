"""Health check endpoints."""

import asyncio

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from contextify.api.deps import PipelineDep, StoreDep
from contextify.db.session import check_connection
from contextify.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: bool
    content: dict[str, int] | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    components: dict[str, bool] | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Verifies the API is running and the database is reachable.",
)
async def health_check(store: StoreDep) -> HealthResponse:
    """Health check with database connectivity and queue counts."""
    from contextify import __version__

    database_ok = False
    counts: dict[str, int] | None = None
    try:
        await asyncio.to_thread(check_connection, store.engine)
        status_counts = await asyncio.to_thread(store.status_counts)
        counts = {str(k): v for k, v in status_counts.items()}
        database_ok = True
    except SQLAlchemyError as e:
        logger.error("database_health_check_failed", error=str(e))

    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        database=database_ok,
        content=counts,
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Verifies the database, the LLM provider and the topic workers.",
)
async def readiness_check(store: StoreDep, pipeline: PipelineDep) -> ReadinessResponse:
    """Readiness check including dependencies."""
    database_ok = False
    try:
        await asyncio.to_thread(check_connection, store.engine)
        database_ok = True
    except SQLAlchemyError as e:
        logger.error("database_health_check_failed", error=str(e))

    components = await pipeline.health_check()
    ready = database_ok and all(components.values())
    if not ready:
        logger.warning("readiness_check_failed", database=database_ok, components=components)

    return ReadinessResponse(ready=ready, database=database_ok, components=components)


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness probe.",
)
async def liveness_check() -> dict[str, str]:
    """Liveness probe - is the process alive?"""
    return {"status": "alive"}
