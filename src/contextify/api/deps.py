"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from contextify.db.store import ContentStore
from contextify.services.pipeline import PipelineService


def get_store(request: Request) -> ContentStore:
    """Get the content store opened by the application lifespan."""
    return request.app.state.store


def get_pipeline(request: Request) -> PipelineService:
    """Get the pipeline service started by the application lifespan."""
    return request.app.state.pipeline


StoreDep = Annotated[ContentStore, Depends(get_store)]
PipelineDep = Annotated[PipelineService, Depends(get_pipeline)]
