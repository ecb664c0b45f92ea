"""Application services."""

from contextify.services.ingestion import CycleResult, IngestionScheduler, sources_from_settings
from contextify.services.pipeline import PipelineService
from contextify.services.topic_extraction import (
    ExtractedTopic,
    TopicExtractionStage,
    TopicsResponse,
    create_topic_pool,
)
from contextify.services.worker_pool import WorkerPool, WorkerPoolConfig

__all__ = [
    "CycleResult",
    "ExtractedTopic",
    "IngestionScheduler",
    "PipelineService",
    "TopicExtractionStage",
    "TopicsResponse",
    "WorkerPool",
    "WorkerPoolConfig",
    "create_topic_pool",
    "sources_from_settings",
]
