"""Topic extraction stage.

Claims pending content from the store, asks the LLM for a structured list of
topics, and replaces the item's topics with the validated result. Plug an
instance into a :class:`~contextify.services.worker_pool.WorkerPool` with
:func:`create_topic_pool`.
"""

import asyncio
from datetime import UTC, datetime

import structlog
from pydantic import AliasChoices, BaseModel, Field

from contextify.adapters.llm.base import LLMMessage, LLMProvider
from contextify.db.store import ContentStore
from contextify.domain import NewTopic, RawContentItem, StageStatus
from contextify.errors import LLMResponseError, TopicExtractionError
from contextify.logging import get_logger
from contextify.services.worker_pool import WorkerPool, WorkerPoolConfig


class ExtractedTopic(BaseModel):
    """One topic as returned by the model."""

    name: str = Field(min_length=1, max_length=120)
    content: str = Field(min_length=1)
    # Older prompts spelled this field "keyowrds"; both are accepted.
    keywords: str = Field(min_length=1, validation_alias=AliasChoices("keywords", "keyowrds"))


class TopicsResponse(BaseModel):
    """Structured output schema of the extraction call."""

    topics: list[ExtractedTopic] = Field(min_length=1)


def build_user_prompt(item: RawContentItem) -> str:
    return "\n".join(
        [
            f"**Source:** {item.source}",
            f"**Account:** {item.account}",
            "",
            "---",
            "",
            item.content,
        ]
    )


def clean_topics(
    extracted: list[ExtractedTopic],
    model: str,
    generated_at: datetime | None = None,
) -> list[NewTopic]:
    """Trim names and content and drop entries left empty."""
    generated_at = generated_at or datetime.now(UTC)
    topics = []
    for topic in extracted:
        name = topic.name.strip()
        content = topic.content.strip()
        if not name or not content:
            continue
        topics.append(
            NewTopic(
                name=name,
                content=content,
                keywords=topic.keywords,
                generated_by_model=model,
                generated_at=generated_at,
            )
        )
    return topics


class TopicExtractionStage:
    """Claim, process and error-handling operations for topic extraction."""

    def __init__(
        self,
        store: ContentStore,
        llm: LLMProvider,
        system_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 4096,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.llm = llm
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._logger = logger or get_logger(__name__, stage="topics")

    async def claim(self, worker_id: int) -> RawContentItem | None:
        return await asyncio.to_thread(self.store.claim_next)

    async def process(self, item: RawContentItem, worker_id: int) -> None:
        log = self._logger.bind(worker_id=worker_id, item_id=item.id)
        log.info("topic_extraction_started", content=item.label, model=self.llm.name)

        response = await self.llm.complete(
            messages=[
                LLMMessage(role="system", content=self.system_prompt),
                LLMMessage(role="user", content=build_user_prompt(item)),
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_model=TopicsResponse,
        )

        if not isinstance(response.parsed, TopicsResponse):
            raise LLMResponseError(
                f"{self.llm.name} returned no parsed topics (finish_reason={response.finish_reason})"
            )

        topics = clean_topics(response.parsed.topics, model=self.llm.name)
        if not topics:
            raise TopicExtractionError("LLM returned no topics")

        log.info(
            "topics_extracted",
            content=item.label,
            count=len(topics),
            topics=[t.name for t in topics],
        )
        await asyncio.to_thread(self.store.replace_topics, item.id, topics)
        await asyncio.to_thread(self.store.set_status, item.id, StageStatus.DONE)
        log.info("topics_saved", content=item.label)

    async def handle_error(
        self, item: RawContentItem | None, error: Exception, worker_id: int
    ) -> None:
        if item is None:
            self._logger.error("topic_claim_failed", worker_id=worker_id, error=str(error))
            return

        await asyncio.to_thread(self.store.set_status, item.id, StageStatus.ERROR)
        self._logger.error(
            "topic_extraction_failed",
            worker_id=worker_id,
            item_id=item.id,
            content=item.label,
            error=str(error),
            error_type=type(error).__name__,
        )


def create_topic_pool(
    stage: TopicExtractionStage,
    worker_count: int = 1,
    idle_delay: float = 60.0,
    error_delay: float = 30.0,
) -> WorkerPool[RawContentItem]:
    """Wire a topic extraction stage into a worker pool."""
    return WorkerPool(
        claim=stage.claim,
        process=stage.process,
        handle_error=stage.handle_error,
        config=WorkerPoolConfig(
            name="topics",
            worker_count=worker_count,
            idle_delay=idle_delay,
            error_delay=error_delay,
        ),
    )
