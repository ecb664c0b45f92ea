"""Processing pipeline service.

Owns the long-lived components of a running instance: the store, the topic
extraction worker pool and the ingestion scheduler.
"""

from datetime import timedelta

from contextify.adapters.llm import LLMProvider, get_llm_provider
from contextify.adapters.sources import SourceAdapter
from contextify.config import Settings, get_settings
from contextify.db.store import ContentStore
from contextify.domain import RawContentItem
from contextify.logging import get_logger
from contextify.services.ingestion import IngestionScheduler, sources_from_settings
from contextify.services.topic_extraction import TopicExtractionStage, create_topic_pool
from contextify.services.worker_pool import WorkerPool

logger = get_logger(__name__)


class PipelineService:
    """Starts and stops the background processing of one instance.

    The store must be initialized (which runs startup recovery) before the
    pool starts; :meth:`start` takes care of the order.
    """

    def __init__(
        self,
        store: ContentStore,
        llm: LLMProvider,
        adapters: list[SourceAdapter] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.stage = TopicExtractionStage(
            store=store,
            llm=llm,
            system_prompt=self.settings.topics_prompt,
        )
        self.pool: WorkerPool[RawContentItem] = create_topic_pool(
            self.stage,
            worker_count=self.settings.topics_workers,
            idle_delay=self.settings.topics_idle_delay_seconds,
            error_delay=self.settings.topics_error_delay_seconds,
        )
        self.scheduler = IngestionScheduler(
            store=store,
            adapters=adapters if adapters is not None else sources_from_settings(self.settings, store),
            initial_date=self.settings.ingestion_initial_date,
            interval=timedelta(hours=self.settings.ingestion_interval_hours),
        )
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "PipelineService":
        """Build a pipeline from configuration."""
        settings = settings or get_settings()
        store = ContentStore(settings.database_url, busy_timeout=settings.database_busy_timeout)
        return cls(store=store, llm=get_llm_provider(settings.topics_model), settings=settings)

    def initialize(self) -> int:
        """Create tables and run startup recovery once."""
        if self._initialized:
            return 0
        recovered = self.store.initialize()
        self._initialized = True
        return recovered

    def start(self, ingestion: bool | None = None) -> None:
        """Initialize the store, then start workers and optionally ingestion."""
        self.initialize()
        self.pool.start()
        if self.settings.ingestion_enabled if ingestion is None else ingestion:
            self.scheduler.start()
        logger.info(
            "pipeline_started",
            workers=self.pool.config.worker_count,
            sources=len(self.scheduler.adapters),
            ingestion=self.scheduler.is_running,
        )

    async def stop(self) -> None:
        """Stop new work and wait for in-flight tasks to finish."""
        self.scheduler.stop()
        self.pool.stop()
        await self.scheduler.wait()
        await self.pool.wait()
        logger.info("pipeline_stopped")

    async def health_check(self) -> dict[str, bool]:
        """Check health of the components the pipeline depends on."""
        return {
            "llm": await self.stage.llm.health_check(),
            "workers": self.pool.is_running,
        }

    def close(self) -> None:
        self.store.close()
