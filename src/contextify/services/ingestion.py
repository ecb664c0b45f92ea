"""Ingestion scheduler.

Runs every configured source adapter once per cycle, one after another, and
schedules the next cycle a fixed interval after the current one ends.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog

from contextify.adapters.sources import AdapterRunResult, SourceAdapter, YouTubeSource, run_adapter
from contextify.config import Settings
from contextify.db.store import ContentStore
from contextify.logging import get_logger

DEFAULT_INTERVAL = timedelta(hours=10)


@dataclass
class CycleResult:
    """Outcome of one pass over all adapters."""

    results: list[AdapterRunResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.succeeded)


class IngestionScheduler:
    """Periodically drives source adapters into the store."""

    def __init__(
        self,
        store: ContentStore,
        adapters: list[SourceAdapter],
        initial_date: datetime,
        interval: timedelta = DEFAULT_INTERVAL,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.adapters = list(adapters)
        self.initial_date = initial_date
        self.interval = interval
        self._logger = logger or get_logger(__name__, component="ingestion")
        self._stop_requested = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.cycles_completed = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_cycle(self) -> CycleResult:
        """Fetch every adapter once. Adapter failures never abort the cycle."""
        self._logger.info("fetch_cycle_started", sources=len(self.adapters))
        cycle = CycleResult()

        for adapter in self.adapters:
            result = await run_adapter(adapter, self.store, self.initial_date, self._logger)
            cycle.results.append(result)

        next_at = datetime.now(UTC) + self.interval
        self._logger.info(
            "fetch_cycle_completed",
            succeeded=cycle.succeeded,
            failed=cycle.failed,
            next_cycle_at=next_at.isoformat(),
        )
        self.cycles_completed += 1
        return cycle

    def start(self) -> None:
        """Start cycling in the background; the first cycle begins immediately."""
        if self.is_running:
            self._logger.warning("ingestion_already_running")
            return

        self._logger.info("ingestion_starting", sources=len(self.adapters))
        self._stop_requested.clear()
        self._task = asyncio.create_task(self._loop(), name="ingestion-scheduler")

    def stop(self) -> None:
        """Stop scheduling further cycles. A running cycle finishes first."""
        if not self.is_running:
            return
        self._logger.info("ingestion_stopping")
        self._stop_requested.set()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _loop(self) -> None:
        while not self._stop_requested.is_set():
            await self.run_cycle()
            try:
                await asyncio.wait_for(
                    self._stop_requested.wait(), timeout=self.interval.total_seconds()
                )
            except TimeoutError:
                pass
        self._logger.info("ingestion_stopped")


def sources_from_settings(
    settings: Settings,
    store: ContentStore,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> list[SourceAdapter]:
    """Build the configured source adapters."""
    log = logger or get_logger(__name__, component="ingestion")
    adapters: list[SourceAdapter] = []

    for account in settings.youtube_accounts:
        if not settings.youtube_api_key:
            log.warning("youtube_source_skipped", account=account, reason="no_api_key")
            continue
        adapters.append(YouTubeSource(api_key=settings.youtube_api_key, account=account, store=store))
        log.info("source_added", source="youtube", account=account)

    log.info("sources_initialized", count=len(adapters))
    return adapters
