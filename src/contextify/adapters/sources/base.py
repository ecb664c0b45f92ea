"""Source adapter interface and the wrapper that runs adapters."""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

import structlog

from contextify.db.store import ContentStore
from contextify.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class SourceAdapter(Protocol):
    """Fetches new content for one account on one platform.

    ``fetch`` upserts every item published since the given watermark into
    the store. Adapters do not handle their own failures; callers wrap them
    with :func:`run_adapter`.
    """

    @property
    def source_name(self) -> str: ...

    @property
    def account_name(self) -> str: ...

    async def fetch(self, since: datetime) -> None: ...


@dataclass
class AdapterRunResult:
    """Outcome of one adapter fetch."""

    label: str
    succeeded: bool
    since: datetime | None = None
    duration_seconds: float = 0.0
    error: str | None = None


def adapter_label(adapter: SourceAdapter) -> str:
    return f"{adapter.source_name}:{adapter.account_name}"


def resolve_since(store: ContentStore, adapter: SourceAdapter, initial_date: datetime) -> datetime:
    """Latest stored publish date for the adapter's account, else ``initial_date``."""
    last = store.last_publish_date(adapter.source_name, adapter.account_name)
    return last or initial_date


async def run_adapter(
    adapter: SourceAdapter,
    store: ContentStore,
    initial_date: datetime,
    log: structlog.stdlib.BoundLogger | None = None,
) -> AdapterRunResult:
    """Run one adapter fetch with timing, logging and error containment.

    Never raises for adapter or store failures; the outcome is reported in
    the returned result.
    """
    label = adapter_label(adapter)
    log = (log or logger).bind(source=adapter.source_name, account=adapter.account_name)
    started = time.monotonic()
    since: datetime | None = None

    try:
        since = await asyncio.to_thread(resolve_since, store, adapter, initial_date)
        log.info("source_fetch_started", since=since.isoformat())
        await adapter.fetch(since)
    except Exception as e:
        duration = time.monotonic() - started
        log.error(
            "source_fetch_failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_seconds=round(duration, 3),
        )
        return AdapterRunResult(
            label=label,
            succeeded=False,
            since=since,
            duration_seconds=duration,
            error=str(e),
        )

    duration = time.monotonic() - started
    log.info("source_fetch_completed", duration_seconds=round(duration, 3))
    return AdapterRunResult(label=label, succeeded=True, since=since, duration_seconds=duration)
