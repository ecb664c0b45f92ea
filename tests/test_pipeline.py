"""End-to-end tests for the pipeline service."""

import asyncio

import pytest

from contextify.adapters.llm.stub import StubLLMProvider
from contextify.adapters.sources import StaticSource
from contextify.config import Settings
from contextify.db.store import ContentStore
from contextify.domain import StageStatus
from contextify.services.pipeline import PipelineService

from conftest import NOW, make_item


def _settings() -> Settings:
    return Settings(
        topics_workers=2,
        topics_idle_delay_seconds=0.01,
        topics_error_delay_seconds=0.01,
        ingestion_enabled=True,
        ingestion_initial_date=NOW.replace(year=2024),
    )


@pytest.mark.asyncio
async def test_ingested_content_gets_topics(db_path) -> None:
    store = ContentStore(f"sqlite:///{db_path}")
    source = StaticSource(
        store,
        "@CryptoDaily",
        [make_item("v1", source="static", content="ETH rallies")],
    )
    pipeline = PipelineService(
        store=store, llm=StubLLMProvider(), adapters=[source], settings=_settings()
    )

    pipeline.start()
    for _ in range(500):
        if store.is_fetched("v1") and store.get_item("v1").stage_status == StageStatus.DONE:
            break
        await asyncio.sleep(0.01)
    await pipeline.stop()
    pipeline.close()

    assert store.get_item("v1").stage_status == StageStatus.DONE
    assert [t.name for t in store.get_topics("v1")] == ["ETH rallies"]
    assert pipeline.scheduler.cycles_completed == 1


@pytest.mark.asyncio
async def test_start_recovers_interrupted_items(db_path) -> None:
    store = ContentStore(f"sqlite:///{db_path}")
    store.initialize()
    store.upsert_item(make_item("stuck"))
    store.set_status("stuck", StageStatus.PROCESSING)

    pipeline = PipelineService(store=store, llm=StubLLMProvider(), adapters=[], settings=_settings())
    recovered = pipeline.initialize()
    pipeline.start(ingestion=False)
    for _ in range(500):
        if store.get_item("stuck").stage_status == StageStatus.DONE:
            break
        await asyncio.sleep(0.01)
    await pipeline.stop()
    pipeline.close()

    assert recovered == 1
    assert store.get_item("stuck").stage_status == StageStatus.DONE
