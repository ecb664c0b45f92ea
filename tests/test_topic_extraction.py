"""Tests for the topic extraction stage."""

import asyncio
from datetime import timedelta

import pytest
from pydantic import ValidationError

from contextify.adapters.llm.stub import StubLLMProvider
from contextify.config import DEFAULT_TOPICS_PROMPT
from contextify.db.store import ContentStore
from contextify.domain import StageStatus
from contextify.errors import LLMResponseError, TopicExtractionError
from contextify.services.topic_extraction import (
    ExtractedTopic,
    TopicExtractionStage,
    TopicsResponse,
    build_user_prompt,
    clean_topics,
    create_topic_pool,
)

from conftest import NOW, make_item

ETH_PAYLOAD = {
    "topics": [
        {
            "name": "  Ethereum Rally  ",
            "content": "ETH rallied 8% on ETF inflows.",
            "keywords": "ETH, ethereum, ETF",
        }
    ]
}


def _stage(store: ContentStore, llm: StubLLMProvider) -> TopicExtractionStage:
    return TopicExtractionStage(store=store, llm=llm, system_prompt=DEFAULT_TOPICS_PROMPT)


class TestSchema:
    """Tests for the structured output schema."""

    def test_misspelled_keywords_field_is_accepted(self) -> None:
        topic = ExtractedTopic.model_validate(
            {"name": "Bitcoin", "content": "BTC news", "keyowrds": "btc"}
        )
        assert topic.keywords == "btc"

    def test_topics_list_must_not_be_empty(self) -> None:
        with pytest.raises(ValidationError):
            TopicsResponse.model_validate({"topics": []})

    def test_missing_fields_are_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TopicsResponse.model_validate({"topics": [{"name": "Bitcoin"}]})

    def test_clean_topics_trims_and_drops_blank_entries(self) -> None:
        extracted = [
            ExtractedTopic(name="  Bitcoin ", content=" Up ", keywords="btc"),
            ExtractedTopic(name="   ", content="Nothing", keywords="x"),
            ExtractedTopic(name="Solana", content="   ", keywords="sol"),
        ]

        topics = clean_topics(extracted, model="stub:m", generated_at=NOW)

        assert [(t.name, t.content) for t in topics] == [("Bitcoin", "Up")]
        assert topics[0].generated_by_model == "stub:m"
        assert topics[0].generated_at == NOW


def test_user_prompt_layout() -> None:
    prompt = build_user_prompt(make_item("v1", content="ETH rallies"))

    assert prompt == "**Source:** youtube\n**Account:** @CryptoDaily\n\n---\n\nETH rallies"


class TestStage:
    """Tests for claim, process and error handling."""

    @pytest.mark.asyncio
    async def test_process_stores_topics_and_marks_done(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1", content="ETH rallies"))
        llm = StubLLMProvider(payload=ETH_PAYLOAD)
        stage = _stage(store, llm)

        item = await stage.claim(worker_id=1)
        await stage.process(item, worker_id=1)

        topics = store.get_topics("v1")
        assert [t.name for t in topics] == ["Ethereum Rally"]
        assert topics[0].keyword_list == ["ETH", "ethereum", "ETF"]
        assert topics[0].generated_by_model == "stub:stub-model"
        assert store.get_item("v1").stage_status == StageStatus.DONE

        system, user = llm.calls[0]
        assert system.role == "system"
        assert system.content == DEFAULT_TOPICS_PROMPT
        assert user.content.endswith("ETH rallies")

    @pytest.mark.asyncio
    async def test_reprocessing_replaces_topics(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1"))
        stage = _stage(store, StubLLMProvider(payload=ETH_PAYLOAD))

        item = await stage.claim(worker_id=1)
        await stage.process(item, worker_id=1)
        await stage.process(item, worker_id=1)

        assert len(store.get_topics("v1")) == 1

    @pytest.mark.asyncio
    async def test_all_blank_topics_raise(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1"))
        payload = {"topics": [{"name": "  ", "content": "x", "keywords": "y"}]}
        stage = _stage(store, StubLLMProvider(payload=payload))

        item = await stage.claim(worker_id=1)
        with pytest.raises(TopicExtractionError):
            await stage.process(item, worker_id=1)

        assert store.get_topics("v1") == []
        assert store.get_item("v1").stage_status == StageStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_empty_response_raises(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1"))
        stage = _stage(store, StubLLMProvider(content=""))

        item = await stage.claim(worker_id=1)
        with pytest.raises(LLMResponseError):
            await stage.process(item, worker_id=1)

    @pytest.mark.asyncio
    async def test_handle_error_marks_item_error(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1"))
        stage = _stage(store, StubLLMProvider())

        item = await stage.claim(worker_id=1)
        await stage.handle_error(item, RuntimeError("boom"), worker_id=1)

        assert store.get_item("v1").stage_status == StageStatus.ERROR

    @pytest.mark.asyncio
    async def test_handle_error_without_item_is_logged_only(self, store: ContentStore) -> None:
        stage = _stage(store, StubLLMProvider())

        await stage.handle_error(None, RuntimeError("claim failed"), worker_id=1)


class TestPool:
    """End-to-end runs through the worker pool."""

    @pytest.mark.asyncio
    async def test_pool_processes_items_in_publish_order(self, store: ContentStore) -> None:
        store.upsert_item(make_item("late", publish_date=NOW, content="Solana news"))
        store.upsert_item(
            make_item("early", publish_date=NOW - timedelta(days=1), content="Bitcoin news")
        )
        llm = StubLLMProvider()
        pool = create_topic_pool(_stage(store, llm), worker_count=1, idle_delay=0.01)

        pool.start()
        for _ in range(500):
            counts = store.status_counts()
            if counts[StageStatus.DONE] == 2:
                break
            await asyncio.sleep(0.01)
        pool.stop()
        await pool.wait()

        assert store.status_counts()[StageStatus.DONE] == 2
        bodies = [call[1].content.rsplit("\n", 1)[-1] for call in llm.calls]
        assert bodies == ["Bitcoin news", "Solana news"]
        assert [t.name for t in store.get_topics("early")] == ["Bitcoin news"]

    @pytest.mark.asyncio
    async def test_pool_marks_failures_as_error(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1"))
        pool = create_topic_pool(
            _stage(store, StubLLMProvider(content="not json")),
            idle_delay=0.01,
            error_delay=0.01,
        )

        pool.start()
        for _ in range(500):
            if store.get_item("v1").stage_status == StageStatus.ERROR:
                break
            await asyncio.sleep(0.01)
        pool.stop()
        await pool.wait()

        assert store.get_item("v1").stage_status == StageStatus.ERROR
        assert store.get_topics("v1") == []

    @pytest.mark.asyncio
    async def test_blank_topics_fail_the_item(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1"))
        payload = {"topics": [{"name": " ", "content": " ", "keywords": "x"}]}
        pool = create_topic_pool(
            _stage(store, StubLLMProvider(payload=payload)),
            idle_delay=0.01,
            error_delay=0.01,
        )

        pool.start()
        for _ in range(500):
            if store.get_item("v1").stage_status == StageStatus.ERROR:
                break
            await asyncio.sleep(0.01)
        pool.stop()
        await pool.wait()

        assert store.get_item("v1").stage_status == StageStatus.ERROR
        assert store.get_topics("v1") == []

    @pytest.mark.asyncio
    async def test_single_item_end_to_end(self, store: ContentStore) -> None:
        store.upsert_item(make_item("v1", content="ETH rallies"))
        payload = {
            "topics": [{"name": "Ethereum Rally", "content": "Price moved", "keywords": "ETH"}]
        }
        stage = _stage(store, StubLLMProvider(payload=payload))

        item = await stage.claim(worker_id=1)
        await stage.process(item, worker_id=1)

        topics = store.get_topics("v1")
        assert len(topics) == 1
        assert (topics[0].name, topics[0].content, topics[0].keywords) == (
            "Ethereum Rally",
            "Price moved",
            "ETH",
        )
        assert store.get_item("v1").stage_status == StageStatus.DONE
