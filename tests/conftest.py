"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Set test environment before importing app modules
_TEST_DB_DIR = tempfile.mkdtemp(prefix="contextify-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR}/contextify.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["TOPICS_MODEL"] = "stub:stub-model"
os.environ["INGESTION_ENABLED"] = "false"
os.environ["YOUTUBE_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

from contextify.db.store import ContentStore  # noqa: E402
from contextify.domain import RawContentItem  # noqa: E402

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def make_item(
    item_id: str,
    publish_date: datetime = NOW,
    account: str = "@CryptoDaily",
    title: str | None = None,
    content: str = "Bitcoin and Ethereum moved higher today.",
    source: str = "youtube",
) -> RawContentItem:
    """Build a raw content item with sensible defaults."""
    return RawContentItem(
        id=item_id,
        source=source,
        account=account,
        title=title or f"Video {item_id}",
        content=content,
        publish_date=publish_date,
    )


def open_store(path: Path) -> ContentStore:
    """Open and initialize a store on a SQLite file."""
    store = ContentStore(f"sqlite:///{path}", busy_timeout=30.0)
    store.initialize()
    return store


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "contextify.db"


@pytest.fixture
def store(db_path: Path) -> Generator[ContentStore, None, None]:
    """Initialized store backed by a temporary SQLite file."""
    content_store = open_store(db_path)
    yield content_store
    content_store.close()
