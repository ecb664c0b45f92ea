"""Tests for the command-line interface."""

from datetime import UTC, datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

from contextify import __version__, cli
from contextify.db.store import ContentStore
from contextify.domain import NewTopic, StageStatus

from conftest import make_item, open_store

runner = CliRunner()


@pytest.fixture
def cli_db(db_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(cli, "_open_store", lambda: ContentStore(f"sqlite:///{db_path}"))
    return db_path


def test_version() -> None:
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_status_counts(cli_db: Path) -> None:
    store = open_store(cli_db)
    store.upsert_item(make_item("v1"))
    store.upsert_item(make_item("v2"))
    store.set_status("v2", StageStatus.ERROR)
    store.close()

    result = runner.invoke(cli.app, ["status"])

    assert result.exit_code == 0
    assert "pending" in result.stdout
    assert "error" in result.stdout


def test_topics_table(cli_db: Path) -> None:
    store = open_store(cli_db)
    store.upsert_item(make_item("v1", publish_date=datetime.now(UTC)))
    store.replace_topics("v1", [NewTopic(name="Ethereum Rally", content="up", keywords="eth")])
    store.close()

    result = runner.invoke(cli.app, ["topics", "--days", "3"])

    assert result.exit_code == 0
    assert "Ethereum Rally" in result.stdout


def test_topics_empty(cli_db: Path) -> None:
    open_store(cli_db).close()

    result = runner.invoke(cli.app, ["topics"])

    assert result.exit_code == 0
    assert "No topics found" in result.stdout
