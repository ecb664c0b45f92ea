"""Tests for domain models."""

import pytest

from contextify.domain import RawContentItem, StageStatus, normalize_account

from conftest import NOW


@pytest.mark.parametrize(
    ("account", "expected"),
    [
        ("@CryptoDaily", "cryptodaily"),
        ("cryptodaily", "cryptodaily"),
        ("  @@Mixed ", "mixed"),
        ("", None),
        ("  @ ", None),
        (None, None),
    ],
)
def test_normalize_account(account: str | None, expected: str | None) -> None:
    assert normalize_account(account) == expected


def test_raw_content_defaults_to_pending() -> None:
    item = RawContentItem(
        id="v1",
        source="youtube",
        account="@a",
        title="Weekly recap",
        content="text",
        publish_date=NOW,
    )

    assert item.stage_status == StageStatus.PENDING
    assert item.label == "@a | Weekly recap"


def test_stage_status_values() -> None:
    assert [s.value for s in StageStatus] == ["pending", "processing", "done", "error"]
    assert StageStatus("done") is StageStatus.DONE
