"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from contextify.domain.enums import StageStatus


def normalize_account(account: str | None) -> str | None:
    """Normalize an account handle for comparison.

    Leading ``@`` characters are stripped and the result is lower-cased.
    Blank handles normalize to None.
    """
    if account is None:
        return None
    normalized = account.strip().lstrip("@").lower()
    return normalized or None


@dataclass
class RawContentItem:
    """One ingested unit of content, such as a video transcript."""

    id: str
    source: str
    account: str
    title: str
    content: str
    publish_date: datetime
    stage_status: StageStatus = StageStatus.PENDING

    @property
    def label(self) -> str:
        """Human-readable label used in logs."""
        return f"{self.account} | {self.title}"


@dataclass
class NewTopic:
    """A topic ready to be written for a content item."""

    name: str
    content: str
    keywords: str
    generated_by_model: str | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class TopicRecord:
    """A stored topic derived from exactly one content item."""

    id: int
    raw_content_id: str
    name: str
    content: str
    keywords: str
    generated_at: datetime
    generated_by_model: str | None = None

    @property
    def keyword_list(self) -> list[str]:
        """Keywords split on commas, blanks removed."""
        return [k.strip() for k in self.keywords.split(",") if k.strip()]


@dataclass
class ChannelMetadata:
    """Cached resolution of a source account to its channel."""

    account_name: str
    source: str
    channel_id: str
    channel_title: str | None = None
    subscriber_count: int | None = None
    resolved_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_checked: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class TopicMention:
    """A topic listed by date window, annotated with its item's channel."""

    topic_id: int
    topic_name: str
    account: str
    source: str
    publish_date: datetime
    subscriber_count: int | None = None


@dataclass
class TopicContent:
    """Full content of a topic requested by id."""

    topic_id: int
    topic_title: str
    content: str
    account: str
    source: str
    publish_date: datetime
    subscriber_count: int | None = None


@dataclass
class KeywordMention:
    """A topic matching a search term, annotated with its item's channel."""

    topic_id: int
    topic_name: str
    content: str
    keywords: str
    account: str
    source: str
    title: str
    publish_date: datetime
    channel_title: str | None = None
    subscriber_count: int | None = None


@dataclass
class PostSummary:
    """A content item with the names of its topics."""

    id: str
    account: str
    source: str
    title: str
    publish_date: datetime
    stage_status: StageStatus
    topics: list[str] = field(default_factory=list)
