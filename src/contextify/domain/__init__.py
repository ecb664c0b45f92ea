"""Domain models and business logic."""

from contextify.domain.enums import Source, StageStatus
from contextify.domain.models import (
    ChannelMetadata,
    KeywordMention,
    NewTopic,
    PostSummary,
    RawContentItem,
    TopicContent,
    TopicMention,
    TopicRecord,
    normalize_account,
)

__all__ = [
    "ChannelMetadata",
    "KeywordMention",
    "NewTopic",
    "PostSummary",
    "RawContentItem",
    "Source",
    "StageStatus",
    "TopicContent",
    "TopicMention",
    "TopicRecord",
    "normalize_account",
]
