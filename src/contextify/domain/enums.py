"""Domain enumerations."""

from enum import StrEnum


class StageStatus(StrEnum):
    """Progress of a raw content item through topic extraction."""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class Source(StrEnum):
    """Supported content sources."""

    YOUTUBE = "youtube"
    STATIC = "static"
