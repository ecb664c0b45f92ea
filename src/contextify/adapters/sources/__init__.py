"""Content source adapters."""

from contextify.adapters.sources.base import (
    AdapterRunResult,
    SourceAdapter,
    adapter_label,
    resolve_since,
    run_adapter,
)
from contextify.adapters.sources.static import StaticSource
from contextify.adapters.sources.youtube import TranscriptFetcher, YouTubeSource

__all__ = [
    "AdapterRunResult",
    "SourceAdapter",
    "StaticSource",
    "TranscriptFetcher",
    "YouTubeSource",
    "adapter_label",
    "resolve_since",
    "run_adapter",
]
