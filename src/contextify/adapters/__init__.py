"""Adapters for external services."""

from contextify.adapters.llm.base import LLMProvider
from contextify.adapters.sources.base import SourceAdapter

__all__ = [
    "LLMProvider",
    "SourceAdapter",
]
