"""LLM provider adapters."""

from contextify.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from contextify.adapters.llm.factory import get_llm_provider, parse_provider_model
from contextify.adapters.llm.openai import OpenAIProvider
from contextify.adapters.llm.stub import StubLLMProvider

__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "StubLLMProvider",
    "get_llm_provider",
    "parse_provider_model",
]
