"""Base interface for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str | None
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    raw_response: dict[str, Any] | None = None
    finish_reason: str | None = None
    parsed: BaseModel | None = None  # Set when a response_model was requested


@dataclass
class LLMMessage:
    """A message in a conversation."""

    role: str  # "system", "user", "assistant"
    content: str


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations:
    - OpenAIProvider: Uses an OpenAI-compatible API (OpenAI, Ollama)
    - StubLLMProvider: Returns canned data for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier recorded on generated data."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        response_model: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages.

        Args:
            messages: List of conversation messages
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens in response
            response_model: If given, request output matching this schema and
                return the validated instance in ``LLMResponse.parsed``

        Returns:
            LLMResponse with generated content

        Raises:
            LLMResponseError: If the provider returned no usable content
            pydantic.ValidationError: If the content does not match
                ``response_model``
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available.

        Returns:
            True if provider is operational
        """
        return True
