"""Stub LLM provider for testing."""

import json
from typing import Any

from pydantic import BaseModel

from contextify.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from contextify.errors import LLMResponseError
from contextify.logging import get_logger

logger = get_logger(__name__)


class StubLLMProvider(LLMProvider):
    """Stub provider that returns canned LLM responses for testing.

    Pass ``payload`` to control the structured output. Without it the stub
    derives a single topic from the last user message.
    """

    def __init__(
        self,
        model: str = "stub-model",
        payload: dict[str, Any] | None = None,
        content: str | None = None,
    ) -> None:
        self._model = model
        self.payload = payload
        self.content = content
        self.calls: list[list[LLMMessage]] = []

    @property
    def name(self) -> str:
        return f"stub:{self._model}"

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        response_model: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """Return a canned completion response."""
        self.calls.append(list(messages))
        logger.info(
            "stub_llm_complete",
            message_count=len(messages),
            structured=response_model is not None,
        )

        # Extract the user's last message to generate contextual response
        user_message = ""
        for msg in reversed(messages):
            if msg.role == "user":
                user_message = msg.content
                break

        if self.content is not None:
            content = self.content
        elif response_model is not None:
            content = json.dumps(self.payload or self._default_payload(user_message))
        else:
            content = f"This is a stub response for: {user_message[:100]}"

        parsed = None
        if response_model is not None:
            if not content.strip():
                raise LLMResponseError("Empty structured response from stub")
            parsed = response_model.model_validate_json(content)

        return LLMResponse(
            content=content,
            model=self._model,
            usage={
                "prompt_tokens": len(user_message.split()),
                "completion_tokens": len(content.split()),
                "total_tokens": len(user_message.split()) + len(content.split()),
            },
            finish_reason="stop",
            parsed=parsed,
        )

    @staticmethod
    def _default_payload(user_message: str) -> dict[str, Any]:
        body = user_message.rsplit("---", 1)[-1].strip() or "Empty content"
        first_line = body.splitlines()[0]
        return {
            "topics": [
                {
                    "name": first_line[:120],
                    "content": body[:500],
                    "keywords": "stub",
                }
            ]
        }

    async def health_check(self) -> bool:
        """Stub provider is always healthy."""
        return True
