"""OpenAI-compatible LLM provider implementation."""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from contextify.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from contextify.config import settings
from contextify.errors import LLMResponseError
from contextify.logging import get_logger


class OpenAIProvider(LLMProvider):
    """Chat completions provider for OpenAI and OpenAI-compatible servers.

    Ollama exposes the same API, so it is served by this class with a
    different ``base_url`` and ``provider`` label.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        provider: str = "openai",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self._model = model
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.provider = provider
        self.timeout = timeout or settings.llm_timeout_seconds
        self._transport = transport
        self._logger = logger or get_logger(__name__, provider=provider)

        if not self.api_key and provider == "openai":
            self._logger.warning("openai_api_key_not_configured")

    @property
    def name(self) -> str:
        return f"{self.provider}:{self._model}"

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 4096,
        response_model: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """Generate completion using the chat completions API."""
        if not messages:
            raise ValueError("Messages list cannot be empty")

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if response_model is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_model.__name__,
                    "schema": response_model.model_json_schema(),
                },
            }
        self._logger.debug(
            "llm_request",
            model=self._model,
            message_count=len(messages),
            structured=response_model is not None,
        )

        async with self._client(self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        choices = data.get("choices") or []
        if not choices:
            raise LLMResponseError(f"No completion choice returned from {self.name}")

        choice = choices[0]
        content = (choice.get("message") or {}).get("content")
        usage = data.get("usage") or {}

        self._logger.info(
            "llm_response",
            model=self._model,
            tokens_used=usage.get("total_tokens", 0),
            finish_reason=choice.get("finish_reason"),
        )

        parsed = None
        if response_model is not None:
            if not content or not content.strip():
                raise LLMResponseError(
                    f"Empty structured response from {self.name} "
                    f"(finish_reason={choice.get('finish_reason')})"
                )
            parsed = response_model.model_validate_json(content)

        return LLMResponse(
            content=content,
            model=data.get("model", self._model),
            usage={
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
            raw_response=data,
            finish_reason=choice.get("finish_reason"),
            parsed=parsed,
        )

    async def health_check(self) -> bool:
        """Check if the API is accessible."""
        try:
            async with self._client(10.0) as client:
                response = await client.get(f"{self.base_url}/models", headers=self._headers())
                return response.status_code == 200
        except httpx.HTTPError as e:
            self._logger.error("llm_health_check_failed", error=str(e))
            return False
