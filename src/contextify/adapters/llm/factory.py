"""Create LLM providers from ``provider:model`` strings."""

from contextify.adapters.llm.base import LLMProvider
from contextify.adapters.llm.openai import OpenAIProvider
from contextify.adapters.llm.stub import StubLLMProvider
from contextify.config import get_settings
from contextify.errors import ProviderConfigError

SUPPORTED_PROVIDERS = ("openai", "ollama", "stub")


def parse_provider_model(provider_model: str) -> tuple[str, str]:
    """Split ``provider:model`` on the first colon.

    Model names may themselves contain colons (``ollama:llama3:8b``).
    """
    provider, sep, model = provider_model.partition(":")
    provider, model = provider.strip(), model.strip()
    if not sep or not provider or not model:
        raise ProviderConfigError(
            f"Invalid provider:model format: {provider_model!r}. "
            'Expected format: "provider:model"'
        )
    return provider.lower(), model


def get_llm_provider(provider_model: str) -> LLMProvider:
    """Create the provider named by a ``provider:model`` string."""
    provider, model = parse_provider_model(provider_model)
    settings = get_settings()

    if provider == "openai":
        if not settings.openai_api_key:
            raise ProviderConfigError("OPENAI_API_KEY env variable is not configured")
        return OpenAIProvider(api_key=settings.openai_api_key, model=model)
    if provider == "ollama":
        return OpenAIProvider(
            api_key="",
            model=model,
            base_url=settings.ollama_base_url,
            provider="ollama",
        )
    if provider == "stub":
        return StubLLMProvider(model=model)

    raise ProviderConfigError(
        f"Unsupported LLM provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
    )
