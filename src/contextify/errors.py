"""Exception types raised by Contextify components."""


class ContextifyError(Exception):
    """Base class for application errors."""


class ProviderConfigError(ContextifyError):
    """An LLM provider could not be created from configuration."""


class LLMResponseError(ContextifyError):
    """The LLM provider returned an empty or unusable response."""


class TopicExtractionError(ContextifyError):
    """Topic extraction produced no usable topics."""


class SourceError(ContextifyError):
    """A source adapter could not fetch content."""
