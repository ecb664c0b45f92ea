"""API route modules."""

from contextify.api.routes import health, topics

__all__ = ["health", "topics"]
