"""Contextify - distills channel content into queryable topics."""

__version__ = "0.1.0"
