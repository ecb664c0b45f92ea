"""Application configuration via environment variables."""

from datetime import datetime
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOPICS_PROMPT = """You distill transcripts of channel videos and posts into topics.

A topic is one distinct subject the author discusses: a token, project, protocol,
company, market event, or idea. For every topic you find:
- name: a short, specific title (at most 120 characters)
- content: what the author says about it, including claims, numbers and opinions
- keywords: comma-separated tickers, names and aliases that identify the topic

Ignore greetings, sponsor reads and calls to subscribe.
Return every topic you find; merge repeated mentions of the same subject."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///~/.contextify/contextify.db",
        description="SQLAlchemy connection string",
    )
    database_busy_timeout: float = Field(
        default=30.0,
        description="Seconds a SQLite connection waits for a held write lock",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3001, description="API server port")
    api_reload: bool = Field(default=False, description="Enable auto-reload for development")

    # LLM Providers
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API base URL",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434/v1",
        description="Ollama OpenAI-compatible API base URL",
    )
    llm_timeout_seconds: float = Field(
        default=120.0,
        description="HTTP timeout for a single completion request",
    )

    # Sources
    youtube_api_key: str | None = Field(default=None, description="YouTube Data API key")
    youtube_accounts: list[str] = Field(
        default_factory=list,
        description="YouTube channel handles to ingest (JSON list)",
    )

    # Ingestion
    ingestion_enabled: bool = Field(
        default=True,
        description="Run the ingestion scheduler alongside the API",
    )
    ingestion_interval_hours: float = Field(
        default=10.0,
        description="Hours between the end of one fetch cycle and the start of the next",
    )
    ingestion_initial_date: datetime = Field(
        default=datetime.fromisoformat("2024-01-01T00:00:00+00:00"),
        description="Fetch watermark for accounts with no stored content",
    )

    # Topic extraction
    topics_model: str = Field(
        default="openai:gpt-4o-mini",
        description="Model for topic extraction in provider:model form (openai, ollama, stub)",
    )
    topics_workers: int = Field(
        default=1,
        ge=1,
        description="Number of concurrent topic extraction workers",
    )
    topics_idle_delay_seconds: float = Field(
        default=60.0,
        description="Seconds a worker sleeps when no content is pending",
    )
    topics_error_delay_seconds: float = Field(
        default=30.0,
        description="Seconds a worker sleeps after a failed task",
    )
    topics_prompt: str = Field(
        default=DEFAULT_TOPICS_PROMPT,
        description="System instruction for topic extraction",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Convenience alias
settings = get_settings()
