"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "changewatch"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # Database
    database_url: str = "postgresql+psycopg2://postgres@localhost:5432/changewatch"
    database_key: str | None = None  # Password injected into database_url when set

    # Redis (Celery broker and result backend)
    redis_url: str = "redis://localhost:6379/0"

    # LLM provider selection (see changewatch.providers.PROVIDERS)
    llm_provider: Literal["scaleway", "gemini", "together"] = "scaleway"
    llm_timeout_seconds: float = 300.0

    # LLM API Keys
    scaleway_api_key: str | None = None
    google_api_key: str | None = None
    together_api_key: str | None = None

    # Requests-per-minute ceilings per model name
    rate_limits: dict[str, int] = {
        "gemini-2.0-flash": 15,
        "gemini-2.0-flash-lite": 30,
    }
    default_rpm: int = 15

    # Diff computation
    prompt_overhead_chars: int = 3000  # Approximate size of the diff prompt without texts

    # Classification
    classifier_max_tokens: int = 150

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # Daily run (UTC)
    daily_run_hour: int = 7
    daily_run_minute: int = 20


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
