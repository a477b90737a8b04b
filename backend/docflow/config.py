"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Versioning
    default_branch_name: str = "main"
    initial_commit_message: str = "Initial version"
    version_append_retries: int = 3

    # Document-chat links
    main_chat_title_prefix: str = "Chat: "

    # Text generation
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    generation_max_chars: int = 200_000

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
