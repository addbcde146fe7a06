"""
Configuration management for LegalFlow.

Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # LLM API Keys
    # ==========================================================================
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")
    openai_api_key: str = Field(default="", description="OpenAI API key for GPT-4o")

    # ==========================================================================
    # LLM Configuration
    # ==========================================================================
    primary_llm_model: str = "claude-sonnet-4-20250514"
    primary_llm_provider: Literal["anthropic", "openai"] = "anthropic"
    fallback_llm_model: str = "gpt-4o"
    fallback_llm_provider: Literal["anthropic", "openai"] = "openai"
    llm_temperature: float = 0.4
    llm_max_tokens: int = 8192
    llm_timeout: float = 120.0  # seconds, per completion call
    llm_max_retries: int = 3
    llm_retry_wait_min: float = 2.0

    # ==========================================================================
    # PostgreSQL
    # ==========================================================================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "legalflow"
    postgres_password: str = "legalflow_dev_password"
    postgres_db: str = "legalflow"
    database_url: str | None = None

    @property
    def postgres_url(self) -> str:
        """Get PostgreSQL connection URL."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # ==========================================================================
    # Drafting
    # ==========================================================================
    assistant_name: str = "LegalFlow AI"
    drafting_language: str = "Spanish (Argentina)"
    jurisdiction: str = "Argentina"
    missing_field_placeholder: str = "[MISSING_FIELD]"

    @field_validator("missing_field_placeholder")
    @classmethod
    def placeholder_is_bracketed(cls, v: str) -> str:
        """Placeholders must stay visibly distinguishable from real data."""
        v = v.strip()
        if not (v.startswith("[") and v.endswith("]")):
            raise ValueError("missing_field_placeholder must be a bracketed token")
        return v

    @field_validator("llm_max_retries")
    @classmethod
    def at_least_one_attempt(cls, v: int) -> int:
        return max(1, v)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
