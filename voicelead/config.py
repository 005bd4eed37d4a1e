"""
Application configuration using pydantic-settings.
Every field has a safe default so the webhook pipeline runs with no environment at all.
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    log_level: str = "INFO"

    # Analysis decoding
    analysis_source: str = "elevenlabs"
    analysis_container_keys: list[str] = Field(
        default_factory=lambda: ["default", "Basic CTA", "main", "primary"],
        description="Lookup order for data_collection_results before any other key",
    )
    blob_preview_chars: int = 200

    # Repair defaults
    fallback_conversation_prefix: str = "fallback_"
    fallback_agent_id: str = "unknown_agent"  # Empty string: missing agent is a structural failure
    default_caller_id: str = "internal"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
