"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_UNIT_SYSTEMS = {"metric": "metric", "us": "us", "imperial": "us"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    api_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "medium"
    openai_store: bool = False
    default_unit_system: str = "metric"
    leftover_fridge_days: int = 3
    leftover_freezer_days: int = 60
    thaw_days: int = 3
    ai_rate_limit_requests: int = 10
    ai_rate_limit_window_seconds: int = 60
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_unit_system(raw: str | None) -> str | None:
    """Parse a unit system name, returning None when it is not recognised."""
    if raw is None:
        return None
    return _UNIT_SYSTEMS.get(raw.strip().lower())
