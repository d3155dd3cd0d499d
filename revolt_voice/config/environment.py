"""Environment driven settings (secrets and operator knobs)."""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(BaseSettings):
    """Values read from the process environment or a local ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("API_KEY", "GEMINI_API_KEY"),
    )

    # Logs
    log_dir: str | None = None
    log_level: str = "INFO"
    log_rotate_mb: int = 5
    log_retention_days: int = 7


@lru_cache
def get_environment() -> Environment:
    """Return the cached environment settings."""
    return Environment()
