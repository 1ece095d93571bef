"""Runtime settings for the completion engine (env / .env driven)."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DANCE_ENTRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Guardian fields become required below this age
    adult_age: int = Field(default=18, ge=0, le=150)
    # Age assumed when a birthdate is missing or unparsable
    unknown_age: int = Field(default=999, ge=0)

    # Send the finals updated_at as a precondition on the synchronizer write
    sync_conditional_update: bool = True

    # Compute and report statuses without writing them
    batch_dry_run: bool = False

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def default_settings() -> EngineSettings:
    """Settings read once from the environment and shared by every call."""
    return EngineSettings()
