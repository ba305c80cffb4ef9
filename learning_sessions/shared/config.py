"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Age policy
    # Used when the age resolver has no bracket registered for a child
    default_age_group: str = "ages10to13"

    # Session search
    search_default_limit: int = 50
    search_max_limit: int = 200

    # Progress buffer maintenance
    buffer_cleanup_max_age_hours: float = 24
    buffer_cleanup_interval_hours: float = 1

    # Scheduler
    scheduler_misfire_grace_seconds: int = 60

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
