"""
Application configuration using Pydantic Settings.

Values are read from environment variables (or a local .env file).
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./recurring_trips.db"

    # ===========================================
    # Scheduling
    # ===========================================
    # IANA timezone used to resolve "today" at the API / scheduler edge
    TIMEZONE: str = "UTC"

    # How far ahead occurrences are turned into trips
    MATERIALIZATION_HORIZON_DAYS: int = Field(default=7, ge=1, le=366)

    # Upper bound for "next N trips" previews
    PREVIEW_LOOKAHEAD_DAYS: int = Field(default=366, ge=1)

    # Per-occurrence persistence retries
    MATERIALIZE_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    MATERIALIZE_RETRY_DELAY_SECONDS: float = Field(default=0.2, ge=0)

    # ===========================================
    # Holidays
    # ===========================================
    INCLUDE_FEDERAL_HOLIDAYS: bool = True

    # ===========================================
    # Background generation sweep
    # ===========================================
    ENABLE_BACKGROUND_SCHEDULER: bool = True
    GENERATION_CRON_HOUR: int = Field(default=2, ge=0, le=23)
    GENERATION_CRON_MINUTE: int = Field(default=0, ge=0, le=59)

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
