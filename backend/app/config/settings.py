"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from app.config import settings

    # Access settings
    db_url = settings.DATABASE_URL
    ceiling = settings.SRS_MAX_CONFIDENCE
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Study Calendar"
    DEBUG: bool = False

    # Learner-facing calendar day. Dates (review due dates, event dates,
    # eviction cutoffs) are calendar days in this zone.
    APP_TIMEZONE: str = "Asia/Hong_Kong"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "studycalendar"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "studycalendar"

    # Full URL override (e.g. sqlite+aiosqlite:///./dev.db for local runs)
    DATABASE_URL_OVERRIDE: Optional[str] = None

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def POSTGRES_URL_SYNC(self) -> str:
        """Sync PostgreSQL connection URL for Alembic migrations."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL(self) -> str:
        """Async connection URL used by the application engine."""
        return self.DATABASE_URL_OVERRIDE or self.POSTGRES_URL

    # Spaced repetition policy
    SRS_INITIAL_INTERVAL: int = 1  # days until the first review of a new card
    SRS_INITIAL_CONFIDENCE: float = 2.5
    SRS_MIN_CONFIDENCE: float = 1.3
    SRS_MAX_CONFIDENCE: float = 2.5
    SRS_FAILURE_PENALTY: float = 0.20
    SRS_FIRST_SUCCESS_INTERVAL: int = 1
    SRS_SECOND_SUCCESS_INTERVAL: int = 6
    SRS_GRADUATION_THRESHOLD: int = 5

    # Calendar eviction
    EVICTION_HOUR: int = 2  # local hour of the nightly pass
    EVICTION_RETENTION_DAYS: int = 7  # unfinished review reminders kept this long
    EVICTION_BATCH_SIZE: int = 500  # max deletes per transaction
    EVICTION_MAX_CONCURRENCY: int = 4  # learners processed in parallel

    # Review reminder materialization
    REMINDER_HOUR: int = 0
    REMINDER_MINUTE: int = 5

    # In-process job scheduler
    SCHEDULER_ENABLED: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
