# backend/pitchbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the booking backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "test", "staging", "production"] = "development"
    is_testing: bool = False

    database_url: str = Field(
        default="sqlite:///./pitchbook.db",
        description="SQLAlchemy URL for the booking store",
    )
    database_echo: bool = False

    redis_url: str = Field(default="redis://localhost:6379/0")
    lock_namespace: str = "pitchbook"
    slot_lock_enabled: bool = True
    slot_lock_ttl_seconds: int = Field(default=30, ge=1, le=600)

    # Booking dates/times are wall-clock values in the venue timezone
    booking_timezone: str = "UTC"

    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = (value or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level

    @field_validator("database_url")
    @classmethod
    def _strip_database_url(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("database_url must not be empty")
        return cleaned

    def get_database_url(self) -> str:
        """Return the database URL, forcing an in-memory store under pytest."""
        if self.is_testing or is_running_tests():
            return os.getenv("TEST_DATABASE_URL", "sqlite://")
        return self.database_url

    @property
    def is_sqlite(self) -> bool:
        return self.get_database_url().startswith("sqlite")


settings = Settings()
