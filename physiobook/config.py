"""
Process configuration.

Loaded from environment variables (prefix PHYSIOBOOK_) or an optional .env
file. Practice settings (opening hours, slot duration...) live in the
settings table instead, see models/settings.py.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    database_url: str = "sqlite:///./physiobook.sqlite"
    busy_timeout_ms: int = 5000
    database_echo: bool = False

    # Practice time zone (IANA name)
    timezone: str = "Europe/Berlin"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None  # Relative to log_dir; console only when unset
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_prefix="PHYSIOBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("busy_timeout_ms")
    @classmethod
    def _check_busy_timeout(cls, value: int) -> int:
        if value < 0:
            raise ValueError("busy_timeout_ms must not be negative")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value


@lru_cache()
def get_settings() -> Settings:
    return Settings()
