"""
Centralized configuration management using Pydantic Settings.

Configuration is loaded from environment variables with sensible defaults.
"""

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="CAPSYNC_",
        env_file=".env",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    command_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a device RPC before failing the command (<= 0 disables)",
    )
    command_history: int = Field(
        default=20,
        ge=0,
        description="Number of finished command executions kept per device",
    )
    refresh_method: str = Field(
        default="get_prop",
        description="RPC method used to read properties back after a write",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (mainly for testing)."""
    global _settings
    _settings = None


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
