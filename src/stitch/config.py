"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        API_URL: Base URL of the Smart Stitch backend
        API_TOKEN: Bearer token used by the CLI when none is stored
        CACHE_TTL_SECONDS: Freshness window for cached resources
        REQUEST_TIMEOUT_SECONDS: HTTP timeout for backend calls
        REQUEST_MAX_ATTEMPTS: Attempts per backend call on transport errors
        CACHE_DIR: Directory for the persisted credential storage
        LOG_LEVEL: Logging level
        LOG_FILE: JSON Lines log file written alongside console output
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    API_URL: str = Field(
        default="https://smart-stitch-backend.onrender.com",
        description="Base URL of the Smart Stitch backend",
    )
    API_TOKEN: str | None = Field(
        default=None, description="Bearer token used when none is stored"
    )

    # Cache policy
    CACHE_TTL_SECONDS: float = Field(
        default=300.0, ge=0.0, description="Freshness window for cached resources"
    )

    # Backend client
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=30.0, gt=0.0, description="HTTP timeout for backend calls"
    )
    REQUEST_MAX_ATTEMPTS: int = Field(
        default=3, ge=1, le=10, description="Attempts per call on transport errors"
    )

    CACHE_DIR: Path = Field(default=Path(".cache"), description="Cache directory")

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(
        default=None, description="JSON Lines log file; console only when unset"
    )

    @property
    def api_url(self) -> str:
        """Get the backend base URL without a trailing slash."""
        return self.API_URL.rstrip("/")

    @property
    def cache_ttl_ms(self) -> int:
        """Get the cache TTL in epoch milliseconds."""
        return int(self.CACHE_TTL_SECONDS * 1000)

    @property
    def credentials_path(self) -> Path:
        """Get the path of the persisted credential storage."""
        return self.CACHE_DIR / "credentials.json"

    @field_validator("API_URL")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate that API_URL is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("API_URL must start with http:// or https://")
        return v

    def ensure_directories(self) -> None:
        """Create the cache directory if it doesn't exist."""
        self.CACHE_DIR.mkdir(parents=True, exist_ok=True)

    def redacted_display(self) -> dict[str, str | int | float | None]:
        """Return settings with the API token redacted for display."""
        def redact(value: str | None) -> str | None:
            if value is None:
                return None
            return f"{value[:8]}...{value[-4:]}" if len(value) > 12 else "***"

        return {
            "API_URL": self.API_URL,
            "API_TOKEN": redact(self.API_TOKEN),
            "CACHE_TTL_SECONDS": self.CACHE_TTL_SECONDS,
            "REQUEST_TIMEOUT_SECONDS": self.REQUEST_TIMEOUT_SECONDS,
            "REQUEST_MAX_ATTEMPTS": self.REQUEST_MAX_ATTEMPTS,
            "CACHE_DIR": str(self.CACHE_DIR),
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
