"""Configuration management for SchemaForge.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once at process
startup and is immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SCHEMAFORGE_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application Settings
    app_name: str = "SchemaForge"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Validation Settings
    max_definition_depth: int = Field(
        default=32,
        ge=1,
        le=256,
        description="Maximum nesting depth walked inside field and step definitions",
    )
    functions_endpoint_prefix: str = Field(
        default="/functions/",
        description="Path prefix expected on function endpoints (warning when absent)",
    )
    regex_dialect_check: bool = Field(
        default=True,
        description="Compile declared field patterns with Python's re module",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("functions_endpoint_prefix")
    @classmethod
    def validate_endpoint_prefix(cls, v: str) -> str:
        """Endpoint prefix must be an absolute path segment."""
        if not v.startswith("/") or not v.endswith("/"):
            raise ValueError("functions_endpoint_prefix must start and end with '/'")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once at startup and shared afterwards.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
