# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
learner-state engine. Settings are loaded from environment variables
with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.engine.subjects)
    ['math', 'japanese', 'science', 'social_studies', 'english']
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Learner-state engine configuration.

    Attributes:
        policy_path: YAML file overriding the default tuning policy.
        subjects: Subjects sessions and events may use.
        closed_session_retention: Closed sessions kept readable for
            snapshot and projection; the oldest are dropped beyond it.
    """

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_",
        extra="ignore",
    )

    policy_path: Path | None = Path("config/engine/policy.yaml")
    subjects: list[str] = Field(
        default_factory=lambda: ["math", "japanese", "science", "social_studies", "english"]
    )
    closed_session_retention: int = Field(default=1000, ge=0)


class ExternalServiceSettings(BaseSettings):
    """Timeouts and retry policy for external collaborators.

    Attributes:
        profile_timeout_seconds: Per-attempt timeout of a profile lookup.
        profile_max_attempts: Profile lookup attempts before falling back.
        profile_backoff_seconds: Initial backoff between profile attempts.
        profile_backoff_max_seconds: Upper bound of the profile backoff.
        catalog_timeout_seconds: Timeout of a content catalog lookup.
        archive_timeout_seconds: Per-attempt timeout of an archive write.
        archive_max_attempts: Archive write attempts before buffering.
        archive_backoff_seconds: Initial backoff between archive attempts.
        archive_buffer_size: Records kept locally while the sink is down.
        archive_path: JSON-lines file for archived sessions (in-memory when unset).
    """

    model_config = SettingsConfigDict(
        env_prefix="EXTERNAL_",
        extra="ignore",
    )

    profile_timeout_seconds: float = 2.0
    profile_max_attempts: int = Field(default=3, ge=1)
    profile_backoff_seconds: float = 0.2
    profile_backoff_max_seconds: float = 2.0
    catalog_timeout_seconds: float = 1.0
    archive_timeout_seconds: float = 5.0
    archive_max_attempts: int = Field(default=3, ge=1)
    archive_backoff_seconds: float = 0.5
    archive_buffer_size: int = Field(default=1000, ge=1)
    archive_path: Path | None = None


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 34000
    workers: int = 1
    reload: bool = False


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        engine: Learner-state engine settings.
        external: External collaborator settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    engine: EngineSettings = Field(default_factory=EngineSettings)
    external: ExternalServiceSettings = Field(default_factory=ExternalServiceSettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
