# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the learner-state engine.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables

The engine's tuning table is loaded separately from YAML, see
src.core.learner_state.policy.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from src.core.config.settings import (
    APISettings,
    EngineSettings,
    ExternalServiceSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "EngineSettings",
    "ExternalServiceSettings",
    "APISettings",
]
