"""Configuration module for Tollgate.

Provides centralized configuration management with type-safe enums.

Usage:
    from tollgate.core.config import settings, Environment

    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from tollgate.core.config.enums import Environment, LogFormat
from tollgate.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "LogFormat",
    "settings",
]

# Singleton settings instance
settings = Settings()
