"""
Utility functions and helper modules.

This module provides common utility functions for datetime handling,
text and media validation, and configuration management.
"""

from .config import (
    ConfigError,
    DatabaseURLValidator,
    EnvironmentConfig,
    LoggingConfigurator,
    LogLevel,
    MomentsSettings,
)
from .datetime_utils import ensure_utc, get_current_utc
from .validation import (
    VIDEO_EXTENSIONS,
    is_supported_content_type,
    media_extension,
    media_type_for,
    sanitize_text,
)

__all__ = [
    # DateTime utilities
    "get_current_utc",
    "ensure_utc",
    # Validation helpers
    "VIDEO_EXTENSIONS",
    "sanitize_text",
    "media_extension",
    "media_type_for",
    "is_supported_content_type",
    # Configuration utilities
    "ConfigError",
    "LogLevel",
    "EnvironmentConfig",
    "DatabaseURLValidator",
    "LoggingConfigurator",
    "MomentsSettings",
]
