"""
Configuration management utilities.

This module provides environment variable handling with type conversion,
database URL validation, logging configuration utilities and the tunable
settings of the Pet Moments feed core.
"""

import json
import logging
import logging.config
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlparse

from ..exceptions import EnvironmentException


class ConfigError(Exception):
    """Exception raised for configuration-related errors."""

    pass


class LogLevel(Enum):
    """Enumeration for log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentConfig:
    """Utility class for handling environment variables with type conversion."""

    @staticmethod
    def get_str(
        key: str, default: Optional[str] = None, required: bool = False
    ) -> Optional[str]:
        """
        Get a string environment variable.

        Args:
            key: Environment variable key
            default: Default value if not found
            required: Whether the variable is required

        Returns:
            String value or default

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key, default)

        if required and value is None:
            raise ConfigError(f"Required environment variable '{key}' is not set")

        return value

    @staticmethod
    def get_int(
        key: str, default: Optional[int] = None, required: bool = False
    ) -> Optional[int]:
        """
        Get an integer environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(f"Required environment variable '{key}' is not set")
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be an integer, got: {value}"
            )

    @staticmethod
    def get_float(
        key: str, default: Optional[float] = None, required: bool = False
    ) -> Optional[float]:
        """
        Get a float environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(f"Required environment variable '{key}' is not set")
            return default

        try:
            return float(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be a float, got: {value}"
            )

    @staticmethod
    def get_bool(
        key: str, default: Optional[bool] = None, required: bool = False
    ) -> Optional[bool]:
        """
        Get a boolean environment variable.

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(f"Required environment variable '{key}' is not set")
            return default

        return value.lower() in ("true", "1", "yes", "on", "enabled")

    @staticmethod
    def get_list(
        key: str,
        separator: str = ",",
        default: Optional[List[str]] = None,
        required: bool = False,
    ) -> Optional[List[str]]:
        """
        Get a list environment variable.

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(f"Required environment variable '{key}' is not set")
            return default or []

        return [item.strip() for item in value.split(separator) if item.strip()]

    @staticmethod
    def get_json(
        key: str, default: Optional[Dict[str, Any]] = None, required: bool = False
    ) -> Optional[Dict[str, Any]]:
        """
        Get a JSON environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid JSON
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(f"Required environment variable '{key}' is not set")
            return default

        try:
            result = json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Environment variable '{key}' contains invalid JSON: {e}"
            )
        if not isinstance(result, dict):
            raise ConfigError(f"Environment variable '{key}' must be a JSON object")
        return result


class DatabaseURLValidator:
    """Utility class for validating database URLs."""

    SUPPORTED_DRIVERS = {
        "postgresql": ["postgresql", "postgresql+asyncpg", "postgresql+psycopg2"],
        "sqlite": ["sqlite", "sqlite+aiosqlite"],
    }

    @classmethod
    def is_sqlite(cls, url: str) -> bool:
        """Check whether the URL points at a SQLite database."""
        return urlparse(url).scheme in cls.SUPPORTED_DRIVERS["sqlite"]

    @classmethod
    def validate_url(cls, url: str) -> Dict[str, Any]:
        """
        Validate a database URL and return parsed components.

        Args:
            url: Database URL to validate

        Returns:
            Dictionary with validation results and parsed components

        Raises:
            ConfigError: If URL is invalid
        """
        if not url:
            raise ConfigError("Database URL cannot be empty")

        try:
            parsed = urlparse(url)
        except Exception as e:
            raise ConfigError(f"Invalid URL format: {e}")

        if not parsed.scheme:
            raise ConfigError(
                "Database URL must include a scheme (e.g., postgresql://)"
            )

        supported = [d for drivers in cls.SUPPORTED_DRIVERS.values() for d in drivers]
        if parsed.scheme not in supported:
            raise ConfigError(
                f"Unsupported database driver '{parsed.scheme}'. Supported: {', '.join(supported)}"
            )

        sqlite = cls.is_sqlite(url)
        if not sqlite and not parsed.hostname:
            raise ConfigError("Database URL must include a hostname")

        if not parsed.path.lstrip("/"):
            raise ConfigError("Database URL must include a database name")

        return {
            "valid": True,
            "scheme": parsed.scheme,
            "hostname": parsed.hostname,
            "port": parsed.port,
            "database": parsed.path.lstrip("/") if parsed.path else "",
            "username": parsed.username,
            "password": parsed.password,
            "query": dict(parse_qs(parsed.query)),
        }


class LoggingConfigurator:
    """Utility class for configuring logging."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @staticmethod
    def configure_basic_logging(
        level: Union[str, LogLevel] = LogLevel.INFO,
        format_string: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> None:
        """
        Configure basic logging for the application.

        Args:
            level: Logging level
            format_string: Custom format string
            log_file: Optional log file path
        """
        if isinstance(level, LogLevel):
            level = level.value

        basic_config_args: Dict[str, Any] = {
            "level": level,
            "format": format_string or LoggingConfigurator.DEFAULT_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }

        if log_file:
            basic_config_args["filename"] = log_file
            basic_config_args["filemode"] = "a"

        logging.basicConfig(**basic_config_args)

    @staticmethod
    def configure_structured_logging(
        config_dict: Optional[Dict[str, Any]] = None, config_file: Optional[str] = None
    ) -> None:
        """
        Configure structured logging using a dictionary or file.

        Args:
            config_dict: Logging configuration dictionary
            config_file: Path to logging configuration file
        """
        if config_file and Path(config_file).exists():
            logging.config.fileConfig(config_file)
        elif config_dict:
            logging.config.dictConfig(config_dict)
        else:
            default_config = {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "standard": {"format": LoggingConfigurator.DEFAULT_FORMAT},
                    "detailed": {
                        "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(message)s"
                    },
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": "INFO",
                        "formatter": "standard",
                        "stream": "ext://sys.stdout",
                    }
                },
                "loggers": {
                    "vet_moments": {
                        "level": "INFO",
                        "handlers": ["console"],
                        "propagate": False,
                    }
                },
                "root": {"level": "WARNING", "handlers": ["console"]},
            }
            logging.config.dictConfig(default_config)


VISIBILITY_VALUES = ("public", "owners_only", "private")


@dataclass
class MomentsSettings:
    """
    Tunable limits and timings of the Pet Moments feed.

    Defaults mirror what the portal ships with. Every value can be overridden
    through a ``MOMENTS_*`` environment variable, see ``from_environment``.
    """

    page_size: int = 20
    debounce_ms: int = 500
    max_comment_length: int = 1000
    max_post_length: int = 2000
    max_media_files: int = 6
    max_media_bytes: int = 5 * 1024 * 1024
    recent_comments_limit: int = 200
    comments_per_post: int = 3
    default_visibility: str = "owners_only"
    fallback_owner_name: str = "Owner"

    def __post_init__(self) -> None:
        self.validate()

    @property
    def debounce_seconds(self) -> float:
        """Debounce window in seconds, as asyncio expects it."""
        return self.debounce_ms / 1000.0

    def validate(self) -> None:
        """
        Check that limits are usable.

        Raises:
            ConfigError: If a limit is not positive or the visibility is unknown
        """
        positive = {
            "page_size": self.page_size,
            "max_comment_length": self.max_comment_length,
            "max_post_length": self.max_post_length,
            "max_media_files": self.max_media_files,
            "max_media_bytes": self.max_media_bytes,
            "recent_comments_limit": self.recent_comments_limit,
            "comments_per_post": self.comments_per_post,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ConfigError(f"Setting '{name}' must be positive, got: {value}")

        if self.debounce_ms < 0:
            raise ConfigError(
                f"Setting 'debounce_ms' cannot be negative, got: {self.debounce_ms}"
            )

        if self.default_visibility not in VISIBILITY_VALUES:
            raise ConfigError(
                f"Setting 'default_visibility' must be one of {', '.join(VISIBILITY_VALUES)}"
            )

    @classmethod
    def from_environment(cls) -> "MomentsSettings":
        """
        Create settings from ``MOMENTS_*`` environment variables.

        Raises:
            EnvironmentException: If a variable cannot be parsed or the
                resulting settings are invalid
        """
        values: Dict[str, Any] = {}
        for name, env_var in _SETTINGS_ENV_VARS.items():
            default = getattr(cls, name)
            try:
                if isinstance(default, int):
                    values[name] = EnvironmentConfig.get_int(env_var, default)
                else:
                    values[name] = EnvironmentConfig.get_str(env_var, default)
            except ConfigError as e:
                raise EnvironmentException(
                    str(e), env_var=env_var, env_value=os.getenv(env_var)
                ) from e

        try:
            return cls(**values)
        except ConfigError as e:
            raise EnvironmentException(
                f"Invalid Pet Moments settings in environment: {e}"
            ) from e


_SETTINGS_ENV_VARS = {
    "page_size": "MOMENTS_PAGE_SIZE",
    "debounce_ms": "MOMENTS_REALTIME_DEBOUNCE_MS",
    "max_comment_length": "MOMENTS_MAX_COMMENT_LENGTH",
    "max_post_length": "MOMENTS_MAX_POST_LENGTH",
    "max_media_files": "MOMENTS_MAX_MEDIA_FILES",
    "max_media_bytes": "MOMENTS_MAX_MEDIA_BYTES",
    "recent_comments_limit": "MOMENTS_RECENT_COMMENTS_LIMIT",
    "comments_per_post": "MOMENTS_COMMENTS_PER_POST",
    "default_visibility": "MOMENTS_DEFAULT_VISIBILITY",
    "fallback_owner_name": "MOMENTS_FALLBACK_OWNER_NAME",
}
