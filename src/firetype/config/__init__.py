"""Configuration loading and validation module."""

from firetype.config.errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    PlaceholderResolutionError,
)
from firetype.config.loader import deep_merge, env_overrides, load_config
from firetype.config.models import (
    AppSettings,
    FirestoreSettings,
    LoggingSettings,
    MetricsSettings,
    ServiceSettings,
)

__all__ = [
    "AppSettings",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigValidationError",
    "FirestoreSettings",
    "LoggingSettings",
    "MetricsSettings",
    "PlaceholderResolutionError",
    "ServiceSettings",
    "deep_merge",
    "env_overrides",
    "load_config",
]
