"""Errors raised while loading settings."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from firetype.errors import FiretypeError


class ConfigError(FiretypeError):
    """Base class of settings errors."""


class ConfigFileNotFoundError(ConfigError):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Settings file {self.path} does not exist")


class ConfigValidationError(ConfigError):
    """Merged settings failed validation.

    ``problems`` holds ``(location, message)`` pairs, the location being a
    dotted key path such as ``firestore.ping_timeout_seconds``.
    """

    def __init__(self, problems: Sequence[tuple[str, str]]) -> None:
        self.problems = list(problems)
        details = "; ".join(f"{location}: {message}" for location, message in self.problems)
        super().__init__(f"Invalid settings ({details})")


class PlaceholderResolutionError(ConfigError):
    """A ``${VAR}`` placeholder names an environment variable that is not set."""

    def __init__(self, variable: str, key_path: str) -> None:
        self.variable = variable
        self.key_path = key_path
        super().__init__(f"Environment variable {variable} used by {key_path} is not set")
