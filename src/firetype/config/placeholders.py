"""Environment variable placeholder resolution for settings files."""

from __future__ import annotations

import os
import re
from typing import Any

from firetype.config.errors import PlaceholderResolutionError

PLACEHOLDER_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_placeholders(data: dict[str, Any], *, strict: bool = True) -> dict[str, Any]:
    """Replace ``${ENV_VAR}`` placeholders in every string of ``data``.

    Nested mappings and lists are walked; non-string leaves are kept.

    Raises:
        PlaceholderResolutionError: If ``strict`` and a variable is not set.
    """
    return _resolve(data, "", strict)


def _resolve(value: Any, path: str, strict: bool) -> Any:
    if isinstance(value, dict):
        return {
            key: _resolve(item, f"{path}.{key}" if path else str(key), strict)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_resolve(item, f"{path}[{index}]", strict) for index, item in enumerate(value)]
    if isinstance(value, str):
        return _substitute(value, path, strict)
    return value


def _substitute(value: str, path: str, strict: bool) -> str:
    def replace_match(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        if strict:
            raise PlaceholderResolutionError(match.group(1), path)
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace_match, value)
