"""Settings loader: layered JSON files and environment overrides."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from functools import reduce
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from firetype.config.errors import ConfigFileNotFoundError, ConfigValidationError
from firetype.config.models import AppSettings
from firetype.config.placeholders import resolve_placeholders

DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_BASE_FILE = "appsettings.json"
DEFAULT_ENV = "development"
ENV_VAR_NAME = "FIRETYPE_ENV"
OVERRIDE_PREFIX = "FIRETYPE__"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with ``override`` merged into ``base`` recursively."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            value = deep_merge(merged[key], value)
        merged[key] = value
    return merged


def read_settings_file(path: Path, *, required: bool = True) -> dict[str, Any]:
    """Read one JSON settings layer; an optional missing file is an empty layer.

    Raises:
        ConfigFileNotFoundError: If ``required`` and the file does not exist.
    """
    if not path.is_file():
        if required:
            raise ConfigFileNotFoundError(path)
        return {}
    data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    return data


def env_overrides(
    environ: Mapping[str, str] | None = None,
    *,
    prefix: str = OVERRIDE_PREFIX,
) -> dict[str, Any]:
    """Collect ``FIRETYPE__<SECTION>__<KEY>`` variables into a settings layer.

    ``FIRETYPE__FIRESTORE__DATABASE=orders`` becomes
    ``{"firestore": {"database": "orders"}}``. Values stay strings and are
    coerced during validation.
    """
    source = os.environ if environ is None else environ
    layer: dict[str, Any] = {}
    for name, value in source.items():
        if not name.startswith(prefix):
            continue
        *sections, key = name[len(prefix) :].lower().split("__")
        target = layer
        for section in sections:
            target = target.setdefault(section, {})
        target[key] = value
    return layer


def load_config(
    *,
    config_dir: Path | str | None = None,
    env: str | None = None,
    strict_placeholders: bool = True,
    environ: Mapping[str, str] | None = None,
) -> AppSettings:
    """Load ``AppSettings`` from layered sources, later layers winning:

    1. ``<config_dir>/appsettings.json`` (required)
    2. ``<config_dir>/appsettings.<env>.json`` when present
    3. ``FIRETYPE__<SECTION>__<KEY>`` environment variables

    ``${VAR}`` placeholders are resolved after merging. ``env`` defaults to
    ``$FIRETYPE_ENV`` or ``development``.

    Raises:
        ConfigFileNotFoundError: If the base file is missing.
        ConfigValidationError: If the merged settings are invalid.
        PlaceholderResolutionError: If ``strict_placeholders`` and a variable
            is not set.
    """
    directory = DEFAULT_CONFIG_DIR if config_dir is None else Path(config_dir)
    environment = env or os.environ.get(ENV_VAR_NAME, DEFAULT_ENV)

    layers = [
        read_settings_file(directory / DEFAULT_BASE_FILE),
        read_settings_file(directory / f"appsettings.{environment}.json", required=False),
        env_overrides(environ),
    ]
    merged = reduce(deep_merge, layers, {})
    return _validate(resolve_placeholders(merged, strict=strict_placeholders))


def _validate(data: dict[str, Any]) -> AppSettings:
    try:
        return AppSettings.model_validate(data)
    except ValidationError as exc:
        problems = [(_location(error["loc"]), error["msg"]) for error in exc.errors()]
        raise ConfigValidationError(problems) from exc


def _location(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc) or "settings"
