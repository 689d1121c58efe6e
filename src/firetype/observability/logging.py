"""Structured logging bootstrap for applications using firetype.

firetype modules log through ``logging.getLogger(__name__)`` and pass context
such as ``collection`` and ``document_id`` via ``extra``. The formatters here
render those fields next to the message, tagged with service and environment.
"""

from __future__ import annotations

import json
import logging
import os
import random
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal, TextIO

if TYPE_CHECKING:
    from firetype.config.models import AppSettings

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra`` fields attached to ``record``."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
    }


class SamplingFilter(logging.Filter):
    """Pass a ``ratio`` of records below WARNING; warnings and errors always pass."""

    def __init__(self, ratio: float, *, rng: Callable[[], float] = random.random) -> None:
        super().__init__()
        self.ratio = ratio
        self._rng = rng

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.WARNING or self._rng() < self.ratio


class _ServiceFormatter(logging.Formatter):
    def __init__(self, *, service: str, env: str, fmt: str | None = None) -> None:
        super().__init__(fmt)
        self.service = service
        self.env = env


class JsonFormatter(_ServiceFormatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")
        payload: dict[str, Any] = {
            "timestamp": created.replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
            "env": self.env,
            **record_fields(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


class TextFormatter(_ServiceFormatter):
    """Human readable lines with ``key=value`` pairs appended."""

    def __init__(self, *, service: str, env: str) -> None:
        fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
        super().__init__(service=service, env=env, fmt=fmt)

    def format(self, record: logging.LogRecord) -> str:
        pairs = {"service": self.service, "env": self.env}
        pairs.update(sorted(record_fields(record).items()))
        return " ".join([super().format(record), *(f"{k}={v}" for k, v in pairs.items())])


def bootstrap_logging(
    *,
    service: str,
    env: str | None = None,
    level: str = "INFO",
    log_format: Literal["json", "text"] = "json",
    sampling: float | None = None,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Attach one structured stream handler to ``logger`` (the root logger by default).

    ``env`` falls back to ``$FIRETYPE_ENV`` and then ``development``. With
    ``force`` existing handlers are removed first. A named logger stops
    propagating so records are not emitted twice.
    """
    env = env or os.getenv("FIRETYPE_ENV", "development")
    formatter_cls = TextFormatter if log_format == "text" else JsonFormatter

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter_cls(service=service, env=env))
    if sampling is not None and sampling < 1.0:
        handler.addFilter(SamplingFilter(sampling))

    target = logger if logger is not None else logging.getLogger()
    if force:
        for existing in target.handlers[:]:
            target.removeHandler(existing)
    target.addHandler(handler)
    target.setLevel(level.upper())
    if target.name != "root":
        target.propagate = False
    return target


def bootstrap_logging_from_app_settings(
    app_settings: AppSettings,
    *,
    env: str | None = None,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Bootstrap logging from the ``service`` and ``logging`` settings sections."""
    settings = app_settings.logging
    target = bootstrap_logging(
        service=app_settings.service.name,
        env=env,
        level=settings.level,
        log_format=settings.format,
        sampling=settings.sampling,
        logger=logger,
        stream=stream,
        force=force,
    )
    if settings.library_level is not None:
        logging.getLogger("firetype").setLevel(settings.library_level)
    return target
