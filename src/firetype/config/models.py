"""Typed configuration models with Pydantic validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ServiceSettings(BaseModel):
    """Identification of the application using firetype."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Service name")
    version: str = Field(default="0.0.0", min_length=1, description="Service version")


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseModel):
    """Application log output; ``library_level`` applies to the ``firetype`` loggers."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel = "INFO"
    library_level: LogLevel | None = Field(
        default=None,
        description="Level of firetype's own loggers, e.g. DEBUG to trace store calls",
    )
    format: Literal["json", "text"] = "json"
    sampling: float | None = Field(default=None, ge=0.0, le=1.0)


class MetricsSettings(BaseModel):
    """Store operation metrics."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Record Prometheus metrics")
    prefix: str = Field(default="firetype", min_length=1, description="Metric name prefix")


class FirestoreSettings(BaseModel):
    """Firestore connection settings."""

    model_config = ConfigDict(frozen=True)

    project: str | None = Field(
        default=None,
        min_length=1,
        description="Google Cloud project, inferred from the environment when omitted",
    )
    database: str = Field(default="(default)", min_length=1, description="Database id")
    credentials_file: Path | None = Field(
        default=None,
        description="Service account JSON file; application default credentials otherwise",
    )
    emulator_host: str | None = Field(
        default=None,
        min_length=1,
        description="host:port of a Firestore emulator, set as FIRESTORE_EMULATOR_HOST "
        "only while clients are built",
    )
    ping_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Timeout of the health check read in seconds",
    )

    @model_validator(mode="after")
    def validate_emulator_project(self) -> FirestoreSettings:
        if self.emulator_host is not None and self.project is None:
            raise ValueError("project is required when emulator_host is set")
        return self

    @classmethod
    def from_env(cls, prefix: str = "FIRETYPE_") -> FirestoreSettings:
        """Build settings from ``<prefix>FIRESTORE_*`` environment variables.

        ``FIRESTORE_EMULATOR_HOST`` is honoured as well, as the Google client
        libraries do.
        """

        def env(name: str) -> str | None:
            value = os.getenv(f"{prefix}{name}")
            return value or None

        credentials_file = env("FIRESTORE_CREDENTIALS_FILE")
        timeout = env("FIRESTORE_PING_TIMEOUT_SECONDS")
        try:
            ping_timeout_seconds = 5.0 if timeout is None else float(timeout)
        except ValueError as float_error:
            raise ValueError(
                f"Invalid {prefix}FIRESTORE_PING_TIMEOUT_SECONDS={timeout!r}: expected float"
            ) from float_error

        emulator_host = env("FIRESTORE_EMULATOR_HOST") or os.getenv("FIRESTORE_EMULATOR_HOST")
        return cls(
            project=env("FIRESTORE_PROJECT"),
            database=env("FIRESTORE_DATABASE") or "(default)",
            credentials_file=Path(credentials_file) if credentials_file else None,
            emulator_host=emulator_host or None,
            ping_timeout_seconds=ping_timeout_seconds,
        )


class AppSettings(BaseModel):
    """Root application settings."""

    model_config = ConfigDict(frozen=True)

    service: ServiceSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    firestore: FirestoreSettings = Field(default_factory=FirestoreSettings)
