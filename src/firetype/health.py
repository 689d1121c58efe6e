"""Health check result reported by the store resource."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class HealthStatus:
    """Outcome of one liveness probe against the store."""

    healthy: bool
    latency_ms: float
    message: str | None = None
    details: dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls, latency_ms: float, **details: str) -> HealthStatus:
        return cls(True, latency_ms, "ok", details)

    @classmethod
    def failed(cls, exc: BaseException, latency_ms: float, **details: str) -> HealthStatus:
        return cls(False, latency_ms, str(exc), {"error_type": type(exc).__name__, **details})

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready payload; latency is clamped at zero and empty fields omitted."""
        payload: dict[str, Any] = {"healthy": self.healthy, "latency_ms": max(0.0, self.latency_ms)}
        if self.message is not None:
            payload["message"] = self.message
        if self.details:
            payload["details"] = dict(self.details)
        return payload
