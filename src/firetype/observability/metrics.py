"""Prometheus metrics for store operations and live listeners.

Series, with ``firetype`` as the default prefix:

- ``firetype_store_latency_seconds`` histogram (resource, operation, status)
- ``firetype_store_operations_total`` counter (resource, operation, status)
- ``firetype_store_errors_total`` counter (resource, operation, error_type)
- ``firetype_store_listeners`` gauge (resource, collection)
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Protocol

from firetype.errors import MissingDependencyError

if TYPE_CHECKING:
    from firetype.config.models import AppSettings

_INVALID_LABEL_CHARS = re.compile(r"[^a-z0-9_]+")

_LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

_OPERATION_LABELS = ("resource", "operation", "status")


def _import_prometheus_client() -> Any:
    try:
        import prometheus_client
    except ImportError as exc:  # pragma: no cover - depends on optional extras
        raise MissingDependencyError(
            "Prometheus metrics require optional dependency 'prometheus-client'. "
            "Install with: pip install 'firetype[metrics]'"
        ) from exc
    return prometheus_client


def _label(value: str, default: str = "unknown") -> str:
    return _INVALID_LABEL_CHARS.sub("_", value.strip().lower()).strip("_") or default


class MetricsRecorder(Protocol):
    """What store resources report; implementations must never raise."""

    def observe_operation(
        self,
        *,
        resource: str,
        operation: str,
        duration_seconds: float,
        success: bool,
    ) -> None: ...

    def observe_error(self, *, resource: str, operation: str, error_type: str) -> None: ...

    def observe_listeners(self, *, resource: str, collection: str, delta: int) -> None: ...


class NoopMetricsRecorder:
    """Recorder used until metrics are configured."""

    def observe_operation(
        self,
        *,
        resource: str,
        operation: str,
        duration_seconds: float,
        success: bool,
    ) -> None:
        return None

    def observe_error(self, *, resource: str, operation: str, error_type: str) -> None:
        return None

    def observe_listeners(self, *, resource: str, collection: str, delta: int) -> None:
        return None


class PrometheusMetricsRecorder:
    """Exports the ``<prefix>_store_*`` series to a Prometheus registry.

    Recorders built with the same registry and prefix share collectors, so
    constructing one twice does not raise a duplicate-registration error.
    """

    def __init__(self, *, registry: Any | None = None, prefix: str = "firetype") -> None:
        self._prometheus = _import_prometheus_client()
        self._registry = self._prometheus.REGISTRY if registry is None else registry
        self._prefix = _label(prefix, default="firetype")

        self._latency = self._collector(
            "Histogram",
            "store_latency_seconds",
            "Store operation latency in seconds.",
            _OPERATION_LABELS,
            buckets=_LATENCY_BUCKETS,
        )
        self._operations = self._collector(
            "Counter", "store_operations_total", "Store operations.", _OPERATION_LABELS
        )
        self._errors = self._collector(
            "Counter",
            "store_errors_total",
            "Store operation errors by exception type.",
            ("resource", "operation", "error_type"),
        )
        self._listeners = self._collector(
            "Gauge",
            "store_listeners",
            "Live snapshot listeners currently registered.",
            ("resource", "collection"),
        )

    def _collector(
        self,
        kind: str,
        suffix: str,
        documentation: str,
        labels: tuple[str, ...],
        **options: Any,
    ) -> Any:
        name = f"{self._prefix}_{suffix}"
        registered = getattr(self._registry, "_names_to_collectors", {}).get(name)
        if registered is not None:
            return registered
        factory = getattr(self._prometheus, kind)
        return factory(name, documentation, labelnames=labels, registry=self._registry, **options)

    def observe_operation(
        self,
        *,
        resource: str,
        operation: str,
        duration_seconds: float,
        success: bool,
    ) -> None:
        status = "success" if success else "error"
        labels = (_label(resource), _label(operation), status)
        self._latency.labels(*labels).observe(max(0.0, duration_seconds))
        self._operations.labels(*labels).inc()

    def observe_error(self, *, resource: str, operation: str, error_type: str) -> None:
        self._errors.labels(_label(resource), _label(operation), _label(error_type)).inc()

    def observe_listeners(self, *, resource: str, collection: str, delta: int) -> None:
        self._listeners.labels(_label(resource), collection).inc(delta)


_NOOP = NoopMetricsRecorder()
_recorder: MetricsRecorder = _NOOP


def get_metrics_recorder() -> MetricsRecorder:
    """Return the process-level recorder used by resources without their own."""
    return _recorder


def set_metrics_recorder(recorder: MetricsRecorder | None) -> MetricsRecorder:
    """Replace the process-level recorder; ``None`` restores the no-op one."""
    global _recorder
    _recorder = _NOOP if recorder is None else recorder
    return _recorder


def configure_prometheus_metrics(
    *,
    registry: Any | None = None,
    prefix: str = "firetype",
    set_default: bool = True,
) -> PrometheusMetricsRecorder:
    recorder = PrometheusMetricsRecorder(registry=registry, prefix=prefix)
    if set_default:
        set_metrics_recorder(recorder)
    return recorder


def configure_metrics_from_app_settings(
    app_settings: AppSettings,
    *,
    registry: Any | None = None,
) -> MetricsRecorder:
    """Install a Prometheus recorder when ``metrics.enabled``, the no-op one otherwise."""
    if not app_settings.metrics.enabled:
        return set_metrics_recorder(None)
    return configure_prometheus_metrics(registry=registry, prefix=app_settings.metrics.prefix)


def render_prometheus_metrics(*, registry: Any | None = None) -> bytes:
    """Render the registry in the Prometheus text exposition format."""
    prometheus_client = _import_prometheus_client()
    return bytes(
        prometheus_client.generate_latest(
            prometheus_client.REGISTRY if registry is None else registry
        )
    )
