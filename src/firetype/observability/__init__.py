"""Logging and metrics helpers."""

from firetype.observability._observable import ObservableMixin
from firetype.observability.logging import (
    JsonFormatter,
    SamplingFilter,
    TextFormatter,
    bootstrap_logging,
    bootstrap_logging_from_app_settings,
    record_fields,
)
from firetype.observability.metrics import (
    MetricsRecorder,
    NoopMetricsRecorder,
    PrometheusMetricsRecorder,
    configure_metrics_from_app_settings,
    configure_prometheus_metrics,
    get_metrics_recorder,
    render_prometheus_metrics,
    set_metrics_recorder,
)

__all__ = [
    "JsonFormatter",
    "MetricsRecorder",
    "NoopMetricsRecorder",
    "ObservableMixin",
    "PrometheusMetricsRecorder",
    "SamplingFilter",
    "TextFormatter",
    "bootstrap_logging",
    "bootstrap_logging_from_app_settings",
    "configure_metrics_from_app_settings",
    "configure_prometheus_metrics",
    "get_metrics_recorder",
    "record_fields",
    "render_prometheus_metrics",
    "set_metrics_recorder",
]
