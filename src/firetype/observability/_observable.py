"""Metrics hooks shared by store resources."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from time import perf_counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from firetype.observability.metrics import MetricsRecorder


class ObservableMixin:
    """Times resource operations and reports them to a metrics recorder.

    Subclasses set ``_resource_name`` (a ``ClassVar[str]`` on slotted
    dataclasses) and ``_metrics``; ``None`` selects the process-level
    recorder at call time, so recorders configured later are picked up.
    """

    _resource_name: str
    _metrics: MetricsRecorder | None

    @property
    def metrics(self) -> MetricsRecorder:
        from firetype.observability.metrics import get_metrics_recorder

        return self._metrics if self._metrics is not None else get_metrics_recorder()

    @contextmanager
    def _observed(self, operation: str) -> Iterator[None]:
        """Record the duration and outcome of the wrapped block, re-raising errors."""
        started = perf_counter()
        try:
            yield
        except Exception as exc:
            self._record(operation, started, success=False)
            self.metrics.observe_error(
                resource=self._resource_name,
                operation=operation,
                error_type=type(exc).__name__,
            )
            raise
        self._record(operation, started, success=True)

    def _record(self, operation: str, started: float, *, success: bool) -> None:
        self.metrics.observe_operation(
            resource=self._resource_name,
            operation=operation,
            duration_seconds=perf_counter() - started,
            success=success,
        )
