"""Tests for ObservableMixin."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar
from unittest.mock import MagicMock

import pytest

from firetype.observability._observable import ObservableMixin
from firetype.observability.metrics import NoopMetricsRecorder, set_metrics_recorder


@dataclass(slots=True)
class CacheResource(ObservableMixin):
    _resource_name: ClassVar[str] = "cache"

    name: str
    _metrics: Any = None


@pytest.fixture()
def recorder() -> MagicMock:
    return MagicMock(spec=NoopMetricsRecorder)


class TestRecorderSelection:
    def test_injected_recorder_wins(self, recorder: MagicMock) -> None:
        set_metrics_recorder(MagicMock(spec=NoopMetricsRecorder))
        assert CacheResource("c", recorder).metrics is recorder

    def test_process_recorder_is_resolved_at_call_time(self, recorder: MagicMock) -> None:
        resource = CacheResource("c")
        assert isinstance(resource.metrics, NoopMetricsRecorder)

        set_metrics_recorder(recorder)
        assert resource.metrics is recorder


class TestObserved:
    def test_success(self, recorder: MagicMock) -> None:
        with CacheResource("c", recorder)._observed("get"):
            pass

        kwargs = recorder.observe_operation.call_args.kwargs
        assert kwargs["resource"] == "cache"
        assert kwargs["operation"] == "get"
        assert kwargs["success"] is True
        assert kwargs["duration_seconds"] >= 0
        recorder.observe_error.assert_not_called()

    def test_error_is_recorded_and_reraised(self, recorder: MagicMock) -> None:
        with pytest.raises(KeyError):
            with CacheResource("c", recorder)._observed("set"):
                raise KeyError("k")

        assert recorder.observe_operation.call_args.kwargs["success"] is False
        recorder.observe_error.assert_called_once_with(
            resource="cache",
            operation="set",
            error_type="KeyError",
        )
