"""Shared fixtures: an in-memory stand-in for the Firestore clients."""

from __future__ import annotations

import copy
import itertools
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pytest
from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1.base_document import BaseDocumentReference
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.transforms import DELETE_FIELD, SERVER_TIMESTAMP, Increment

from firetype.collection import Collection
from firetype.db.firestore import FirestoreResource
from firetype.observability.metrics import set_metrics_recorder


@dataclass(slots=True)
class FakeSnapshot:
    id: str
    reference: FakeDocumentReference
    _data: dict[str, Any] | None

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)


class FakeDocumentReference(BaseDocumentReference):
    """Real ``BaseDocumentReference`` so the marshaller recognises it.

    Keeps the base constructor signature, which ``copy`` relies on.
    """

    async def get(self) -> FakeSnapshot:
        self._client.calls.append(("get", self.path))
        if self._client.fail_with is not None:
            raise self._client.fail_with
        return self._client.snapshot(self.path)

    async def set(self, data: dict[str, Any], merge: bool = False) -> None:
        self._client.calls.append(("set", self.path, data, merge))
        current = self._client.documents.get(self.path, {}) if merge else {}
        updated = copy.deepcopy(current)
        for key, value in data.items():
            if merge and isinstance(value, dict) and isinstance(updated.get(key), dict):
                for nested_key, nested_value in value.items():
                    _write(updated, f"{key}.{nested_key}", nested_value)
            else:
                _write(updated, key, value)
        self._client.documents[self.path] = updated

    async def update(self, data: dict[str, Any]) -> None:
        self._client.calls.append(("update", self.path, data))
        if self.path not in self._client.documents:
            raise NotFound(f"No document to update: {self.path}")
        updated = copy.deepcopy(self._client.documents[self.path])
        for key, value in data.items():
            _write(updated, key, value)
        self._client.documents[self.path] = updated

    async def delete(self) -> None:
        self._client.calls.append(("delete", self.path))
        self._client.documents.pop(self.path, None)


class FakeWatch:
    def __init__(self, store: FakeFirestore, listener: tuple[FakeQuery, Callable[..., None]]):
        self._store = store
        self._listener = listener
        self.unsubscribed = False
        self.is_active = True

    def unsubscribe(self) -> None:
        self.unsubscribed = True
        self.is_active = False
        if self._listener in self._store.listeners:
            self._store.listeners.remove(self._listener)


@dataclass(slots=True)
class FakeQuery:
    store: FakeFirestore
    path: str
    steps: tuple[tuple[Any, ...], ...] = ()

    def _chain(self, *step: Any) -> FakeQuery:
        return FakeQuery(self.store, self.path, (*self.steps, step))

    def where(self, *, filter: FieldFilter) -> FakeQuery:
        return self._chain("where", filter.field_path, filter.op_string, filter.value)

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> FakeQuery:
        return self._chain("order_by", field_path, direction)

    def limit(self, count: int) -> FakeQuery:
        return self._chain("limit", count)

    def start_at(self, values: list[Any]) -> FakeQuery:
        return self._chain("start_at", values)

    def start_after(self, values: list[Any]) -> FakeQuery:
        return self._chain("start_after", values)

    def end_at(self, values: list[Any]) -> FakeQuery:
        return self._chain("end_at", values)

    def end_before(self, values: list[Any]) -> FakeQuery:
        return self._chain("end_before", values)

    def document(self, id: str | None = None) -> FakeDocumentReference:
        return self.store.document(f"{self.path}/{id or self.store.auto_id()}")

    async def add(self, data: dict[str, Any]) -> tuple[None, FakeDocumentReference]:
        reference = self.document()
        await reference.set(data)
        return None, reference

    async def get(self) -> list[FakeSnapshot]:
        self.store.calls.append(("query", self.path, self.steps))
        if self.store.fail_with is not None:
            raise self.store.fail_with
        return self.results()

    def on_snapshot(self, callback: Callable[..., None]) -> FakeWatch:
        listener = (self, callback)
        self.store.listeners.append(listener)
        watch = FakeWatch(self.store, listener)
        self.store.watches.append(watch)
        return watch

    def results(self) -> list[FakeSnapshot]:
        prefix = f"{self.path}/"
        snapshots = [
            self.store.snapshot(path)
            for path in self.store.documents
            if path.startswith(prefix) and "/" not in path[len(prefix) :]
        ]
        for step in self.steps:
            if step[0] == "where":
                _, field_path, op, value = step
                snapshots = [s for s in snapshots if _matches(s, field_path, op, value)]
            elif step[0] == "order_by":
                _, field_path, direction = step
                snapshots.sort(
                    key=lambda s: _field(s, field_path),
                    reverse=direction == "DESCENDING",
                )
            elif step[0] == "limit":
                snapshots = snapshots[: step[1]]
        return snapshots


class FakeFirestore:
    """Stands in for both ``AsyncClient`` and the sync listener ``Client``."""

    def __init__(self) -> None:
        self.project = "test-project"
        self.documents: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.listeners: list[tuple[FakeQuery, Callable[..., None]]] = []
        self.watches: list[FakeWatch] = []
        self.fail_with: Exception | None = None
        self.closed = False
        self._ids = itertools.count(1)

    def auto_id(self) -> str:
        return f"auto{next(self._ids)}"

    def collection(self, path: str) -> FakeQuery:
        return FakeQuery(self, path)

    def document(self, path: str) -> FakeDocumentReference:
        return FakeDocumentReference(*path.split("/"), client=self)

    def snapshot(self, path: str) -> FakeSnapshot:
        return FakeSnapshot(
            id=path.rsplit("/", 1)[-1],
            reference=self.document(path),
            _data=copy.deepcopy(self.documents.get(path)),
        )

    async def get_all(self, references: list[FakeDocumentReference]) -> AsyncIterator[FakeSnapshot]:
        self.calls.append(("get_all", [reference.path for reference in references]))
        # The real client yields in arbitrary order.
        for reference in reversed(references):
            yield self.snapshot(reference.path)

    def notify(self) -> None:
        """Deliver current results to every registered listener."""
        for query, callback in list(self.listeners):
            callback(query.results(), [], datetime.now(UTC))

    def round_trips(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)

    def close(self) -> None:
        self.closed = True


def _field(snapshot: FakeSnapshot, field_path: str) -> Any:
    if field_path == "__name__":
        return snapshot.id
    value: Any = snapshot.to_dict()
    for segment in field_path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(segment)
    return value


def _matches(snapshot: FakeSnapshot, field_path: str, op: str, value: Any) -> bool:
    actual = _field(snapshot, field_path)
    if isinstance(value, BaseDocumentReference) and field_path == "__name__":
        value = value.id
    if op == "==":
        return actual == value
    if op == "!=":
        return actual != value
    if op == "in":
        return actual in [v.id if isinstance(v, BaseDocumentReference) else v for v in value]
    if op == "array_contains":
        return isinstance(actual, list) and value in actual
    if actual is None:
        return False
    return {
        "<": actual < value,
        "<=": actual <= value,
        ">": actual > value,
        ">=": actual >= value,
    }[op]


def _write(document: dict[str, Any], dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    target = document
    for segment in parents:
        target = target.setdefault(segment, {})
    if value is DELETE_FIELD:
        target.pop(leaf, None)
    elif value is SERVER_TIMESTAMP:
        target[leaf] = datetime(2024, 1, 1, tzinfo=UTC)
    elif isinstance(value, Increment):
        target[leaf] = target.get(leaf, 0) + value.value
    else:
        target[leaf] = value


@pytest.fixture
def store() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def db(store: FakeFirestore) -> FirestoreResource:
    return FirestoreResource(_client=store, _listen_factory=lambda: store)


@pytest.fixture
def users(db: FirestoreResource) -> Collection[Any]:
    return Collection(db, "users")


@pytest.fixture(autouse=True)
def _reset_metrics_recorder() -> Any:
    yield
    set_metrics_recorder(None)
