"""Tagged marker values: field-value sentinels, document-id placeholder and UNSET.

Every marker carries an explicit ``kind`` tag and is recognised by that tag,
so markers stay recognisable after being copied or pickled.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, Literal


class _Unset:
    """Marker for "no value", the counterpart of a missing field."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()


class Marker:
    """Base of the tagged markers; subclasses set a literal ``kind``."""

    __slots__ = ()

    kind: str


def is_unset(value: Any) -> bool:
    return isinstance(value, _Unset)


@dataclass(frozen=True, slots=True)
class DocId(Marker):
    """Placeholder usable wherever a field name is expected in a query.

    It stands for the document's own identifier::

        words.query(lambda q: [
            q.where(q.doc_id, ">=", "micro"),
            q.where(q.doc_id, "<", "micrp"),
            q.limit(2),
        ])
    """

    kind: Literal["doc_id"] = "doc_id"


doc_id: Final = DocId()


def is_doc_id(value: Any) -> bool:
    return isinstance(value, Marker) and value.kind == "doc_id"


@dataclass(frozen=True, slots=True)
class Remove(Marker):
    """Deletes the field on write."""

    kind: Literal["remove"] = "remove"


@dataclass(frozen=True, slots=True)
class Increment(Marker):
    """Increments a numeric field server-side."""

    amount: int | float
    kind: Literal["increment"] = "increment"


@dataclass(frozen=True, slots=True)
class ArrayUnion(Marker):
    """Adds the values not already present in an array field."""

    values: tuple[Any, ...]
    kind: Literal["array_union"] = "array_union"


@dataclass(frozen=True, slots=True)
class ArrayRemove(Marker):
    """Removes every instance of the values from an array field."""

    values: tuple[Any, ...]
    kind: Literal["array_remove"] = "array_remove"


@dataclass(frozen=True, slots=True)
class ServerDate(Marker):
    """Replaced with the server commit time on write."""

    kind: Literal["server_date"] = "server_date"


FieldValue = Remove | Increment | ArrayUnion | ArrayRemove | ServerDate

FIELD_VALUE_KINDS: Final = frozenset(
    {"remove", "increment", "array_union", "array_remove", "server_date"}
)


def is_field_value(value: Any) -> bool:
    return isinstance(value, Marker) and value.kind in FIELD_VALUE_KINDS


def _as_tuple(values: Any) -> tuple[Any, ...]:
    if isinstance(values, (list, tuple)):
        return tuple(values)
    return (values,)


def server_date() -> ServerDate:
    return ServerDate()


def remove() -> Remove:
    return Remove()


def increment(amount: int | float) -> Increment:
    return Increment(amount)


def array_union(values: Any) -> ArrayUnion:
    """Build an array-union sentinel; a single value is wrapped in a tuple."""
    return ArrayUnion(_as_tuple(values))


def array_remove(values: Any) -> ArrayRemove:
    """Build an array-remove sentinel; a single value is wrapped in a tuple."""
    return ArrayRemove(_as_tuple(values))


@dataclass(frozen=True, slots=True)
class FieldEdit:
    """Single field update; ``key`` is a dotted path or a sequence of segments."""

    key: str | Sequence[str]
    value: Any = field(default=None)

    @property
    def path(self) -> str:
        if isinstance(self.key, str):
            return self.key
        return ".".join(self.key)


def field_edit(key: str | Iterable[str], value: Any) -> FieldEdit:
    if not isinstance(key, str):
        key = tuple(key)
    return FieldEdit(key, value)


class WriteHelpers:
    """Sentinel constructors handed to write callbacks."""

    server_date = staticmethod(server_date)
    remove = staticmethod(remove)
    increment = staticmethod(increment)
    array_union = staticmethod(array_union)
    array_remove = staticmethod(array_remove)


class UpdateHelpers(WriteHelpers):
    """Write helpers plus ``field`` for building ordered field edits."""

    field = staticmethod(field_edit)


WRITE_HELPERS: Final = WriteHelpers()
UPDATE_HELPERS: Final = UpdateHelpers()
