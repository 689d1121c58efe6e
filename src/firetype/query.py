"""Query directives and their compilation into a native Firestore query."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, Literal

from google.cloud.firestore_v1.base_query import BaseQuery, FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath
from pydantic import BaseModel

from firetype.errors import InvalidQueryError
from firetype.marshal import encode
from firetype.ref import Doc
from firetype.values import UNSET, DocId, doc_id, is_doc_id, is_unset

CursorPosition = Literal["start_at", "start_after", "end_at", "end_before"]
Direction = Literal["asc", "desc"]
Field = str | Sequence[str] | DocId

_DIRECTIONS: Final = {"asc": BaseQuery.ASCENDING, "desc": BaseQuery.DESCENDING}

_OPERATORS: Final = {
    "<": "<",
    "<=": "<=",
    "==": "==",
    "!=": "!=",
    ">=": ">=",
    ">": ">",
    "in": "in",
    "not-in": "not-in",
    "not_in": "not-in",
    "array-contains": "array_contains",
    "array_contains": "array_contains",
    "array-contains-any": "array_contains_any",
    "array_contains_any": "array_contains_any",
}

_LIST_OPERATORS: Final = frozenset({"in", "not-in", "array_contains_any"})


@dataclass(frozen=True, slots=True)
class Cursor:
    """Pagination boundary attached to an ``order`` directive."""

    position: CursorPosition
    value: Any


@dataclass(frozen=True, slots=True)
class Where:
    field: Field
    op: str
    value: Any


@dataclass(frozen=True, slots=True)
class Order:
    field: Field
    direction: Direction = "asc"
    cursors: tuple[Cursor, ...] = ()


@dataclass(frozen=True, slots=True)
class Limit:
    count: int


Directive = Where | Order | Limit


def where(field: Field, op: str, value: Any) -> Where:
    if op not in _OPERATORS:
        raise InvalidQueryError(f"Unsupported where operator: {op!r}")
    return Where(field, op, value)


def order(field: Field, *args: Any) -> Order:
    """Build an order directive.

    The direction is optional and every further argument must be a cursor,
    so both ``order("age", "desc", start_at(18))`` and
    ``order("age", start_at(18))`` are accepted.
    """
    direction: Direction = "asc"
    cursors = args
    if args and isinstance(args[0], str):
        direction = args[0]  # type: ignore[assignment]
        cursors = args[1:]

    if direction not in _DIRECTIONS:
        raise InvalidQueryError(f"Unsupported order direction: {direction!r}")
    for cursor in cursors:
        if not isinstance(cursor, Cursor):
            raise InvalidQueryError(f"Expected a cursor, got {cursor!r}")
    return Order(field, direction, tuple(cursors))


def limit(count: int) -> Limit:
    if count < 0:
        raise InvalidQueryError("limit must be a non-negative integer")
    return Limit(count)


def start_at(value: Any) -> Cursor:
    return Cursor("start_at", value)


def start_after(value: Any) -> Cursor:
    return Cursor("start_after", value)


def end_at(value: Any) -> Cursor:
    return Cursor("end_at", value)


def end_before(value: Any) -> Cursor:
    return Cursor("end_before", value)


class QueryHelpers:
    """Directive constructors handed to query builder functions."""

    where = staticmethod(where)
    order = staticmethod(order)
    limit = staticmethod(limit)
    start_at = staticmethod(start_at)
    start_after = staticmethod(start_after)
    end_at = staticmethod(end_at)
    end_before = staticmethod(end_before)
    doc_id = doc_id


QUERY_HELPERS: Final = QueryHelpers()


@dataclass(frozen=True, slots=True)
class _Step:
    method: Literal["where", "order_by", "limit"]
    field_path: str = ""
    op: str = ""
    value: Any = None
    by_id: bool = False


@dataclass(slots=True)
class CompiledQuery:
    """Directives resolved into replayable query steps.

    ``cursors`` holds ``(position, values)`` groups in first-seen order; it is
    empty when any declared cursor resolved to ``UNSET``.
    """

    steps: list[_Step] = field(default_factory=list)
    cursors: list[tuple[CursorPosition, list[Any]]] = field(default_factory=list)

    def apply(self, collection_ref: Any, *, client: Any) -> Any:
        """Replay the steps on a native collection reference."""
        query = collection_ref
        for step in self.steps:
            if step.method == "order_by":
                query = query.order_by(step.field_path, direction=step.op)
            elif step.method == "where":
                value = encode(step.value, client=client)
                if step.by_id:
                    value = _document_id_value(collection_ref, step.op, value)
                query = query.where(filter=FieldFilter(step.field_path, step.op, value))
            else:
                query = query.limit(step.value)

        for position, values in self.cursors:
            query = getattr(query, position)(encode(values, client=client))
        return query


def compile_query(directives: Sequence[Directive | None]) -> CompiledQuery:
    """Resolve an ordered directive list into a ``CompiledQuery``.

    Falsy entries are skipped so builders can include optional directives
    inline, e.g. ``[q.where(...), age and q.where("age", "==", age)]``.
    """
    compiled = CompiledQuery()
    cursors: list[tuple[CursorPosition, Any]] = []

    for directive in directives:
        if not directive:
            continue
        if isinstance(directive, Order):
            compiled.steps.append(
                _Step(
                    "order_by",
                    field_path=_field_path(directive.field),
                    op=_DIRECTIONS[directive.direction],
                )
            )
            for cursor in directive.cursors:
                cursors.append((cursor.position, _cursor_value(directive.field, cursor.value)))
        elif isinstance(directive, Where):
            compiled.steps.append(
                _Step(
                    "where",
                    field_path=_field_path(directive.field),
                    op=_OPERATORS[directive.op],
                    value=directive.value,
                    by_id=is_doc_id(directive.field),
                )
            )
        elif isinstance(directive, Limit):
            compiled.steps.append(_Step("limit", value=directive.count))
        else:
            raise InvalidQueryError(f"Unknown query directive: {directive!r}")

    # Cursors apply all-or-nothing: one unresolved value disables every cursor.
    if cursors and all(not is_unset(value) for _, value in cursors):
        for position, value in cursors:
            for group_position, values in compiled.cursors:
                if group_position == position:
                    values.append(value)
                    break
            else:
                compiled.cursors.append((position, [value]))

    return compiled


def _field_path(field: Field) -> str:
    if is_doc_id(field):
        return FieldPath.document_id()
    if isinstance(field, str):
        return field
    return ".".join(field)  # type: ignore[arg-type]


def _cursor_value(field: Field, value: Any) -> Any:
    if not isinstance(value, Doc):
        return value
    if is_doc_id(field):
        return value.ref.id
    return _project(value.data, _field_path(field).split("."))


def _project(data: Any, segments: list[str]) -> Any:
    current = data
    for segment in segments:
        if isinstance(current, Mapping):
            current = current.get(segment, UNSET)
        elif isinstance(current, BaseModel):
            current = getattr(current, segment, UNSET)
        else:
            return UNSET
        if is_unset(current):
            return UNSET
    return current


def _document_id_value(collection_ref: Any, op: str, value: Any) -> Any:
    if op in _LIST_OPERATORS and isinstance(value, list):
        return [_document_id_value(collection_ref, "==", item) for item in value]
    if isinstance(value, str):
        return collection_ref.document(value)
    return value

