"""Recursive conversion between domain values and Firestore-native values."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from google.api_core.datetime_helpers import DatetimeWithNanoseconds
from google.cloud.firestore_v1.base_document import BaseDocumentReference
from google.cloud.firestore_v1.transforms import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    Increment,
)
from pydantic import BaseModel

from firetype.ref import CollectionBinder, Ref, get_ref_path, path_to_ref
from firetype.values import Marker, is_unset


def encode(value: Any, *, client: Any) -> Any:
    """Convert domain data to Firestore format, deeply.

    Refs become document references built from ``client``, field-value
    sentinels become the native transforms, datetimes become timestamps and
    ``UNSET`` becomes ``None``, since Firestore has no "undefined".
    """
    if isinstance(value, Ref):
        return client.document(get_ref_path(value))
    if isinstance(value, Marker):
        return _encode_marker(value, client=client)
    if isinstance(value, datetime):
        return _to_timestamp(value)
    if isinstance(value, BaseModel):
        return encode(value.model_dump(), client=client)
    if isinstance(value, Mapping):
        return {key: encode(item, client=client) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode(item, client=client) for item in value]
    if is_unset(value):
        return None
    return value


def decode(value: Any, *, bind: CollectionBinder | None = None) -> Any:
    """Convert Firestore data to domain format, deeply.

    Document references become ``Ref`` objects, bound through ``bind`` when
    given, and timestamps become plain ``datetime`` values.
    """
    if isinstance(value, BaseDocumentReference):
        return path_to_ref(value.path, bind=bind)
    if isinstance(value, datetime):
        return _to_datetime(value)
    if isinstance(value, Mapping):
        return {key: decode(item, bind=bind) for key, item in value.items()}
    if isinstance(value, list):
        return [decode(item, bind=bind) for item in value]
    return value


def nullify(value: Any) -> Any:
    """Deep copy ``value`` replacing every ``UNSET`` with ``None``.

    Datetimes are copied as leaves. This mirrors what the store does with
    missing values on write.
    """
    if is_unset(value):
        return None
    if isinstance(value, Mapping):
        return {key: nullify(item) for key, item in value.items()}
    if isinstance(value, list):
        return [nullify(item) for item in value]
    if isinstance(value, tuple):
        return tuple(nullify(item) for item in value)
    return value


def _encode_marker(marker: Marker, *, client: Any) -> Any:
    if marker.kind == "remove":
        return DELETE_FIELD
    if marker.kind == "server_date":
        return SERVER_TIMESTAMP
    if marker.kind == "increment":
        return Increment(marker.amount)  # type: ignore[attr-defined]
    if marker.kind == "array_union":
        return ArrayUnion(encode(marker.values, client=client))  # type: ignore[attr-defined]
    if marker.kind == "array_remove":
        return ArrayRemove(encode(marker.values, client=client))  # type: ignore[attr-defined]
    raise TypeError(f"{marker!r} can't be written as a field value")


def _to_timestamp(value: datetime) -> DatetimeWithNanoseconds:
    # Naive values stay naive; the client serialises them as UTC.
    return DatetimeWithNanoseconds(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
        tzinfo=value.tzinfo,
    )


def _to_datetime(value: datetime) -> datetime:
    return datetime(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
        tzinfo=value.tzinfo,
    )
