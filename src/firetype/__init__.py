"""Typed, asyncio-first collections, references and queries over Firestore."""

from firetype.collection import Collection
from firetype.db.firestore import FirestoreResource, create_firestore_resource
from firetype.errors import (
    FiretypeError,
    InvalidQueryError,
    ListenerStoppedError,
    MalformedPathError,
    MissingDependencyError,
    MissingDocumentError,
    SubscriptionUnsupportedError,
    UnboundReferenceError,
)
from firetype.marshal import decode, encode, nullify
from firetype.query import (
    CompiledQuery,
    Cursor,
    Limit,
    Order,
    QueryHelpers,
    Where,
    compile_query,
    end_at,
    end_before,
    limit,
    order,
    start_after,
    start_at,
    where,
)
from firetype.ref import Doc, Ref, get_ref_path, path_to_ref
from firetype.result import Subscription, SubscriptionResult
from firetype.schema import CollectionDeclaration, Database, SchemaHelpers, schema
from firetype.values import (
    UNSET,
    ArrayRemove,
    ArrayUnion,
    DocId,
    FieldEdit,
    Increment,
    Remove,
    ServerDate,
    UpdateHelpers,
    WriteHelpers,
    array_remove,
    array_union,
    doc_id,
    field_edit,
    increment,
    remove,
    server_date,
)

__all__ = [
    "UNSET",
    "ArrayRemove",
    "ArrayUnion",
    "Collection",
    "CollectionDeclaration",
    "CompiledQuery",
    "Cursor",
    "Database",
    "Doc",
    "DocId",
    "FieldEdit",
    "FirestoreResource",
    "FiretypeError",
    "Increment",
    "InvalidQueryError",
    "Limit",
    "ListenerStoppedError",
    "MalformedPathError",
    "MissingDependencyError",
    "MissingDocumentError",
    "Order",
    "QueryHelpers",
    "Ref",
    "Remove",
    "SchemaHelpers",
    "ServerDate",
    "Subscription",
    "SubscriptionResult",
    "SubscriptionUnsupportedError",
    "UnboundReferenceError",
    "UpdateHelpers",
    "Where",
    "WriteHelpers",
    "array_remove",
    "array_union",
    "compile_query",
    "create_firestore_resource",
    "decode",
    "doc_id",
    "encode",
    "end_at",
    "end_before",
    "field_edit",
    "get_ref_path",
    "increment",
    "limit",
    "nullify",
    "order",
    "path_to_ref",
    "remove",
    "schema",
    "server_date",
    "start_after",
    "start_at",
    "where",
]
