"""Typed CRUD and query entry point for one top-level collection."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

from pydantic import BaseModel

from firetype.errors import MissingDocumentError
from firetype.marshal import decode, encode
from firetype.query import QUERY_HELPERS, Directive, QueryHelpers, compile_query
from firetype.ref import Doc, Ref
from firetype.result import ErrorCallback, ResultCallback, Subscription, SubscriptionResult
from firetype.values import (
    UPDATE_HELPERS,
    WRITE_HELPERS,
    FieldEdit,
    UpdateHelpers,
    WriteHelpers,
)

if TYPE_CHECKING:
    from firetype.db.firestore import FirestoreResource

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

WriteData = Mapping[str, Any] | BaseModel
WriteArg = WriteData | Callable[[WriteHelpers], WriteData]
UpdateData = Mapping[str, Any] | BaseModel | Sequence[FieldEdit | Mapping[str, Any] | None]
UpdateArg = UpdateData | Callable[[UpdateHelpers], UpdateData]
OnMissing = Literal["ignore"] | Callable[[str], Any] | None
QueryGetter = Callable[[QueryHelpers], Sequence[Directive | None]]


class Collection(Generic[ModelT]):
    """Handle for a single named collection.

    Holds nothing but the connection, the collection path and the optional
    pydantic model used to validate decoded data::

        users = Collection(db, "users", model=User)
        ref = await users.add({"name": "Ann"})
        doc = await users.get(ref.id)
    """

    def __init__(
        self,
        db: FirestoreResource,
        path: str,
        *,
        model: type[ModelT] | None = None,
    ) -> None:
        self._db = db
        self.path = path
        self.model = model

    def __repr__(self) -> str:
        return f"Collection({self.path!r})"

    @property
    def db(self) -> FirestoreResource:
        return self._db

    def ref(self, id: str) -> Ref[ModelT]:
        return Ref(self.path, id, self)

    def doc(self, id: str, data: ModelT) -> Doc[ModelT]:
        return Doc(self.ref(id), data)

    def new_id(self) -> str:
        """Generate a fresh document id without contacting the store."""
        return self._db.new_id(self.path)

    async def add(self, data: WriteArg) -> Ref[ModelT]:
        """Create a document with a store-generated id."""
        id = await self._db.add_document(self.path, self._encode(_resolve_write(data)))
        logger.debug("Document added", extra={"collection": self.path, "document_id": id})
        return self.ref(id)

    async def set(self, id: str, data: WriteArg) -> None:
        """Overwrite the document at ``id``."""
        await self._db.set_document(self._doc_path(id), self._encode(_resolve_write(data)))

    async def upset(self, id: str, data: WriteArg) -> None:
        """Merge ``data`` into the document, creating it when missing."""
        await self._db.set_document(
            self._doc_path(id),
            self._encode(_resolve_write(data)),
            merge=True,
        )

    async def update(self, id: str, data: UpdateArg) -> None:
        """Apply a field-path update to an existing document.

        ``data`` is a partial mapping, a list of field edits, or a callable
        receiving the update helpers and returning either::

            await users.update(id, lambda h: [
                h.field("name", "Bo"),
                h.field(["stats", "visits"], h.increment(1)),
            ])
        """
        await self._db.update_document(self._doc_path(id), self._encode(_resolve_update(data)))

    async def remove(self, id: str) -> None:
        """Delete the document; deleting a missing document is not an error."""
        await self._db.delete_document(self._doc_path(id))

    def all(self) -> SubscriptionResult[list[Doc[ModelT]]]:
        async def fetch() -> list[Doc[ModelT]]:
            return self._wrap_all(await self._db.list_documents(self.path))

        def subscribe(
            on_result: ResultCallback[list[Doc[ModelT]]],
            on_error: ErrorCallback | None,
        ) -> Subscription:
            return self._db.listen(
                self.path,
                lambda snapshots: on_result(self._wrap_all(snapshots)),
                on_error,
            )

        return SubscriptionResult(fetch, subscribe)

    def get(self, id: str) -> SubscriptionResult[Doc[ModelT] | None]:
        """Read one document; resolves to ``None`` when it does not exist.

        The result is fetch-only.
        """

        async def fetch() -> Doc[ModelT] | None:
            snapshot = await self._db.get_document(self._doc_path(id))
            return None if snapshot is None else self._wrap(snapshot)

        return SubscriptionResult(fetch)

    def get_many(
        self,
        ids: Iterable[str],
        on_missing: OnMissing = None,
    ) -> SubscriptionResult[list[Doc[ModelT]]]:
        """Read several documents in one round trip, in the order of ``ids``.

        ``on_missing`` decides what happens to ids without a document:
        ``"ignore"`` drops them, a callable builds placeholder data from the
        id, and the default raises ``MissingDocumentError`` for the first one.
        """
        if isinstance(on_missing, str) and on_missing != "ignore":
            raise ValueError(f"Unsupported on_missing policy: {on_missing!r}")
        ids = list(ids)

        async def fetch() -> list[Doc[ModelT]]:
            snapshots = await self._db.get_documents([self._doc_path(id) for id in ids])
            docs: list[Doc[ModelT]] = []
            for snapshot in snapshots:
                if snapshot.exists:
                    docs.append(self._wrap(snapshot))
                elif on_missing == "ignore":
                    continue
                elif on_missing is None:
                    raise MissingDocumentError(self.path, snapshot.id)
                else:
                    docs.append(self.doc(snapshot.id, on_missing(snapshot.id)))
            return docs

        return SubscriptionResult(fetch)

    def query(self, get_queries: QueryGetter) -> SubscriptionResult[list[Doc[ModelT]]]:
        """Build, compile and run a query over this collection::

            await users.query(lambda q: [
                q.where("age", ">=", 18),
                q.order("age", "desc", q.start_after(last_page[-1])),
                q.limit(10),
            ])

        Directive errors are raised here, before anything is awaited.
        """
        compiled = compile_query(get_queries(QUERY_HELPERS))

        async def fetch() -> list[Doc[ModelT]]:
            query = compiled.apply(self._db.collection(self.path), client=self._db.client)
            return self._wrap_all(await self._db.run_query(query))

        def subscribe(
            on_result: ResultCallback[list[Doc[ModelT]]],
            on_error: ErrorCallback | None,
        ) -> Subscription:
            return self._db.listen(
                self.path,
                lambda snapshots: on_result(self._wrap_all(snapshots)),
                on_error,
                build=compiled.apply,
            )

        return SubscriptionResult(fetch, subscribe)

    def _doc_path(self, id: str) -> str:
        return f"{self.path}/{id}"

    def _encode(self, data: Any) -> Any:
        return encode(data, client=self._db.client)

    def _bind(self, path: str) -> Collection[Any]:
        return self if path == self.path else Collection(self._db, path)

    def _wrap(self, snapshot: Any) -> Doc[ModelT]:
        data = decode(snapshot.to_dict() or {}, bind=self._bind)
        if self.model is not None and issubclass(self.model, BaseModel):
            data = self.model.model_validate(data)
        return self.doc(snapshot.id, data)

    def _wrap_all(self, snapshots: Iterable[Any]) -> list[Doc[ModelT]]:
        return [self._wrap(snapshot) for snapshot in snapshots]


def _resolve_write(data: WriteArg) -> WriteData:
    if callable(data):
        return data(WRITE_HELPERS)
    return data


def _resolve_update(data: UpdateArg) -> Mapping[str, Any]:
    update = data(UPDATE_HELPERS) if callable(data) else data
    if isinstance(update, BaseModel):
        return update.model_dump(exclude_unset=True)
    if isinstance(update, Mapping):
        return update

    fields: dict[str, Any] = {}
    for edit in update:
        if not edit:
            continue
        if isinstance(edit, FieldEdit):
            fields[edit.path] = edit.value
        elif isinstance(edit, Mapping):
            key = edit["key"]
            fields[key if isinstance(key, str) else ".".join(key)] = edit["value"]
        else:
            raise TypeError(f"Expected a field edit, got {edit!r}")
    return fields
