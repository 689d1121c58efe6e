"""Document references, materialized documents and path utilities."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

from firetype.errors import MalformedPathError, UnboundReferenceError

if TYPE_CHECKING:
    from firetype.collection import Collection, UpdateArg, WriteArg
    from firetype.result import SubscriptionResult

ModelT = TypeVar("ModelT")

CollectionBinder = Callable[[str], "Collection[Any]"]

_PATH_PATTERN = re.compile(r"^([^/]+)/([^/]+)$")


@dataclass(frozen=True, slots=True)
class Ref(Generic[ModelT]):
    """Address of a document in a top-level collection.

    Two refs are equal when they point at the same path; the optional
    collection handle only enables the shortcut CRUD methods.
    """

    collection_path: str
    id: str
    _collection: Collection[ModelT] | None = field(default=None, compare=False, repr=False)

    @property
    def path(self) -> str:
        return get_ref_path(self)

    @property
    def collection(self) -> Collection[ModelT]:
        if self._collection is None:
            raise UnboundReferenceError(self.path)
        return self._collection

    def get(self) -> SubscriptionResult[Doc[ModelT] | None]:
        return self.collection.get(self.id)

    async def set(self, data: WriteArg) -> None:
        await self.collection.set(self.id, data)

    async def upset(self, data: WriteArg) -> None:
        await self.collection.upset(self.id, data)

    async def update(self, data: UpdateArg) -> None:
        await self.collection.update(self.id, data)

    async def remove(self) -> None:
        await self.collection.remove(self.id)


@dataclass(frozen=True, slots=True)
class Doc(Generic[ModelT]):
    """A reference plus the decoded data read from the store."""

    ref: Ref[ModelT]
    data: ModelT
    environment: Literal["server"] = "server"

    @property
    def id(self) -> str:
        return self.ref.id

    def get(self) -> SubscriptionResult[Doc[ModelT] | None]:
        return self.ref.get()

    async def update(self, data: UpdateArg) -> None:
        await self.ref.update(data)

    async def upset(self, data: WriteArg) -> None:
        await self.ref.upset(data)

    async def remove(self) -> None:
        await self.ref.remove()


def get_ref_path(ref: Ref[Any]) -> str:
    """Return the store path of a reference, e.g. ``users/42``."""
    return f"{ref.collection_path}/{ref.id}"


def path_to_ref(path: str, *, bind: CollectionBinder | None = None) -> Ref[Any]:
    """Parse ``<collection>/<id>`` into a reference.

    Only top-level collections are addressable, so any other number of
    separators is rejected.

    Raises:
        MalformedPathError: If the path does not have exactly one separator.
    """
    match = _PATH_PATTERN.match(path)
    if match is None:
        raise MalformedPathError(path)

    collection_path, id = match.groups()
    collection = bind(collection_path) if bind is not None else None
    return Ref(collection_path, id, collection)
