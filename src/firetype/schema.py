"""Compile a declarative collection map into live collection handles."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from firetype.collection import Collection
from firetype.errors import MalformedPathError

if TYPE_CHECKING:
    from firetype.db.firestore import FirestoreResource


@dataclass(frozen=True, slots=True)
class CollectionDeclaration:
    """A top-level collection in a schema, optionally typed by a pydantic model."""

    model: type[Any] | None = None


class SchemaHelpers:
    """Helpers handed to the schema function."""

    @staticmethod
    def collection(model: type[Any] | None = None) -> CollectionDeclaration:
        return CollectionDeclaration(model)


SCHEMA_HELPERS: Final = SchemaHelpers()

# Generated ids do not depend on the collection.
_ID_COLLECTION: Final = "_firetype"


class Database(Mapping[str, Collection[Any]]):
    """Collections of a schema, reachable by key or attribute."""

    __slots__ = ("_db", "_collections")

    def __init__(self, db: FirestoreResource, collections: dict[str, Collection[Any]]) -> None:
        self._db = db
        self._collections = collections

    @property
    def db(self) -> FirestoreResource:
        return self._db

    def new_id(self) -> str:
        """Generate a fresh document id usable in any collection."""
        return self._db.new_id(_ID_COLLECTION)

    def __getitem__(self, name: str) -> Collection[Any]:
        return self._collections[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._collections)

    def __len__(self) -> int:
        return len(self._collections)

    def __getattr__(self, name: str) -> Collection[Any]:
        if name == "_collections":
            raise AttributeError(name)
        try:
            return self._collections[name]
        except KeyError:
            raise AttributeError(f"Schema has no collection {name!r}") from None

    def __repr__(self) -> str:
        return f"Database({sorted(self._collections)!r})"


def schema(
    db: FirestoreResource,
    get_schema: Callable[[SchemaHelpers], Mapping[str, CollectionDeclaration]],
) -> Database:
    """Build collection handles for every collection ``get_schema`` declares::

        database = schema(resource, lambda s: {
            "users": s.collection(User),
            "posts": s.collection(),
        })
        await database.users.add({"name": "Ann"})

    Raises:
        MalformedPathError: If a collection name is not a single path segment.
        ValueError: If a collection name is taken by a ``Database`` attribute
            such as ``items`` or ``new_id``, which would hide it.
    """
    collections: dict[str, Collection[Any]] = {}
    for name, declaration in get_schema(SCHEMA_HELPERS).items():
        if not name or "/" in name:
            raise MalformedPathError(name)
        if hasattr(Database, name):
            raise ValueError(f"Collection name {name!r} clashes with a Database attribute")
        collections[name] = Collection(db, name, model=declaration.model)
    return Database(db, collections)
