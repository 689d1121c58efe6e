"""Tests for schema compilation."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from firetype.collection import Collection
from firetype.errors import MalformedPathError
from firetype.schema import CollectionDeclaration, Database, schema


class User(BaseModel):
    name: str


class TestSchema:
    def test_builds_a_handle_per_declaration(self, db) -> None:
        database = schema(db, lambda s: {"users": s.collection(User), "posts": s.collection()})

        assert isinstance(database, Database)
        assert database.db is db
        assert sorted(database) == ["posts", "users"]
        assert len(database) == 2
        assert isinstance(database.users, Collection)
        assert database["users"] is database.users
        assert database.users.path == "users"
        assert database.users.model is User
        assert database.posts.model is None

    def test_helpers_build_declarations(self, db) -> None:
        seen: list[CollectionDeclaration] = []

        def get_schema(s):
            declaration = s.collection(User)
            seen.append(declaration)
            return {"users": declaration}

        schema(db, get_schema)
        assert seen == [CollectionDeclaration(User)]

    def test_new_id_is_generated_locally(self, db, store) -> None:
        database = schema(db, lambda s: {"users": s.collection()})
        assert database.new_id() != database.new_id()
        assert store.calls == []

    def test_unknown_collection(self, db) -> None:
        database = schema(db, lambda s: {"users": s.collection()})
        with pytest.raises(AttributeError, match="comments"):
            database.comments
        with pytest.raises(KeyError):
            database["comments"]

    @pytest.mark.parametrize("name", ["", "users/1/posts"])
    def test_rejects_names_that_are_not_single_segments(self, db, name: str) -> None:
        with pytest.raises(MalformedPathError):
            schema(db, lambda s: {name: s.collection()})

    @pytest.mark.parametrize("name", ["items", "keys", "values", "get", "db", "new_id", "_db"])
    def test_rejects_names_hidden_by_database_attributes(self, db, name: str) -> None:
        with pytest.raises(ValueError, match=name):
            schema(db, lambda s: {name: s.collection(), "users": s.collection()})

    def test_mapping_methods_stay_available(self, db) -> None:
        database = schema(db, lambda s: {"users": s.collection(), "orders": s.collection()})
        assert sorted(database.keys()) == ["orders", "users"]
        assert database.get("orders") is database.orders
        assert dict(database.items())["users"] is database.users

    async def test_collections_share_the_connection(self, db, store) -> None:
        database = schema(db, lambda s: {"users": s.collection(), "posts": s.collection()})

        author = await database.users.add({"name": "Ann"})
        await database.posts.set("p1", {"author": author})

        post = await database.posts.get("p1")
        assert post.data["author"] == author
        assert await post.data["author"].get() is not None
        assert store.documents["posts/p1"]["author"].path == author.path
