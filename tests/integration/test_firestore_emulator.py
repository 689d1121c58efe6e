"""End-to-end tests for collections against the Firestore emulator."""

from __future__ import annotations

import asyncio

import pytest

from firetype import Collection, MissingDocumentError, schema

pytestmark = pytest.mark.integration


async def test_crud_roundtrip(firestore_resource, collection_name) -> None:
    users = Collection(firestore_resource, collection_name)

    ref = await users.add({"name": "Ann"})
    assert (await users.get(ref.id)).data == {"name": "Ann"}

    await users.update(ref.id, lambda h: [h.field("name", "Bo"), h.field("visits", h.increment(1))])
    assert (await users.get(ref.id)).data == {"name": "Bo", "visits": 1}

    await users.upset(ref.id, lambda h: {"seen": h.server_date()})
    doc = await users.get(ref.id)
    assert doc.data["seen"].tzinfo is not None

    await users.remove(ref.id)
    assert await users.get(ref.id) is None

    assert (await firestore_resource.health_check()).healthy is True


async def test_get_many_and_queries(firestore_resource, collection_name) -> None:
    database = schema(firestore_resource, lambda s: {collection_name: s.collection()})
    users = database[collection_name]
    for id, age in (("ann", 30), ("bo", 17), ("cy", 45)):
        await users.set(id, {"name": id.title(), "age": age})

    docs = await users.get_many(["cy", "ann"])
    assert [doc.id for doc in docs] == ["cy", "ann"]
    with pytest.raises(MissingDocumentError):
        await users.get_many(["ann", "nobody"])

    adults = await users.query(lambda q: [q.where("age", ">=", 18), q.order("age", "desc")])
    assert [doc.id for doc in adults] == ["cy", "ann"]

    page = await users.query(lambda q: [q.order("age", q.start_after(adults[-1])), q.limit(1)])
    assert [doc.id for doc in page] == ["cy"]

    by_id = await users.query(lambda q: [q.where(q.doc_id, ">=", "b"), q.where(q.doc_id, "<", "c")])
    assert [doc.id for doc in by_id] == ["bo"]


async def test_refs_round_trip(firestore_resource, collection_name) -> None:
    users = Collection(firestore_resource, collection_name)
    author = await users.add({"name": "Ann"})
    await users.set("post", {"author": author})

    post = await users.get("post")
    assert post.data["author"] == author
    assert (await post.data["author"].get()).data == {"name": "Ann"}


async def test_live_query(firestore_resource, collection_name) -> None:
    users = Collection(firestore_resource, collection_name)
    updates = users.query(lambda q: [q.where("age", ">=", 18)]).updates()
    try:
        first = await asyncio.wait_for(updates.__anext__(), timeout=10)
        assert first == []

        await users.set("ann", {"age": 30})
        while True:
            docs = await asyncio.wait_for(updates.__anext__(), timeout=10)
            if docs:
                break
        assert [doc.id for doc in docs] == ["ann"]
    finally:
        await updates.aclose()
