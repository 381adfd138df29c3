"""Tests for the in-memory persistence gateway and the filter language."""

import pytest

from blogify.services.gateway import (
    DuplicateKeyError,
    InMemoryGateway,
    apply_update,
    get_gateway,
    matches,
    sort_documents,
)


def test_matches_equality_and_array_contains():
    doc = {"status": "published", "tags": ["python", "web"]}
    assert matches(doc, {"status": "published"})
    assert matches(doc, {"tags": "web"})
    assert not matches(doc, {"tags": "rust"})
    assert matches(doc, None)


def test_matches_operators():
    doc = {"id": "a", "title": "React Hooks", "tags": ["react"], "views": 3}
    assert matches(doc, {"id": {"$in": ["a", "b"]}})
    assert not matches(doc, {"id": {"$ne": "a"}})
    assert matches(doc, {"title": {"$regex": "hooks", "$options": "i"}})
    assert not matches(doc, {"title": {"$regex": "hooks"}})
    assert matches(doc, {"tags": {"$in": ["vue", "react"]}})
    assert matches(doc, {"$or": [{"title": "nope"}, {"tags": "react"}]})
    assert not matches(doc, {"$and": [{"views": 3}, {"id": "b"}]})


def test_matches_rejects_unknown_operator():
    with pytest.raises(ValueError):
        matches({"a": 1}, {"a": {"$gt": 0}})


def test_apply_update_set_and_inc():
    doc = {"title": "old", "views": 1}
    apply_update(doc, {"$set": {"title": "new"}, "$inc": {"views": 2, "likes": 1}})
    assert doc == {"title": "new", "views": 3, "likes": 1}


def test_sort_documents_multi_key_with_missing_values():
    docs = [
        {"id": "a", "views": 5, "title": "beta"},
        {"id": "b", "views": 9, "title": "Alpha"},
        {"id": "c", "title": "gamma"},
        {"id": "d", "views": 5, "title": "alpha"},
    ]
    assert [d["id"] for d in sort_documents(docs, [("title", 1)])] == ["b", "d", "a", "c"]
    by_views = sort_documents(docs, [("views", -1), ("title", 1)])
    # Missing values count as smallest, so they trail a descending sort
    assert [d["id"] for d in by_views] == ["b", "d", "a", "c"]
    by_views_asc = sort_documents(docs, [("views", 1), ("title", 1)])
    assert [d["id"] for d in by_views_asc] == ["c", "d", "a", "b"]


async def test_create_and_find_copies_documents():
    gw = InMemoryGateway()
    doc = {"id": "p1", "tags": ["a"]}
    created = await gw.create("posts", doc)
    doc["tags"].append("mutated")
    created["tags"].append("mutated")

    stored = await gw.find_one("posts", {"id": "p1"})
    assert stored["tags"] == ["a"]


async def test_create_assigns_id():
    gw = InMemoryGateway()
    created = await gw.create("posts", {"title": "no id"})
    assert created["id"]
    assert await gw.count_documents("posts") == 1


async def test_unique_fields_enforced():
    gw = InMemoryGateway()
    await gw.create("users", {"id": "u1", "email": "a@example.com"})
    with pytest.raises(DuplicateKeyError) as exc_info:
        await gw.create("users", {"id": "u2", "email": "a@example.com"})
    assert exc_info.value.field == "email"

    with pytest.raises(DuplicateKeyError):
        await gw.create("users", {"id": "u1", "email": "b@example.com"})


async def test_find_sort_skip_limit():
    gw = InMemoryGateway()
    for i in range(5):
        await gw.create("posts", {"id": f"p{i}", "views": i, "status": "published"})
    await gw.create("posts", {"id": "d", "views": 99, "status": "draft"})

    page = await gw.find(
        "posts", {"status": "published"}, sort=[("views", -1)], skip=1, limit=2
    )
    assert [d["id"] for d in page] == ["p3", "p2"]


async def test_update_one_returns_updated_document():
    gw = InMemoryGateway()
    await gw.create("posts", {"id": "p1", "views": 0})
    updated = await gw.update_one("posts", {"id": "p1"}, {"$inc": {"views": 1}})
    assert updated["views"] == 1
    assert await gw.update_one("posts", {"id": "missing"}, {"$set": {"a": 1}}) is None


async def test_delete_one_and_many():
    gw = InMemoryGateway()
    for i in range(3):
        await gw.create("posts", {"id": f"p{i}", "authorId": "u1" if i else "u2"})

    assert await gw.delete_one("posts", {"id": "p0"}) == 1
    assert await gw.delete_one("posts", {"id": "p0"}) == 0
    assert await gw.delete_many("posts", {"authorId": "u1"}) == 2
    assert await gw.count_documents("posts") == 0


def test_get_gateway_is_singleton(mock_settings):
    assert get_gateway() is get_gateway()
    assert isinstance(get_gateway(), InMemoryGateway)


def test_get_gateway_unknown_backend(mock_settings):
    mock_settings.storage_backend = "mongo"
    with pytest.raises(ValueError, match="Unknown storage backend"):
        get_gateway()
