"""Unit tests for the SQLAlchemy document store."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from trove.domain.exceptions import NotFoundError, StoreUnavailableError
from trove.infrastructure.persistence.document_store import (
    Append,
    DocumentNotFoundError,
    Increment,
    SQLAlchemyDocumentStore,
    apply_update,
    get_path,
)


class TestIncrement:
    """Tests for Increment.apply."""

    def test_adds_to_missing_value(self):
        assert Increment(2).apply(None) == 2

    def test_floor_clamps_result(self):
        assert Increment(-5, floor=0).apply(3) == 0

    def test_float_noise_is_rounded(self):
        assert Increment(0.2).apply(0.1) == 0.3


class TestAppend:
    """Tests for Append.apply."""

    def test_appends_to_missing_list(self):
        assert Append({"id": "p1"}).apply(None) == [{"id": "p1"}]

    def test_keeps_existing_entries(self):
        current = [{"id": "p1"}]
        assert Append({"id": "p2"}).apply(current) == [{"id": "p1"}, {"id": "p2"}]
        assert current == [{"id": "p1"}]


class TestApplyUpdate:
    """Tests for dotted-key partial updates."""

    def test_nested_keys_and_increments(self):
        data = {"usage": {"collections": 1, "totalItems": 4}, "tier": "free"}
        updated = apply_update(
            data, {"usage.collections": Increment(1), "usage.storageUsedMB": 2.5, "tier": "pro"}
        )

        assert updated == {
            "usage": {"collections": 2, "totalItems": 4, "storageUsedMB": 2.5},
            "tier": "pro",
        }
        # Source document is untouched
        assert data["usage"]["collections"] == 1

    def test_creates_intermediate_maps(self):
        updated = apply_update({}, {"a.b.c": 1})
        assert get_path(updated, "a.b.c") == 1
        assert get_path(updated, "a.x", "default") == "default"


class TestSQLAlchemyDocumentStore:
    """Tests for SQLAlchemyDocumentStore against in-memory SQLite."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, store):
        doc_id = await store.put("things", {"name": "Lamp", "id": "ignored"}, "lamp")

        assert doc_id == "lamp"
        assert await store.get("things", "lamp") == {"id": "lamp", "name": "Lamp"}

    @pytest.mark.asyncio
    async def test_put_generates_id(self, store):
        doc_id = await store.put("things", {"name": "Chair"})

        assert doc_id
        assert (await store.get("things", doc_id))["name"] == "Chair"

    @pytest.mark.asyncio
    async def test_put_overwrites(self, store):
        await store.put("things", {"name": "Lamp", "color": "red"}, "lamp")
        await store.put("things", {"name": "Desk Lamp"}, "lamp")

        assert await store.get("things", "lamp") == {"id": "lamp", "name": "Desk Lamp"}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("things", "nope") is None

    @pytest.mark.asyncio
    async def test_paths_are_isolated(self, store):
        await store.put("users/u1/collections", {"name": "A"}, "c1")

        assert await store.get("users/u2/collections", "c1") is None
        assert await store.query("users/u2/collections") == []

    @pytest.mark.asyncio
    async def test_update_applies_partial(self, store):
        await store.put("users", {"tier": "free", "usage": {"collections": 0}}, "u1")

        await store.update("users", "u1", {"usage.collections": Increment(1), "tier": "pro"})

        doc = await store.get("users", "u1")
        assert doc["tier"] == "pro"
        assert doc["usage"]["collections"] == 1

    @pytest.mark.asyncio
    async def test_update_appends_to_stored_list(self, store):
        await store.put("items", {"photos": [{"id": "p1"}]}, "i1")

        await store.update("items", "i1", {"photos": Append({"id": "p2"})})
        await store.update("items", "i1", {"photos": Append({"id": "p3"})})

        doc = await store.get("items", "i1")
        assert [p["id"] for p in doc["photos"]] == ["p1", "p2", "p3"]

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(DocumentNotFoundError) as exc_info:
            await store.update("users", "ghost", {"tier": "pro"})

        assert isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.doc_id == "ghost"

    @pytest.mark.asyncio
    async def test_query_filters_and_order(self, store):
        await store.put("templates", {"name": "a", "usageCount": 1, "owner": "x"}, "a")
        await store.put("templates", {"name": "b", "usageCount": 5, "owner": "y"}, "b")
        await store.put("templates", {"name": "c", "usageCount": 3, "owner": "x"}, "c")

        ordered = await store.query("templates", order_by="-usageCount")
        assert [d["id"] for d in ordered] == ["b", "c", "a"]

        filtered = await store.query("templates", filters={"owner": "x"})
        assert [d["id"] for d in filtered] == ["a", "c"]

        limited = await store.query("templates", order_by="usageCount", limit=2)
        assert [d["id"] for d in limited] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_query_keeps_insertion_order_for_ties(self, store):
        for doc_id in ("first", "second", "third"):
            await store.put("templates", {"usageCount": 0}, doc_id)

        docs = await store.query("templates", order_by="-usageCount")
        assert [d["id"] for d in docs] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_batch_delete(self, store):
        await store.put("things", {"n": 1}, "a")
        await store.put("things", {"n": 2}, "b")

        await store.batch_delete("things", ["a", "unknown"])
        await store.batch_delete("things", [])

        assert [d["id"] for d in await store.query("things")] == ["b"]

    @pytest.mark.asyncio
    async def test_operational_error_becomes_unavailable(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        store = SQLAlchemyDocumentStore(session)

        with pytest.raises(StoreUnavailableError):
            await store.get("users", "u1")
