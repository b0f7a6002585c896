"""Unit tests for CatalogService."""

from dataclasses import replace
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from trove.domain.entities.item import Item
from trove.domain.entities.tier import FREE, PRO, TIER_PROFILES
from trove.domain.entities.usage import QuotaOperation
from trove.domain.exceptions import (
    NotFoundError,
    QuotaExceededError,
    UnauthorizedError,
    ValidationError,
)
from trove.domain.services.catalog_service import CatalogService
from trove.infrastructure.api.schemas import CollectionStatsResponse
from trove.infrastructure.persistence.paths import (
    CUSTOM_TEMPLATES,
    QUOTA_RESERVATIONS,
    USERS,
    collections_path,
    items_path,
    reservation_id,
    sub_collections_path,
)


@pytest.fixture
def catalog(store):
    return CatalogService(store, max_photo_size_mb=10)


@pytest.fixture
def comics_definition():
    return {
        "name": "Comics",
        "description": "Comic book issues",
        "fields": [
            {"name": "Series", "type": "text", "required": True},
            {"name": "Issue", "type": "number"},
        ],
    }


async def usage_of(store, user_id="user-1"):
    return (await store.get(USERS, user_id))["usage"]


class TestCollections:
    """Tests for collection and sub-collection management."""

    @pytest.mark.asyncio
    async def test_create_collection_reserves_usage(self, catalog, store, make_profile):
        await make_profile(tier="free")

        collection = await catalog.create_collection(
            "user-1", "  Records ", tags=["jazz", " ", "vinyl "], template_id="vinyl"
        )

        assert collection.name == "Records"
        assert collection.tags == ["jazz", "vinyl"]
        assert collection.template_id == "vinyl"
        assert (await usage_of(store))["collections"] == 1
        assert [c.id for c in await catalog.list_collections("user-1")] == [collection.id]

    @pytest.mark.asyncio
    async def test_create_collection_over_limit(self, catalog, store, make_profile):
        await make_profile(tier="free", collections=3)

        with pytest.raises(QuotaExceededError):
            await catalog.create_collection("user-1", "One too many")

        assert await store.query(collections_path("user-1")) == []

    @pytest.mark.asyncio
    async def test_create_collection_requires_name(self, catalog, make_profile):
        await make_profile(tier="free")

        with pytest.raises(ValidationError):
            await catalog.create_collection("user-1", "   ")

    @pytest.mark.asyncio
    async def test_create_collection_unknown_template(self, catalog, make_profile):
        await make_profile(tier="free")

        with pytest.raises(NotFoundError):
            await catalog.create_collection("user-1", "Coins", template_id="nope")

    @pytest.mark.asyncio
    async def test_get_collection_of_other_user_not_found(self, catalog, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Records")

        with pytest.raises(NotFoundError):
            await catalog.get_collection("user-2", collection.id)

    @pytest.mark.asyncio
    async def test_get_collection_with_foreign_owner(self, catalog, store):
        await store.put(collections_path("user-1"), {"name": "Planted", "userId": "user-2"}, "c1")

        with pytest.raises(UnauthorizedError):
            await catalog.get_collection("user-1", "c1")

    @pytest.mark.asyncio
    async def test_sub_collection_inherits_template(self, catalog, make_profile):
        await make_profile(tier="free")
        parent = await catalog.create_collection("user-1", "Records", template_id="vinyl")

        sub = await catalog.create_sub_collection("user-1", parent.id, "Jazz")

        assert sub.parent_id == parent.id
        assert sub.template_id == "vinyl"
        assert [s.id for s in await catalog.list_sub_collections("user-1", parent.id)] == [sub.id]

    @pytest.mark.asyncio
    async def test_delete_collection_cascades_and_releases(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        sub = await catalog.create_sub_collection("user-1", collection.id, "Shelf")
        item = await catalog.create_item("user-1", collection.id, None, {"Name": "Lamp"})
        await catalog.create_item(
            "user-1", collection.id, None, {"Name": "Vase"}, sub_collection_id=sub.id
        )
        await catalog.add_photo(
            "user-1", collection.id, item.id, file_name="lamp.jpg", url="https://cdn/lamp.jpg", size_mb=2
        )

        await catalog.delete_collection("user-1", collection.id)

        assert await usage_of(store) == {"collections": 0, "totalItems": 0, "storageUsedMB": 0}
        assert await store.query(collections_path("user-1")) == []
        assert await store.query(sub_collections_path("user-1", collection.id)) == []
        assert await store.query(items_path("user-1", collection.id)) == []
        assert await store.query(items_path("user-1", collection.id, sub.id)) == []
        assert await store.query(QUOTA_RESERVATIONS) == []

    @pytest.mark.asyncio
    async def test_update_collection_edits_descriptive_fields(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection(
            "user-1", "Stuff", description="old", tags=["a"], template_id="vinyl"
        )

        updated = await catalog.update_collection(
            "user-1", collection.id, name=" Records ", tags=["jazz", " ", "soul "]
        )

        assert updated.name == "Records"
        assert updated.tags == ["jazz", "soul"]
        assert updated.description == "old"
        stored = await catalog.get_collection("user-1", collection.id)
        assert (stored.name, stored.description, stored.tags) == ("Records", "old", ["jazz", "soul"])
        assert stored.template_id == "vinyl"
        assert (await usage_of(store))["collections"] == 1

    @pytest.mark.asyncio
    async def test_update_collection_rejects_blank_name(self, catalog, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")

        with pytest.raises(ValidationError):
            await catalog.update_collection("user-1", collection.id, name="  ")

        assert (await catalog.get_collection("user-1", collection.id)).name == "Stuff"

    @pytest.mark.asyncio
    async def test_update_collection_of_other_user_not_found(self, catalog, make_profile):
        await make_profile("user-1", tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")

        with pytest.raises(NotFoundError):
            await catalog.update_collection("user-2", collection.id, name="Mine")

    @pytest.mark.asyncio
    async def test_delete_sub_collection_releases_items(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        sub = await catalog.create_sub_collection("user-1", collection.id, "Shelf")
        await catalog.create_item(
            "user-1", collection.id, None, {"Name": "Vase"}, sub_collection_id=sub.id
        )

        await catalog.delete_sub_collection("user-1", collection.id, sub.id)

        assert (await usage_of(store))["totalItems"] == 0
        assert (await usage_of(store))["collections"] == 1
        with pytest.raises(NotFoundError):
            await catalog.get_sub_collection("user-1", collection.id, sub.id)


class TestItems:
    """Tests for item creation, deletion and photos."""

    @pytest.mark.asyncio
    async def test_create_item_coerces_and_accounts(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Records", template_id="vinyl")

        item = await catalog.create_item(
            "user-1",
            collection.id,
            None,
            {
                "Artist": "Nina Simone",
                "Album Title": "Pastel Blues",
                "Format": "LP",
                "Release Year": "1965",
                "Purchase Date": "2022-02-02",
                "Unknown": "dropped",
            },
            estimated_value=40,
        )

        assert item.template_id == "vinyl"
        assert item.attributes["Release Year"] == 1965
        assert item.attributes["Purchase Date"] == date(2022, 2, 2)
        assert "Unknown" not in item.attributes

        stored = await store.get(items_path("user-1", collection.id), item.id)
        assert stored["attributes"]["Purchase Date"] == "2022-02-02"
        assert (await usage_of(store))["totalItems"] == 1
        refreshed = await catalog.get_collection("user-1", collection.id)
        assert (refreshed.item_count, refreshed.estimated_value) == (1, 40)

    @pytest.mark.asyncio
    async def test_invalid_attributes_write_nothing(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Records", template_id="vinyl")

        with pytest.raises(ValidationError) as exc_info:
            await catalog.create_item("user-1", collection.id, None, {"Format": "Cassette"})

        assert exc_info.value.codes() == ["required_missing", "required_missing", "invalid_option"]
        assert await store.query(items_path("user-1", collection.id)) == []
        assert (await usage_of(store))["totalItems"] == 0

    @pytest.mark.asyncio
    async def test_negative_estimated_value_rejected(self, catalog, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")

        with pytest.raises(ValidationError):
            await catalog.create_item(
                "user-1", collection.id, None, {"Name": "Lamp"}, estimated_value=-1
            )

    @pytest.mark.asyncio
    async def test_unknown_template_is_not_found(self, catalog, make_profile):
        await make_profile(tier="pro")
        collection = await catalog.create_collection("user-1", "Stuff")

        with pytest.raises(NotFoundError):
            await catalog.create_item("user-1", collection.id, "missing-template", {"Name": "x"})

    @pytest.mark.asyncio
    async def test_custom_template_needs_entitlement(
        self, catalog, store, make_profile, comics_definition
    ):
        await make_profile("author", tier="pro")
        template = await catalog.create_template("author", comics_definition)
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Comics")

        with pytest.raises(QuotaExceededError) as exc_info:
            await catalog.create_item("user-1", collection.id, template.id, {"Series": "X-Men"})

        assert exc_info.value.limit_name == "can_use_custom_templates"
        assert await store.query(items_path("user-1", collection.id)) == []

    @pytest.mark.asyncio
    async def test_custom_template_usage_is_recorded(
        self, catalog, store, make_profile, comics_definition
    ):
        await make_profile(tier="pro")
        template = await catalog.create_template("user-1", comics_definition)
        collection = await catalog.create_collection("user-1", "Comics")

        item = await catalog.create_item(
            "user-1", collection.id, template.id, {"Series": "X-Men", "Issue": "1"}
        )

        assert item.attributes == {"Series": "X-Men", "Issue": 1}
        assert (await store.get(CUSTOM_TEMPLATES, template.id))["usageCount"] == 1

    @pytest.mark.asyncio
    async def test_per_collection_limit(self, store, make_profile):
        tiers = {**TIER_PROFILES, "tiny": replace(FREE, name="tiny", max_items_per_collection=1)}
        catalog = CatalogService(store, tiers)
        await make_profile(tier="tiny")
        collection = await catalog.create_collection("user-1", "Stuff")
        await catalog.create_item("user-1", collection.id, None, {"Name": "One"})

        with pytest.raises(QuotaExceededError) as exc_info:
            await catalog.create_item("user-1", collection.id, None, {"Name": "Two"})

        assert exc_info.value.limit_name == "max_items_per_collection"

    @pytest.mark.asyncio
    async def test_delete_item_releases(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        item = await catalog.create_item(
            "user-1", collection.id, None, {"Name": "Lamp"}, estimated_value=12.5
        )
        await catalog.add_photo(
            "user-1", collection.id, item.id, file_name="a.jpg", url="https://cdn/a.jpg", size_mb=1.5
        )

        await catalog.delete_item("user-1", collection.id, item.id)

        assert await usage_of(store) == {"collections": 1, "totalItems": 0, "storageUsedMB": 0}
        refreshed = await catalog.get_collection("user-1", collection.id)
        assert (refreshed.item_count, refreshed.estimated_value) == (0, 0)
        with pytest.raises(NotFoundError):
            await catalog.get_item("user-1", collection.id, item.id)

    @pytest.mark.asyncio
    async def test_add_photo_accounts_storage(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        item = await catalog.create_item("user-1", collection.id, None, {"Name": "Lamp"})

        updated = await catalog.add_photo(
            "user-1", collection.id, item.id, file_name="a.jpg", url="https://cdn/a.jpg", size_mb=2.5
        )

        assert [p.file_name for p in updated.photos] == ["a.jpg"]
        assert (await usage_of(store))["storageUsedMB"] == 2.5
        photo_id = updated.photos[0].id
        assert await store.get(QUOTA_RESERVATIONS, reservation_id("user-1", f"photo:{photo_id}"))

    @pytest.mark.asyncio
    async def test_photos_added_from_stale_reads_both_persist(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        item = await catalog.create_item("user-1", collection.id, None, {"Name": "Lamp"})
        # Both requests read the item before either wrote its photo
        catalog.get_item = AsyncMock(return_value=item)

        await catalog.add_photo(
            "user-1", collection.id, item.id, file_name="a.jpg", url="https://cdn/a.jpg", size_mb=1.5
        )
        second = await catalog.add_photo(
            "user-1", collection.id, item.id, file_name="b.jpg", url="https://cdn/b.jpg", size_mb=2
        )

        assert [p.file_name for p in second.photos] == ["a.jpg", "b.jpg"]
        stored = Item.from_document(await store.get(items_path("user-1", collection.id), item.id))
        assert [p.file_name for p in stored.photos] == ["a.jpg", "b.jpg"]
        assert len({p.id for p in stored.photos}) == 2
        assert (await usage_of(store))["storageUsedMB"] == stored.storage_used_mb == 3.5

    @pytest.mark.asyncio
    async def test_photo_in_sub_collection(self, catalog, store, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        sub = await catalog.create_sub_collection("user-1", collection.id, "Shelf")
        item = await catalog.create_item(
            "user-1", collection.id, None, {"Name": "Vase"}, sub_collection_id=sub.id
        )

        updated = await catalog.add_photo(
            "user-1",
            collection.id,
            item.id,
            file_name="vase.jpg",
            url="https://cdn/vase.jpg",
            size_mb=1,
            sub_collection_id=sub.id,
        )
        await catalog.delete_item("user-1", collection.id, item.id, sub_collection_id=sub.id)

        assert updated.sub_collection_id == sub.id
        assert await usage_of(store) == {"collections": 1, "totalItems": 0, "storageUsedMB": 0}
        assert await store.query(QUOTA_RESERVATIONS, filters={"operation": "add_item"}) == []
        assert await store.query(QUOTA_RESERVATIONS, filters={"operation": "upload_photo"}) == []

    @pytest.mark.asyncio
    async def test_add_photo_over_storage_limit(self, catalog, store, make_profile):
        await make_profile(tier="free", storage_used_mb=99)
        collection = await catalog.create_collection("user-1", "Stuff")
        item = await catalog.create_item("user-1", collection.id, None, {"Name": "Lamp"})

        with pytest.raises(QuotaExceededError):
            await catalog.add_photo(
                "user-1", collection.id, item.id, file_name="a.jpg", url="u", size_mb=2
            )

        assert (await catalog.get_item("user-1", collection.id, item.id)).photos == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size_mb", [0, -1, 11])
    async def test_add_photo_rejects_bad_sizes(self, catalog, make_profile, size_mb):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        item = await catalog.create_item("user-1", collection.id, None, {"Name": "Lamp"})

        with pytest.raises(ValidationError):
            await catalog.add_photo(
                "user-1", collection.id, item.id, file_name="a.jpg", url="u", size_mb=size_mb
            )

    @pytest.mark.asyncio
    async def test_collection_stats(self, catalog, make_profile):
        await make_profile(tier="free")
        collection = await catalog.create_collection("user-1", "Stuff")
        sub = await catalog.create_sub_collection("user-1", collection.id, "Shelf")
        await catalog.create_item(
            "user-1",
            collection.id,
            None,
            {"Name": "Lamp", "Category": "Lighting", "Condition": "Mint"},
            estimated_value=30,
        )
        await catalog.create_item(
            "user-1", collection.id, None, {"Name": "Vase"}, sub_collection_id=sub.id, estimated_value=10
        )

        stats = await catalog.get_collection_stats("user-1", collection.id)

        assert stats.total_items == 2
        assert stats.sub_collections == 1
        assert stats.total_value == 40
        assert stats.average_value == 20
        assert stats.by_template == {"general": 2}
        assert stats.by_category == {"Lighting": 1, "Uncategorized": 1}
        assert stats.by_condition == {"Mint": 1, "Unknown": 1}

    @pytest.mark.asyncio
    async def test_collection_stats_with_non_text_attributes(self, catalog, make_profile):
        await make_profile(tier="pro")
        template = await catalog.create_template(
            "user-1",
            {
                "name": "Jewelry",
                "description": "Rings and things",
                "fields": [
                    {"name": "Name", "type": "text", "required": True},
                    {"name": "Category", "type": "tags"},
                    {"name": "Condition", "type": "number"},
                ],
            },
        )
        collection = await catalog.create_collection("user-1", "Box")
        await catalog.create_item(
            "user-1",
            collection.id,
            template.id,
            {"Name": "Ring", "Category": "gold, vintage", "Condition": 7},
        )
        await catalog.create_item(
            "user-1", collection.id, template.id, {"Name": "Pin", "Category": "", "Condition": ""}
        )

        stats = await catalog.get_collection_stats("user-1", collection.id)

        assert stats.by_category == {"gold": 1, "vintage": 1, "Uncategorized": 1}
        assert stats.by_condition == {"7": 1, "Unknown": 1}
        response = CollectionStatsResponse.from_stats(stats)
        assert response.by_condition == {"7": 1, "Unknown": 1}


class TestTemplatesAndTiers:
    """Tests for template ownership and tier information."""

    @pytest.mark.asyncio
    async def test_free_tier_cannot_author_templates(self, catalog, make_profile, comics_definition):
        await make_profile(tier="free")

        with pytest.raises(QuotaExceededError) as exc_info:
            await catalog.create_template("user-1", comics_definition)

        assert exc_info.value.operation == QuotaOperation.CREATE_TEMPLATE.value

    @pytest.mark.asyncio
    async def test_only_author_may_change_template(self, catalog, make_profile, comics_definition):
        await make_profile("user-1", tier="pro")
        await make_profile("user-2", tier="pro")
        template = await catalog.create_template("user-1", comics_definition)

        with pytest.raises(UnauthorizedError):
            await catalog.update_template("user-2", template.id, comics_definition)
        with pytest.raises(UnauthorizedError):
            await catalog.delete_template("user-2", template.id)

        deleted = await catalog.delete_template("user-1", template.id)
        assert not deleted.is_active

    @pytest.mark.asyncio
    async def test_duplicate_template(self, catalog, store, make_profile, comics_definition):
        await make_profile("user-1", tier="pro")
        await make_profile("user-2", tier="enterprise")
        source = await catalog.create_template("user-1", comics_definition)
        await store.update(CUSTOM_TEMPLATES, source.id, {"usageCount": 4})

        copy = await catalog.duplicate_template("user-2", source.id)

        assert copy.id != source.id
        assert copy.name == "Comics (Copy)"
        assert copy.usage_count == 0
        assert copy.created_by == "user-2"
        assert copy.fields == source.fields
        stored = await catalog.registry.resolve(copy.id)
        assert (stored.name, stored.usage_count) == ("Comics (Copy)", 0)
        # The copy belongs to whoever duplicated it
        await catalog.delete_template("user-2", copy.id)

    @pytest.mark.asyncio
    async def test_duplicate_builtin_template(self, catalog, make_profile):
        await make_profile(tier="pro")

        copy = await catalog.duplicate_template("user-1", "vinyl")

        assert not copy.is_built_in
        assert copy.name.endswith(" (Copy)")
        assert [f.name for f in copy.fields] == [
            f.name for f in (await catalog.resolve_template("vinyl")).fields
        ]

    @pytest.mark.asyncio
    async def test_duplicate_template_requires_authoring_tier(
        self, catalog, store, make_profile
    ):
        await make_profile(tier="free")

        with pytest.raises(QuotaExceededError):
            await catalog.duplicate_template("user-1", "vinyl")

        assert await store.query(CUSTOM_TEMPLATES) == []

    @pytest.mark.asyncio
    async def test_duplicate_deleted_template_not_found(
        self, catalog, make_profile, comics_definition
    ):
        await make_profile(tier="pro")
        source = await catalog.create_template("user-1", comics_definition)
        await catalog.delete_template("user-1", source.id)

        with pytest.raises(NotFoundError):
            await catalog.duplicate_template("user-1", source.id)

    @pytest.mark.asyncio
    async def test_template_analytics(self, catalog, store, make_profile, comics_definition):
        await make_profile(tier="pro")
        assert (await catalog.get_template_analytics()).most_used_template is None

        comics = await catalog.create_template("user-1", comics_definition)
        coins = await catalog.create_template("user-1", {**comics_definition, "name": "Coins"})
        stamps = await catalog.create_template("user-1", {**comics_definition, "name": "Stamps"})
        await store.update(CUSTOM_TEMPLATES, comics.id, {"usageCount": 3})
        await store.update(CUSTOM_TEMPLATES, coins.id, {"usageCount": 5})
        await store.update(CUSTOM_TEMPLATES, stamps.id, {"usageCount": 9})
        await catalog.delete_template("user-1", stamps.id)

        analytics = await catalog.get_template_analytics()

        assert analytics.total_templates == 2
        assert analytics.most_used_template_id == coins.id
        assert analytics.most_used_template == "Coins"
        assert analytics.most_used_count == 5

    @pytest.mark.asyncio
    async def test_builtin_template_cannot_be_deleted(self, catalog, make_profile):
        await make_profile(tier="pro")

        with pytest.raises(UnauthorizedError):
            await catalog.delete_template("user-1", "general")

    @pytest.mark.asyncio
    async def test_user_tier_info(self, catalog, make_profile):
        await make_profile(tier="patron", collections=2)

        info = await catalog.get_user_tier_info("user-1")

        assert info.tier.name == "enterprise"
        assert info.limits["can_create_templates"] is True
        assert info.usage.collections == 2

    @pytest.mark.asyncio
    async def test_user_tier_info_without_profile(self, catalog):
        with pytest.raises(NotFoundError):
            await catalog.get_user_tier_info("ghost")


class TestCreationOrder:
    """Tests for the order of steps during item creation, with a mocked ledger."""

    @pytest.mark.asyncio
    async def test_admission_checked_before_validation(self, store, make_profile):
        await make_profile(tier="free")
        catalog = CatalogService(store)
        collection = await catalog.create_collection("user-1", "Stuff")

        catalog.ledger = MagicMock()
        catalog.ledger.require_admission = AsyncMock(
            side_effect=QuotaExceededError("add_item", "max_total_items", 150, 150)
        )
        catalog.ledger.reserve = AsyncMock()

        with pytest.raises(QuotaExceededError):
            await catalog.create_item("user-1", collection.id, None, {"Name": ""})

        catalog.ledger.reserve.assert_not_called()

    @pytest.mark.asyncio
    async def test_reserve_uses_write_token(self, store, make_profile):
        await make_profile(tier="pro")
        catalog = CatalogService(store, {"pro": PRO})
        collection = await catalog.create_collection("user-1", "Stuff")

        catalog.ledger = MagicMock()
        catalog.ledger.require_admission = AsyncMock()
        catalog.ledger.reserve = AsyncMock(return_value=True)

        item = await catalog.create_item("user-1", collection.id, None, {"Name": "Lamp"})

        catalog.ledger.reserve.assert_awaited_once_with(
            "user-1",
            QuotaOperation.ADD_ITEM,
            token=f"item:{item.id}",
            collection_id=collection.id,
            sub_collection_id=None,
            estimated_value=0,
        )
