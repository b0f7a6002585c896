"""Catalog service for collections, items, photos and templates.

Every creation follows the same sequence: admission by the quota ledger,
template resolution, attribute validation, the store write, and only then
usage accounting. Deletions release what they remove.
"""

import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from trove.core.logging import get_logger
from trove.domain.entities.collection import Collection
from trove.domain.entities.item import Item, Photo
from trove.domain.entities.template import Template
from trove.domain.entities.tier import TIER_PROFILES, TierProfile, get_tier_profile
from trove.domain.entities.timestamps import isoformat, utcnow
from trove.domain.entities.usage import QuotaOperation, UsageCounters
from trove.domain.entities.user import UserProfile
from trove.domain.exceptions import (
    MissingRequired,
    NegativeValue,
    NotFoundError,
    QuotaExceededError,
    TypeMismatch,
    UnauthorizedError,
    ValidationError,
)
from trove.domain.services.builtin_templates import DEFAULT_TEMPLATE_ID, is_builtin
from trove.domain.services.quota_ledger import QuotaLedger
from trove.domain.services.record_validator import RecordValidator
from trove.domain.services.schema_registry import SchemaRegistry, TemplateAnalytics
from trove.infrastructure.persistence.document_store import Append, DocumentStore
from trove.infrastructure.persistence.paths import (
    USERS,
    collections_path,
    items_path,
    sub_collections_path,
)

logger = get_logger(__name__)


@dataclass
class TierInfo:
    """A user's tier together with its limits and current usage."""

    tier: TierProfile
    limits: dict[str, Any]
    usage: UsageCounters


@dataclass
class CollectionStats:
    """Aggregate figures of a collection, its sub-collections included."""

    total_items: int = 0
    total_value: float = 0
    average_value: float = 0
    sub_collections: int = 0
    by_template: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    by_condition: dict[str, int] = field(default_factory=dict)


def _validate_value(estimated_value: Any) -> float:
    if isinstance(estimated_value, bool) or not isinstance(estimated_value, (int, float)):
        raise ValidationError(
            [TypeMismatch(field="estimated_value", message="Estimated value must be a number")]
        )
    if estimated_value < 0:
        raise ValidationError(
            [NegativeValue(field="estimated_value", message="Estimated value cannot be negative")]
        )
    return estimated_value


def _require_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError([MissingRequired(field="name", message="Name is required")])
    return name.strip()


def _labels(value: Any, default: str) -> list[str]:
    """Bucket labels of an attribute value; a tags list counts once per tag."""
    if isinstance(value, (list, tuple)):
        labels = [str(v).strip() for v in value if v is not None and str(v).strip()]
        return labels or [default]
    if value is None or (isinstance(value, str) and not value.strip()):
        return [default]
    return [str(value).strip()]


def _tally(items: Iterable[Item], attribute: str, default: str) -> dict[str, int]:
    counter: Counter[str] = Counter()
    for item in items:
        counter.update(_labels(item.attributes.get(attribute), default))
    return dict(counter)


class CatalogService:
    """Service for catalog business logic."""

    def __init__(
        self,
        store: DocumentStore,
        tiers: Mapping[str, TierProfile] = TIER_PROFILES,
        max_photo_size_mb: float | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Document store.
            tiers: Tier catalog.
            max_photo_size_mb: Largest single photo accepted, if capped.
        """
        self.store = store
        self.tiers = tiers
        self.max_photo_size_mb = max_photo_size_mb
        self.registry = SchemaRegistry(store)
        self.ledger = QuotaLedger(store, tiers)

    # Collections

    async def create_collection(
        self,
        user_id: str,
        name: str,
        description: str = "",
        category: str = "General",
        tags: Iterable[str] = (),
        template_id: str = DEFAULT_TEMPLATE_ID,
    ) -> Collection:
        """Create a top-level collection.

        Raises:
            QuotaExceededError: If the tier's collection limit is reached.
            ValidationError: If the name is blank.
            NotFoundError: If the default template does not exist.
        """
        await self.ledger.require_admission(user_id, QuotaOperation.CREATE_COLLECTION)
        name = _require_name(name)
        template_id = template_id or DEFAULT_TEMPLATE_ID
        await self.registry.resolve(template_id)

        now = utcnow()
        collection = Collection(
            id=uuid.uuid4().hex,
            user_id=user_id,
            name=name,
            description=description or "",
            category=category or "General",
            tags=[tag.strip() for tag in tags if tag and tag.strip()],
            template_id=template_id,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(collections_path(user_id), collection.to_document(), collection.id)
        await self.ledger.reserve(
            user_id, QuotaOperation.CREATE_COLLECTION, token=f"collection:{collection.id}"
        )

        logger.info(
            "Collection created",
            user_id=user_id,
            collection_id=collection.id,
            template_id=template_id,
        )
        return collection

    async def get_collection(self, user_id: str, collection_id: str) -> Collection:
        """Get a collection owned by the user.

        Raises:
            NotFoundError: If the user has no such collection.
            UnauthorizedError: If the stored owner differs from the user.
        """
        doc = await self.store.get(collections_path(user_id), collection_id)
        if doc is None:
            raise NotFoundError(f"Collection '{collection_id}' not found")
        collection = Collection.from_document(doc)
        if collection.user_id != user_id:
            raise UnauthorizedError(f"Collection '{collection_id}' is not owned by the caller")
        return collection

    async def list_collections(self, user_id: str) -> list[Collection]:
        docs = await self.store.query(collections_path(user_id))
        return [Collection.from_document(doc) for doc in docs]

    async def update_collection(
        self,
        user_id: str,
        collection_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        category: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> Collection:
        """Edit the descriptive fields of a collection the user owns.

        Fields left as None keep their stored value. The default template and
        the item aggregates cannot be changed here.

        Raises:
            NotFoundError: If the user has no such collection.
            ValidationError: If a new name is blank.
        """
        collection = await self.get_collection(user_id, collection_id)

        changes: dict[str, Any] = {}
        if name is not None:
            collection.name = changes["name"] = _require_name(name)
        if description is not None:
            collection.description = changes["description"] = description
        if category is not None:
            collection.category = changes["category"] = category or "General"
        if tags is not None:
            collection.tags = [tag.strip() for tag in tags if tag and tag.strip()]
            changes["tags"] = list(collection.tags)

        collection.updated_at = utcnow()
        changes["updatedAt"] = isoformat(collection.updated_at)
        await self.store.update(collections_path(user_id), collection_id, changes)

        logger.info(
            "Collection updated",
            user_id=user_id,
            collection_id=collection_id,
            fields=sorted(key for key in changes if key != "updatedAt"),
        )
        return collection

    async def delete_collection(self, user_id: str, collection_id: str) -> None:
        """Delete a collection with its sub-collections and items, releasing their usage."""
        await self.get_collection(user_id, collection_id)

        subs = await self.list_sub_collections(user_id, collection_id)
        removed: list[Item] = []
        for sub in subs:
            removed.extend(await self._delete_items(user_id, collection_id, sub.id))
        await self.store.batch_delete(
            sub_collections_path(user_id, collection_id), [sub.id for sub in subs]
        )

        removed.extend(await self._delete_items(user_id, collection_id, None))
        await self.store.batch_delete(collections_path(user_id), [collection_id])

        await self.ledger.release(
            user_id, QuotaOperation.CREATE_COLLECTION, tokens=[f"collection:{collection_id}"]
        )
        removed_storage = await self._release_items(user_id, removed)

        logger.info(
            "Collection deleted",
            user_id=user_id,
            collection_id=collection_id,
            items_removed=len(removed),
            storage_released_mb=removed_storage,
        )

    async def _delete_items(
        self, user_id: str, collection_id: str, sub_collection_id: str | None
    ) -> list[Item]:
        path = items_path(user_id, collection_id, sub_collection_id)
        items = [Item.from_document(doc) for doc in await self.store.query(path)]
        await self.store.batch_delete(path, [item.id for item in items])
        return items

    async def _release_items(self, user_id: str, items: list[Item]) -> float:
        """Release the item count and photo storage of removed items.

        Container aggregates are not touched; the containers are gone too.
        Returns the megabytes released.
        """
        storage = sum(item.storage_used_mb for item in items)
        if items:
            await self.ledger.release(
                user_id,
                QuotaOperation.ADD_ITEM,
                len(items),
                tokens=[f"item:{item.id}" for item in items],
            )
        if storage:
            await self.ledger.release(
                user_id,
                QuotaOperation.UPLOAD_PHOTO,
                storage,
                tokens=[f"photo:{photo.id}" for item in items for photo in item.photos],
            )
        return storage

    # Sub-collections

    async def create_sub_collection(
        self, user_id: str, collection_id: str, name: str, description: str = ""
    ) -> Collection:
        """Create a sub-collection; it inherits the parent's default template."""
        parent = await self.get_collection(user_id, collection_id)
        name = _require_name(name)

        now = utcnow()
        sub = Collection(
            id=uuid.uuid4().hex,
            user_id=user_id,
            name=name,
            description=description or "",
            category=parent.category,
            template_id=parent.template_id,
            parent_id=parent.id,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(sub_collections_path(user_id, collection_id), sub.to_document(), sub.id)

        logger.info(
            "Sub-collection created",
            user_id=user_id,
            collection_id=collection_id,
            sub_collection_id=sub.id,
        )
        return sub

    async def get_sub_collection(
        self, user_id: str, collection_id: str, sub_collection_id: str
    ) -> Collection:
        await self.get_collection(user_id, collection_id)
        doc = await self.store.get(sub_collections_path(user_id, collection_id), sub_collection_id)
        if doc is None:
            raise NotFoundError(f"Sub-collection '{sub_collection_id}' not found")
        return Collection.from_document(doc)

    async def list_sub_collections(self, user_id: str, collection_id: str) -> list[Collection]:
        await self.get_collection(user_id, collection_id)
        docs = await self.store.query(sub_collections_path(user_id, collection_id))
        return [Collection.from_document(doc) for doc in docs]

    async def delete_sub_collection(
        self, user_id: str, collection_id: str, sub_collection_id: str
    ) -> None:
        """Delete a sub-collection and its items, releasing their usage."""
        await self.get_sub_collection(user_id, collection_id, sub_collection_id)

        removed = await self._delete_items(user_id, collection_id, sub_collection_id)
        await self.store.batch_delete(
            sub_collections_path(user_id, collection_id), [sub_collection_id]
        )
        await self._release_items(user_id, removed)

        logger.info(
            "Sub-collection deleted",
            user_id=user_id,
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
            items_removed=len(removed),
        )

    # Items

    async def _get_container(
        self, user_id: str, collection_id: str, sub_collection_id: str | None
    ) -> Collection:
        if sub_collection_id:
            return await self.get_sub_collection(user_id, collection_id, sub_collection_id)
        return await self.get_collection(user_id, collection_id)

    async def create_item(
        self,
        user_id: str,
        collection_id: str,
        template_id: str | None,
        raw_attributes: dict[str, Any],
        *,
        sub_collection_id: str | None = None,
        estimated_value: float = 0,
    ) -> Item:
        """Create an item in a collection or sub-collection.

        Args:
            user_id: The acting user.
            collection_id: Owning collection.
            template_id: Template to validate against; the container's when None.
            raw_attributes: Attribute values as received.
            sub_collection_id: Owning sub-collection, if any.
            estimated_value: The item's estimated value.

        Returns:
            The stored item.

        Raises:
            NotFoundError: If the container or template does not exist.
            QuotaExceededError: If a tier limit or entitlement denies the item.
            ValidationError: If the attributes do not match the template.
        """
        container = await self._get_container(user_id, collection_id, sub_collection_id)

        await self.ledger.require_admission(
            user_id,
            QuotaOperation.ADD_ITEM,
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
        )

        template_id = template_id or container.template_id
        if not is_builtin(template_id):
            await self._require_custom_templates(user_id)

        template = await self.registry.resolve(template_id)
        attributes = RecordValidator.coerce(template, raw_attributes)
        estimated_value = _validate_value(estimated_value)

        now = utcnow()
        item = Item(
            id=uuid.uuid4().hex,
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
            template_id=template.id,
            attributes=attributes,
            estimated_value=estimated_value,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(
            items_path(user_id, collection_id, sub_collection_id), item.to_document(), item.id
        )
        await self.ledger.reserve(
            user_id,
            QuotaOperation.ADD_ITEM,
            token=f"item:{item.id}",
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
            estimated_value=estimated_value,
        )
        await self.registry.record_usage(template.id)

        logger.info(
            "Item created",
            user_id=user_id,
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
            item_id=item.id,
            template_id=template.id,
        )
        return item

    async def _require_custom_templates(self, user_id: str) -> None:
        doc = await self.store.get(USERS, user_id)
        tier = get_tier_profile(doc.get("tier"), self.tiers) if doc else None
        if tier is None or not tier.can_use_custom_templates:
            raise QuotaExceededError(
                operation=QuotaOperation.ADD_ITEM.value,
                limit_name="can_use_custom_templates",
                limit=False,
                current=tier.name if tier else None,
                message="Custom templates require an upgraded tier",
            )

    async def get_item(
        self,
        user_id: str,
        collection_id: str,
        item_id: str,
        sub_collection_id: str | None = None,
    ) -> Item:
        await self._get_container(user_id, collection_id, sub_collection_id)
        doc = await self.store.get(items_path(user_id, collection_id, sub_collection_id), item_id)
        if doc is None:
            raise NotFoundError(f"Item '{item_id}' not found")
        return Item.from_document(doc)

    async def list_items(
        self, user_id: str, collection_id: str, sub_collection_id: str | None = None
    ) -> list[Item]:
        await self._get_container(user_id, collection_id, sub_collection_id)
        docs = await self.store.query(items_path(user_id, collection_id, sub_collection_id))
        return [Item.from_document(doc) for doc in docs]

    async def delete_item(
        self,
        user_id: str,
        collection_id: str,
        item_id: str,
        sub_collection_id: str | None = None,
    ) -> None:
        """Delete an item, updating container aggregates and usage counters."""
        item = await self.get_item(user_id, collection_id, item_id, sub_collection_id)

        await self.store.batch_delete(
            items_path(user_id, collection_id, sub_collection_id), [item_id]
        )
        await self.ledger.release(
            user_id,
            QuotaOperation.ADD_ITEM,
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
            estimated_value=item.estimated_value,
            tokens=[f"item:{item.id}"],
        )
        if item.storage_used_mb:
            await self.ledger.release(
                user_id,
                QuotaOperation.UPLOAD_PHOTO,
                item.storage_used_mb,
                tokens=[f"photo:{photo.id}" for photo in item.photos],
            )

        logger.info("Item deleted", user_id=user_id, collection_id=collection_id, item_id=item_id)

    async def add_photo(
        self,
        user_id: str,
        collection_id: str,
        item_id: str,
        *,
        file_name: str,
        url: str,
        size_mb: float,
        sub_collection_id: str | None = None,
    ) -> Item:
        """Record a photo stored in the blob store and account for its size."""
        item = await self.get_item(user_id, collection_id, item_id, sub_collection_id)

        if isinstance(size_mb, bool) or not isinstance(size_mb, (int, float)) or size_mb <= 0:
            raise ValidationError(
                [TypeMismatch(field="size_mb", message="Photo size must be a positive number")]
            )
        if self.max_photo_size_mb is not None and size_mb > self.max_photo_size_mb:
            raise ValidationError(
                [
                    TypeMismatch(
                        field="size_mb",
                        message=f"Photo exceeds the {self.max_photo_size_mb} MB upload limit",
                        code="file_too_large",
                    )
                ]
            )

        await self.ledger.require_admission(
            user_id, QuotaOperation.UPLOAD_PHOTO, file_size_mb=size_mb
        )

        photo = Photo(file_name=file_name, url=url, size_mb=size_mb)
        path = items_path(user_id, collection_id, sub_collection_id)
        # Appended under the row lock; the list read by get_item may be stale
        await self.store.update(
            path,
            item.id,
            {"photos": Append(photo.to_document()), "updatedAt": isoformat(utcnow())},
        )
        await self.ledger.reserve(
            user_id, QuotaOperation.UPLOAD_PHOTO, size_mb, token=f"photo:{photo.id}"
        )

        logger.info(
            "Photo added",
            user_id=user_id,
            item_id=item_id,
            photo_id=photo.id,
            file_name=file_name,
            size_mb=size_mb,
        )
        return Item.from_document(await self.store.get(path, item.id))

    async def get_collection_stats(self, user_id: str, collection_id: str) -> CollectionStats:
        """Summarize a collection and its sub-collections."""
        subs = await self.list_sub_collections(user_id, collection_id)

        items = await self.list_items(user_id, collection_id)
        for sub in subs:
            items.extend(await self.list_items(user_id, collection_id, sub.id))

        stats = CollectionStats(sub_collections=len(subs), total_items=len(items))
        stats.total_value = sum(item.estimated_value for item in items)
        if items:
            stats.average_value = stats.total_value / len(items)
        stats.by_template = dict(Counter(item.template_id for item in items))
        stats.by_category = _tally(items, "Category", "Uncategorized")
        stats.by_condition = _tally(items, "Condition", "Unknown")
        return stats

    # Templates

    async def create_template(self, user_id: str, definition: dict[str, Any]) -> Template:
        """Create a custom template if the user's tier allows authoring."""
        await self.ledger.require_admission(user_id, QuotaOperation.CREATE_TEMPLATE)
        return await self.registry.create(definition, created_by=user_id)

    async def duplicate_template(self, user_id: str, template_id: str) -> Template:
        """Copy a template into a new custom template owned by the user.

        Gated like ``create_template``: only tiers that may author templates
        can duplicate one.
        """
        await self.ledger.require_admission(user_id, QuotaOperation.CREATE_TEMPLATE)
        return await self.registry.duplicate(template_id, created_by=user_id)

    async def get_template_analytics(self) -> TemplateAnalytics:
        return await self.registry.analytics()

    async def _owned_template(self, user_id: str, template_id: str, action: str) -> Template:
        if is_builtin(template_id):
            raise UnauthorizedError(f"Built-in template '{template_id}' cannot be {action}")
        template = await self.registry.get(template_id, include_inactive=True)
        if template is None:
            raise NotFoundError(f"Template '{template_id}' not found")
        if template.created_by != user_id:
            raise UnauthorizedError(f"Template '{template_id}' is not owned by the caller")
        return template

    async def update_template(
        self, user_id: str, template_id: str, definition: dict[str, Any]
    ) -> Template:
        await self._owned_template(user_id, template_id, "modified")
        return await self.registry.update(template_id, definition)

    async def delete_template(self, user_id: str, template_id: str) -> Template:
        await self._owned_template(user_id, template_id, "deleted")
        return await self.registry.soft_delete(template_id)

    async def resolve_template(self, template_id: str) -> Template:
        return await self.registry.resolve(template_id)

    async def list_templates(self, include_inactive: bool = False) -> list[Template]:
        return await self.registry.list_all(include_inactive=include_inactive)

    # Tiers

    async def get_user_tier_info(self, user_id: str) -> TierInfo:
        """Return the user's tier, its limits and current usage.

        Raises:
            NotFoundError: If the user has no profile or an unknown tier.
        """
        doc = await self.store.get(USERS, user_id)
        if doc is None:
            raise NotFoundError(f"Profile for user '{user_id}' not found")
        profile = UserProfile.from_document(doc)
        tier = get_tier_profile(profile.tier, self.tiers)
        if tier is None:
            raise NotFoundError(f"Unknown tier '{profile.tier}'")
        return TierInfo(tier=tier, limits=tier.limits(), usage=profile.usage)
