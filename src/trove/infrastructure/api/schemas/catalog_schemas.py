"""Pydantic schemas for collection, item and photo endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from trove.domain.entities.collection import Collection
from trove.domain.entities.item import Item
from trove.domain.services import CollectionStats


class CreateCollectionRequest(BaseModel):
    """Request body for creating a collection."""

    name: str = Field(..., max_length=200, description="Collection name")
    description: str = Field(default="", description="Free text")
    category: str = Field(default="General", description="Grouping label")
    tags: list[str] = Field(default_factory=list, description="Free-form labels")
    template_id: str = Field(default="general", description="Default template for new items")


class UpdateCollectionRequest(BaseModel):
    """Request body for editing a collection; omitted fields are left unchanged."""

    name: str | None = Field(default=None, max_length=200, description="Collection name")
    description: str | None = Field(default=None, description="Free text")
    category: str | None = Field(default=None, description="Grouping label")
    tags: list[str] | None = Field(default=None, description="Free-form labels")


class CreateSubCollectionRequest(BaseModel):
    """Request body for creating a sub-collection."""

    name: str = Field(..., max_length=200, description="Sub-collection name")
    description: str = Field(default="", description="Free text")


class CollectionResponse(BaseModel):
    """Response for a collection or sub-collection."""

    id: str
    name: str
    description: str
    category: str
    tags: list[str]
    template_id: str
    parent_id: str | None = None
    item_count: int
    estimated_value: float
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, collection: Collection) -> "CollectionResponse":
        return cls(
            id=collection.id,
            name=collection.name,
            description=collection.description,
            category=collection.category,
            tags=collection.tags,
            template_id=collection.template_id,
            parent_id=collection.parent_id,
            item_count=collection.item_count,
            estimated_value=collection.estimated_value,
            created_at=collection.created_at,
            updated_at=collection.updated_at,
        )


class CollectionListResponse(BaseModel):
    """Response for listing collections."""

    items: list[CollectionResponse]
    total: int


class CollectionStatsResponse(BaseModel):
    """Aggregate figures of a collection."""

    total_items: int
    total_value: float
    average_value: float
    sub_collections: int
    by_template: dict[str, int]
    by_category: dict[str, int]
    by_condition: dict[str, int]

    @classmethod
    def from_stats(cls, stats: CollectionStats) -> "CollectionStatsResponse":
        return cls(
            total_items=stats.total_items,
            total_value=stats.total_value,
            average_value=stats.average_value,
            sub_collections=stats.sub_collections,
            by_template=stats.by_template,
            by_category=stats.by_category,
            by_condition=stats.by_condition,
        )


class CreateItemRequest(BaseModel):
    """Request body for creating an item."""

    template_id: str | None = Field(
        default=None,
        description="Template to validate against; defaults to the collection's template",
    )
    attributes: dict[str, Any] = Field(default_factory=dict, description="Raw attribute values")
    estimated_value: float = Field(default=0, description="Estimated value")


class AddPhotoRequest(BaseModel):
    """Request body for registering a photo stored in the blob store."""

    file_name: str = Field(..., min_length=1, description="Original file name")
    url: str = Field(..., min_length=1, description="Download URL in the blob store")
    size_mb: float = Field(..., gt=0, description="File size in megabytes")


class PhotoResponse(BaseModel):
    id: str
    file_name: str
    url: str
    size_mb: float


class ItemResponse(BaseModel):
    """Response for a single item."""

    id: str
    collection_id: str
    sub_collection_id: str | None = None
    template_id: str
    attributes: dict[str, Any]
    estimated_value: float
    photos: list[PhotoResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, item: Item) -> "ItemResponse":
        return cls(
            id=item.id,
            collection_id=item.collection_id,
            sub_collection_id=item.sub_collection_id,
            template_id=item.template_id,
            attributes=item.attributes,
            estimated_value=item.estimated_value,
            photos=[
                PhotoResponse(id=p.id, file_name=p.file_name, url=p.url, size_mb=p.size_mb)
                for p in item.photos
            ],
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class ItemListResponse(BaseModel):
    """Response for listing items."""

    items: list[ItemResponse]
    total: int
