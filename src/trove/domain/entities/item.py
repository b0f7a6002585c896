"""Item entity: a record conforming to a template."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from trove.domain.entities.timestamps import isoformat, parse_datetime


@dataclass(frozen=True)
class Photo:
    """Metadata of a photo held by the external blob store."""

    file_name: str
    url: str
    size_mb: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "url": self.url,
            "sizeMB": self.size_mb,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Photo":
        return cls(
            file_name=doc.get("fileName") or "",
            url=doc.get("url") or "",
            size_mb=float(doc.get("sizeMB") or 0),
            id=doc.get("id") or "",
        )


@dataclass
class Item:
    """A catalogued item.

    Attributes:
        id: Store-generated identifier, unique within its container.
        collection_id: Owning collection.
        sub_collection_id: Owning sub-collection, if the item lives in one.
        template_id: Template the attributes were validated against.
        attributes: Coerced attribute values keyed by field name.
        estimated_value: Contribution to the container's aggregate value.
        photos: Photos registered for the item.
    """

    id: str
    collection_id: str
    template_id: str
    attributes: dict[str, Any] = field(default_factory=dict)
    sub_collection_id: str | None = None
    estimated_value: float = 0
    photos: list[Photo] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def storage_used_mb(self) -> float:
        return sum(photo.size_mb for photo in self.photos)

    def to_document(self) -> dict[str, Any]:
        return {
            "collectionId": self.collection_id,
            "subCollectionId": self.sub_collection_id,
            "templateId": self.template_id,
            "attributes": serialize_attributes(self.attributes),
            "estimatedValue": self.estimated_value,
            "photos": [photo.to_document() for photo in self.photos],
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Item":
        return cls(
            id=doc["id"],
            collection_id=doc.get("collectionId") or "",
            sub_collection_id=doc.get("subCollectionId"),
            template_id=doc.get("templateId") or "general",
            attributes=dict(doc.get("attributes") or {}),
            estimated_value=doc.get("estimatedValue") or 0,
            photos=[Photo.from_document(p) for p in doc.get("photos") or []],
            created_at=parse_datetime(doc.get("createdAt")),
            updated_at=parse_datetime(doc.get("updatedAt")),
        )


def serialize_attributes(attributes: dict[str, Any]) -> dict[str, Any]:
    """Convert coerced attributes to JSON-native values (dates become ISO strings)."""
    serialized: dict[str, Any] = {}
    for name, value in attributes.items():
        if isinstance(value, date):
            serialized[name] = value.isoformat()
        elif isinstance(value, tuple):
            serialized[name] = list(value)
        else:
            serialized[name] = value
    return serialized
