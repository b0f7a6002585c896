"""Collection entity.

Collections and sub-collections are containers of items. Their ``item_count``
and ``estimated_value`` are derived state maintained incrementally as items
are added and removed, never recomputed on read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from trove.domain.entities.timestamps import isoformat, parse_datetime


@dataclass
class Collection:
    """A collection, or a sub-collection when ``parent_id`` is set.

    Attributes:
        id: Store-generated identifier.
        user_id: Owner.
        name: Display name.
        description: Free text.
        category: Grouping label.
        tags: Free-form labels.
        template_id: Default template for new items.
        parent_id: Owning collection id for sub-collections.
        item_count: Live items directly in this container.
        estimated_value: Sum of the estimated values of those items.
    """

    id: str
    user_id: str
    name: str
    description: str = ""
    category: str = "General"
    tags: list[str] = field(default_factory=list)
    template_id: str = "general"
    parent_id: str | None = None
    item_count: int = 0
    estimated_value: float = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Collection ID is required")
        if not self.name:
            raise ValueError("Collection name is required")

    @property
    def is_sub_collection(self) -> bool:
        return self.parent_id is not None

    def to_document(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
            "templateId": self.template_id,
            "parentId": self.parent_id,
            "itemCount": self.item_count,
            "estimatedValue": self.estimated_value,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Collection":
        return cls(
            id=doc["id"],
            user_id=doc.get("userId") or "",
            name=doc["name"],
            description=doc.get("description") or "",
            category=doc.get("category") or "General",
            tags=list(doc.get("tags") or []),
            template_id=doc.get("templateId") or "general",
            parent_id=doc.get("parentId"),
            item_count=int(doc.get("itemCount") or 0),
            estimated_value=doc.get("estimatedValue") or 0,
            created_at=parse_datetime(doc.get("createdAt")),
            updated_at=parse_datetime(doc.get("updatedAt")),
        )
