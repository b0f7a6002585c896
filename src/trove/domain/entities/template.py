"""Template entity for item attribute schemas.

Templates describe the attributes items in a collection carry. Built-in
templates ship with the application under fixed ids; custom templates are
authored by users, stored flat in ``customTemplates`` so they can be shared,
and are never physically removed once created.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from trove.domain.entities.field_spec import FieldSpec
from trove.domain.entities.timestamps import isoformat, parse_datetime


class TemplateState(str, Enum):
    """Lifecycle state of a template."""

    ACTIVE = "active"
    DELETED = "deleted"


@dataclass
class Template:
    """A named, ordered set of field definitions.

    Attributes:
        id: Fixed well-known id for built-ins, store-generated for custom templates.
        name: Display name.
        description: Display description.
        icon: Display icon (usually an emoji).
        fields: Ordered field definitions; order drives rendering only.
        is_built_in: True for the shipped catalog.
        usage_count: Items created with this template (custom templates only).
        state: ACTIVE, or DELETED after a soft delete.
        created_by: Id of the authoring user (custom templates only).
    """

    id: str
    name: str
    description: str = ""
    icon: str = ""
    fields: list[FieldSpec] = field(default_factory=list)
    is_built_in: bool = False
    usage_count: int = 0
    state: TemplateState = TemplateState.ACTIVE
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Template ID is required")
        if not self.name:
            raise ValueError("Template name is required")

    @property
    def is_active(self) -> bool:
        return self.state is TemplateState.ACTIVE

    def get_field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def to_document(self) -> dict[str, Any]:
        """Serialize for the document store (built-ins are never stored)."""
        return {
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "fields": [spec.to_document() for spec in self.fields],
            "usageCount": self.usage_count,
            "state": self.state.value,
            "createdBy": self.created_by,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "deletedAt": isoformat(self.deleted_at),
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Template":
        # Templates saved by the first builder kept fields under "attributes"
        raw_fields = doc.get("fields")
        if raw_fields is None:
            raw_fields = doc.get("attributes") or []
        state = doc.get("state")
        if state is None:
            state = TemplateState.ACTIVE if doc.get("isActive", True) else TemplateState.DELETED
        return cls(
            id=doc["id"],
            name=doc["name"],
            description=doc.get("description") or "",
            icon=doc.get("icon") or "",
            fields=[FieldSpec.from_document(f) for f in raw_fields],
            is_built_in=False,
            usage_count=int(doc.get("usageCount") or 0),
            state=TemplateState(state),
            created_by=doc.get("createdBy"),
            created_at=parse_datetime(doc.get("createdAt")),
            updated_at=parse_datetime(doc.get("updatedAt")),
            deleted_at=parse_datetime(doc.get("deletedAt")),
        )
