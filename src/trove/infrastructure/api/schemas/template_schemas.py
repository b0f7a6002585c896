"""Pydantic schemas for template endpoints.

Request models only check shape. Template rules are checked by
``TemplateValidator``, which reports every violation in one response.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from trove.domain.entities.template import Template
from trove.domain.services import TemplateAnalytics


class FieldDefinition(BaseModel):
    """Definition of a single attribute in a template."""

    name: str = Field(default="", description="Attribute name, unique within the template")
    type: str = Field(
        default="",
        description="Attribute type: text, paragraph, number, currency, date, boolean, select, tags, url",
    )
    required: bool = Field(default=False, description="Whether items must carry a value")
    options: list[str] = Field(default_factory=list, description="Allowed values (select only)")
    description: str = Field(default="", description="Help text shown next to the input")


class TemplateRequest(BaseModel):
    """Request body for creating or updating a custom template."""

    name: str = Field(default="", description="Template name")
    description: str = Field(default="", description="Template description")
    icon: str = Field(default="", description="Display icon")
    fields: list[FieldDefinition] = Field(default_factory=list, description="Attribute definitions")

    def to_definition(self) -> dict[str, Any]:
        return self.model_dump()


class FieldResponse(BaseModel):
    """Attribute definition in template responses."""

    name: str
    type: str
    required: bool = False
    options: list[str] = Field(default_factory=list)
    description: str = ""


class TemplateResponse(BaseModel):
    """Response for a single template."""

    id: str
    name: str
    description: str
    icon: str
    fields: list[FieldResponse]
    is_built_in: bool
    is_active: bool
    usage_count: int
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, template: Template) -> "TemplateResponse":
        return cls(
            id=template.id,
            name=template.name,
            description=template.description,
            icon=template.icon,
            fields=[FieldResponse(**spec.to_document()) for spec in template.fields],
            is_built_in=template.is_built_in,
            is_active=template.is_active,
            usage_count=template.usage_count,
            created_by=template.created_by,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )


class TemplateListResponse(BaseModel):
    """Response for listing templates."""

    items: list[TemplateResponse]
    total: int


class TemplateAnalyticsResponse(BaseModel):
    """Usage summary of the active custom templates."""

    total_templates: int
    most_used_template_id: str | None = None
    most_used_template: str | None = None
    most_used_count: int = 0

    @classmethod
    def from_analytics(cls, analytics: TemplateAnalytics) -> "TemplateAnalyticsResponse":
        return cls(
            total_templates=analytics.total_templates,
            most_used_template_id=analytics.most_used_template_id,
            most_used_template=analytics.most_used_template,
            most_used_count=analytics.most_used_count,
        )


class FormFieldResponse(FieldResponse):
    """Attribute definition prepared for rendering an input."""

    input: str = Field(..., description="Suggested input widget")


# Input widget per attribute type
FORM_INPUTS: dict[str, str] = {
    "text": "text",
    "paragraph": "textarea",
    "number": "number",
    "currency": "currency",
    "date": "date",
    "boolean": "checkbox",
    "select": "select",
    "tags": "tags",
    "url": "url",
}


class TemplateFormResponse(BaseModel):
    """Template resolved for form rendering.

    ``fallback`` is true when the requested template could not be resolved
    and the default template is returned instead.
    """

    requested_id: str
    template_id: str
    fallback: bool
    name: str
    icon: str
    fields: list[FormFieldResponse]

    @classmethod
    def from_entity(cls, requested_id: str, template: Template) -> "TemplateFormResponse":
        return cls(
            requested_id=requested_id,
            template_id=template.id,
            fallback=template.id != requested_id,
            name=template.name,
            icon=template.icon,
            fields=[
                FormFieldResponse(**spec.to_document(), input=FORM_INPUTS[spec.type.value])
                for spec in template.fields
            ],
        )
