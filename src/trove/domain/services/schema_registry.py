"""Schema registry for built-in and custom templates.

Resolves template ids to field specifications, and owns the lifecycle of
custom templates: create, duplicate, update, soft delete and usage tracking.
"""

import uuid
from dataclasses import dataclass
from typing import Any

from trove.core.logging import get_logger
from trove.domain.entities.template import Template, TemplateState
from trove.domain.entities.timestamps import isoformat, utcnow
from trove.domain.exceptions import NotFoundError, UnauthorizedError, ValidationError
from trove.domain.services.builtin_templates import (
    BUILTIN_TEMPLATES,
    DEFAULT_TEMPLATE_ID,
    is_builtin,
)
from trove.domain.services.template_validator import TemplateValidator
from trove.infrastructure.persistence.document_store import DocumentStore, Increment
from trove.infrastructure.persistence.paths import CUSTOM_TEMPLATES

logger = get_logger(__name__)

COPY_SUFFIX = " (Copy)"


@dataclass
class TemplateAnalytics:
    """Usage summary of the active custom templates."""

    total_templates: int = 0
    most_used_template_id: str | None = None
    most_used_template: str | None = None
    most_used_count: int = 0


class SchemaRegistry:
    """Registry of templates.

    Built-ins come from the static catalog; custom templates are documents
    under ``customTemplates``. Soft-deleted templates are filtered here so
    callers never see them unless they ask.
    """

    def __init__(self, store: DocumentStore) -> None:
        """Initialize the registry.

        Args:
            store: Document store holding custom templates.
        """
        self.store = store

    async def get(self, template_id: str, include_inactive: bool = False) -> Template | None:
        """Look up a template without raising.

        Args:
            template_id: Built-in or custom template id.
            include_inactive: Whether soft-deleted custom templates are returned.

        Returns:
            The template, or None if unknown (or soft-deleted).
        """
        if is_builtin(template_id):
            return BUILTIN_TEMPLATES[template_id]

        doc = await self.store.get(CUSTOM_TEMPLATES, template_id)
        if doc is None:
            return None
        template = Template.from_document(doc)
        if not template.is_active and not include_inactive:
            return None
        return template

    async def resolve(self, template_id: str) -> Template:
        """Resolve a template id to an active template.

        Raises:
            NotFoundError: If the id matches no built-in and no active custom template.
        """
        template = await self.get(template_id)
        if template is None:
            raise NotFoundError(f"Template '{template_id}' not found")
        return template

    async def resolve_or_default(self, template_id: str | None) -> Template:
        """Resolve a template, falling back to the default built-in.

        Only for rendering call sites; writes always go through ``resolve``.
        """
        if template_id:
            template = await self.get(template_id)
            if template is not None:
                return template
            logger.warning(
                "Template not found, using default",
                template_id=template_id,
                default_template_id=DEFAULT_TEMPLATE_ID,
            )
        return BUILTIN_TEMPLATES[DEFAULT_TEMPLATE_ID]

    async def list_all(self, include_inactive: bool = False) -> list[Template]:
        """List built-ins followed by custom templates, most used first."""
        docs = await self.store.query(CUSTOM_TEMPLATES, order_by="-usageCount")
        custom = [Template.from_document(doc) for doc in docs]
        if not include_inactive:
            custom = [template for template in custom if template.is_active]
        return list(BUILTIN_TEMPLATES.values()) + custom

    async def create(self, definition: dict[str, Any], created_by: str | None = None) -> Template:
        """Validate and store a new custom template.

        Args:
            definition: Raw template definition.
            created_by: Id of the authoring user.

        Returns:
            The stored template.

        Raises:
            ValidationError: Listing every rule the definition breaks.
        """
        errors = TemplateValidator.validate(definition)
        if errors:
            raise ValidationError(errors)

        now = utcnow()
        template = Template(
            id=uuid.uuid4().hex,
            name=definition["name"].strip(),
            description=definition["description"].strip(),
            icon=(definition.get("icon") or "").strip(),
            fields=TemplateValidator.build_fields(definition),
            usage_count=0,
            state=TemplateState.ACTIVE,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(CUSTOM_TEMPLATES, template.to_document(), template.id)

        logger.info(
            "Template created",
            template_id=template.id,
            template_name=template.name,
            field_count=len(template.fields),
            created_by=created_by,
        )
        return template

    async def update(self, template_id: str, definition: dict[str, Any]) -> Template:
        """Re-validate a definition and apply it to an existing custom template.

        Usage count, id, creator and creation time are left untouched.

        Raises:
            UnauthorizedError: If the template is a built-in.
            NotFoundError: If the template does not exist or was deleted.
            ValidationError: If the definition is invalid.
        """
        if is_builtin(template_id):
            raise UnauthorizedError(f"Built-in template '{template_id}' cannot be modified")

        template = await self.resolve(template_id)

        errors = TemplateValidator.validate(definition)
        if errors:
            raise ValidationError(errors)

        template.name = definition["name"].strip()
        template.description = definition["description"].strip()
        template.icon = (definition.get("icon") or "").strip()
        template.fields = TemplateValidator.build_fields(definition)
        template.updated_at = utcnow()

        await self.store.update(
            CUSTOM_TEMPLATES,
            template_id,
            {
                "name": template.name,
                "description": template.description,
                "icon": template.icon,
                "fields": [spec.to_document() for spec in template.fields],
                "updatedAt": isoformat(template.updated_at),
            },
        )

        logger.info("Template updated", template_id=template_id, field_count=len(template.fields))
        return template

    async def soft_delete(self, template_id: str) -> Template:
        """Mark a custom template as deleted. Deleting twice is a no-op.

        Raises:
            UnauthorizedError: If the template is a built-in.
            NotFoundError: If the template never existed.
        """
        if is_builtin(template_id):
            raise UnauthorizedError(f"Built-in template '{template_id}' cannot be deleted")

        template = await self.get(template_id, include_inactive=True)
        if template is None:
            raise NotFoundError(f"Template '{template_id}' not found")
        if not template.is_active:
            return template

        template.state = TemplateState.DELETED
        template.deleted_at = utcnow()
        await self.store.update(
            CUSTOM_TEMPLATES,
            template_id,
            {"state": template.state.value, "deletedAt": isoformat(template.deleted_at)},
        )

        logger.info("Template soft-deleted", template_id=template_id)
        return template

    async def record_usage(self, template_id: str) -> None:
        """Count one more item created with a custom template; built-ins are not tracked."""
        if is_builtin(template_id):
            return
        await self.store.update(CUSTOM_TEMPLATES, template_id, {"usageCount": Increment(1)})

    async def duplicate(self, template_id: str, created_by: str | None = None) -> Template:
        """Store a copy of an active template as a new custom template.

        The copy is named ``"<name> (Copy)"`` and starts with no usage. Built-ins
        may be duplicated too, which is how users start from a shipped template.

        Raises:
            NotFoundError: If the source is unknown or was deleted.
        """
        source = await self.resolve(template_id)

        base = source.name[: TemplateValidator.MAX_NAME_LENGTH - len(COPY_SUFFIX)]
        now = utcnow()
        template = Template(
            id=uuid.uuid4().hex,
            name=f"{base}{COPY_SUFFIX}",
            description=source.description,
            icon=source.icon,
            fields=list(source.fields),
            usage_count=0,
            state=TemplateState.ACTIVE,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(CUSTOM_TEMPLATES, template.to_document(), template.id)

        logger.info(
            "Template duplicated",
            template_id=template.id,
            source_template_id=template_id,
            created_by=created_by,
        )
        return template

    async def analytics(self) -> TemplateAnalytics:
        """Count the active custom templates and find the most used one.

        A template only counts as most used once it has been used; ties go to
        the template created first.
        """
        docs = await self.store.query(CUSTOM_TEMPLATES)
        active = [t for t in (Template.from_document(doc) for doc in docs) if t.is_active]

        analytics = TemplateAnalytics(total_templates=len(active))
        for template in active:
            if template.usage_count > analytics.most_used_count:
                analytics.most_used_template_id = template.id
                analytics.most_used_template = template.name
                analytics.most_used_count = template.usage_count
        return analytics
