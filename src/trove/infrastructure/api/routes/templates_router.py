"""Templates API routes.

Provides endpoints for listing, authoring and resolving item templates.
"""

from fastapi import APIRouter, Query, status

from trove.core.logging import get_logger
from trove.infrastructure.api.dependencies import AuthenticatedUser, Catalog, DBSession
from trove.infrastructure.api.schemas import (
    TemplateAnalyticsResponse,
    TemplateFormResponse,
    TemplateListResponse,
    TemplateRequest,
    TemplateResponse,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    current_user: AuthenticatedUser,
    catalog: Catalog,
    include_inactive: bool = Query(default=False, description="Include soft-deleted templates"),
) -> TemplateListResponse:
    """List built-in templates followed by custom templates, most used first."""
    templates = await catalog.list_templates(include_inactive=include_inactive)
    return TemplateListResponse(
        items=[TemplateResponse.from_entity(t) for t in templates],
        total=len(templates),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=TemplateResponse,
    responses={
        400: {"description": "Invalid template definition"},
        403: {"description": "Tier cannot create templates"},
    },
)
async def create_template(
    request: TemplateRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> TemplateResponse:
    template = await catalog.create_template(current_user.user_id, request.to_definition())
    await session.commit()
    return TemplateResponse.from_entity(template)


@router.get("/analytics", response_model=TemplateAnalyticsResponse)
async def get_template_analytics(
    current_user: AuthenticatedUser, catalog: Catalog
) -> TemplateAnalyticsResponse:
    """Count the active custom templates and name the most used one."""
    analytics = await catalog.get_template_analytics()
    return TemplateAnalyticsResponse.from_analytics(analytics)


@router.get(
    "/{template_id}",
    response_model=TemplateResponse,
    responses={404: {"description": "Template not found"}},
)
async def get_template(
    template_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
) -> TemplateResponse:
    template = await catalog.resolve_template(template_id)
    return TemplateResponse.from_entity(template)


@router.get("/{template_id}/form", response_model=TemplateFormResponse)
async def get_template_form(
    template_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
) -> TemplateFormResponse:
    """Resolve a template for form rendering.

    Unknown or deleted templates fall back to the default template; the
    response flags the fallback.
    """
    template = await catalog.registry.resolve_or_default(template_id)
    return TemplateFormResponse.from_entity(template_id, template)


@router.put(
    "/{template_id}",
    response_model=TemplateResponse,
    responses={
        400: {"description": "Invalid template definition"},
        403: {"description": "Built-in or not owned by the caller"},
        404: {"description": "Template not found"},
    },
)
async def update_template(
    template_id: str,
    request: TemplateRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> TemplateResponse:
    template = await catalog.update_template(
        current_user.user_id, template_id, request.to_definition()
    )
    await session.commit()
    return TemplateResponse.from_entity(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Built-in or not owned by the caller"},
        404: {"description": "Template not found"},
    },
)
async def delete_template(
    template_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> None:
    """Soft-delete a template. Templates are never physically removed."""
    await catalog.delete_template(current_user.user_id, template_id)
    await session.commit()


@router.post(
    "/{template_id}/duplicate",
    status_code=status.HTTP_201_CREATED,
    response_model=TemplateResponse,
    responses={
        403: {"description": "Tier cannot create templates"},
        404: {"description": "Template not found"},
    },
)
async def duplicate_template(
    template_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> TemplateResponse:
    """Copy a built-in or custom template into a new custom template."""
    template = await catalog.duplicate_template(current_user.user_id, template_id)
    await session.commit()
    return TemplateResponse.from_entity(template)
