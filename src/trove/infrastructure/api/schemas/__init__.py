"""API Schemas for request/response validation."""

from trove.infrastructure.api.schemas.catalog_schemas import (
    AddPhotoRequest,
    CollectionListResponse,
    CollectionResponse,
    CollectionStatsResponse,
    CreateCollectionRequest,
    CreateItemRequest,
    CreateSubCollectionRequest,
    ItemListResponse,
    ItemResponse,
    PhotoResponse,
    UpdateCollectionRequest,
)
from trove.infrastructure.api.schemas.template_schemas import (
    FieldDefinition,
    FieldResponse,
    FormFieldResponse,
    TemplateAnalyticsResponse,
    TemplateFormResponse,
    TemplateListResponse,
    TemplateRequest,
    TemplateResponse,
)
from trove.infrastructure.api.schemas.tier_schemas import (
    InitProfileRequest,
    ProfileResponse,
    TierInfoResponse,
    TierLimitsResponse,
    TierResponse,
    UsageResponse,
)

__all__ = [
    "AddPhotoRequest",
    "CollectionListResponse",
    "CollectionResponse",
    "CollectionStatsResponse",
    "CreateCollectionRequest",
    "CreateItemRequest",
    "CreateSubCollectionRequest",
    "FieldDefinition",
    "FieldResponse",
    "FormFieldResponse",
    "InitProfileRequest",
    "ItemListResponse",
    "ItemResponse",
    "PhotoResponse",
    "ProfileResponse",
    "TemplateAnalyticsResponse",
    "TemplateFormResponse",
    "TemplateListResponse",
    "TemplateRequest",
    "TemplateResponse",
    "TierInfoResponse",
    "TierLimitsResponse",
    "TierResponse",
    "UpdateCollectionRequest",
    "UsageResponse",
]
