"""Pydantic schemas for profile and tier endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from trove.domain.entities.tier import TierProfile
from trove.domain.entities.usage import UsageCounters
from trove.domain.entities.user import UserProfile
from trove.domain.services import TierInfo


class InitProfileRequest(BaseModel):
    """Request body for initializing the caller's profile."""

    email: str | None = Field(default=None, description="Contact email")
    display_name: str | None = Field(default=None, max_length=100, description="Name shown in the UI")


class UsageResponse(BaseModel):
    collections: int
    total_items: int
    storage_used_mb: float

    @classmethod
    def from_counters(cls, usage: UsageCounters) -> "UsageResponse":
        return cls(
            collections=usage.collections,
            total_items=usage.total_items,
            storage_used_mb=usage.storage_used_mb,
        )


class ProfileResponse(BaseModel):
    """Response for a user profile."""

    id: str
    email: str | None = None
    display_name: str
    tier: str
    usage: UsageResponse
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, profile: UserProfile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            email=profile.email,
            display_name=profile.display_name,
            tier=profile.tier,
            usage=UsageResponse.from_counters(profile.usage),
            created_at=profile.created_at,
        )


class TierLimitsResponse(BaseModel):
    """Limits of a tier; -1 means unlimited."""

    max_collections: int
    max_items_per_collection: int
    max_total_items: int
    max_photos_per_item: int
    max_storage_mb: float
    can_create_templates: bool
    can_use_custom_templates: bool


class TierResponse(BaseModel):
    """Response for a tier in the catalog."""

    name: str
    display_name: str
    monthly_price: float
    limits: TierLimitsResponse

    @classmethod
    def from_profile(cls, tier: TierProfile) -> "TierResponse":
        return cls(
            name=tier.name,
            display_name=tier.display_name,
            monthly_price=tier.monthly_price,
            limits=TierLimitsResponse(**tier.limits()),
        )


class TierInfoResponse(BaseModel):
    """Response for the caller's tier, limits and usage."""

    tier: str
    display_name: str
    limits: TierLimitsResponse
    usage: UsageResponse

    @classmethod
    def from_info(cls, info: TierInfo) -> "TierInfoResponse":
        return cls(
            tier=info.tier.name,
            display_name=info.tier.display_name,
            limits=TierLimitsResponse(**info.limits),
            usage=UsageResponse.from_counters(info.usage),
        )
