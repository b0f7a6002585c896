"""Profile and tier API routes.

Provides endpoints for initializing the caller's profile, reading the caller's
tier with limits and usage, and listing the tier catalog.
"""

from fastapi import APIRouter, Response, status

from trove.core.logging import get_logger
from trove.domain.entities.tier import TIER_PROFILES
from trove.infrastructure.api.dependencies import (
    AuthenticatedUser,
    Catalog,
    DBSession,
    Subscriptions,
)
from trove.infrastructure.api.schemas import (
    InitProfileRequest,
    ProfileResponse,
    TierInfoResponse,
    TierResponse,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/me/profile",
    response_model=ProfileResponse,
    responses={
        200: {"description": "Profile already existed"},
        201: {"description": "Profile created"},
    },
)
async def init_profile(
    current_user: AuthenticatedUser,
    subscriptions: Subscriptions,
    session: DBSession,
    response: Response,
    request: InitProfileRequest | None = None,
) -> ProfileResponse:
    """Initialize the caller's profile on the default tier.

    Calling it again returns the existing profile unchanged.
    """
    request = request or InitProfileRequest()
    profile, created = await subscriptions.ensure_profile(
        current_user.user_id,
        email=request.email or current_user.email,
        display_name=request.display_name,
    )
    await session.commit()

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ProfileResponse.from_entity(profile)


@router.get(
    "/me/profile",
    response_model=ProfileResponse,
    responses={404: {"description": "Profile not initialized"}},
)
async def get_profile(
    current_user: AuthenticatedUser,
    subscriptions: Subscriptions,
) -> ProfileResponse:
    profile = await subscriptions.get_profile(current_user.user_id)
    return ProfileResponse.from_entity(profile)


@router.get(
    "/me/tier",
    response_model=TierInfoResponse,
    responses={404: {"description": "Profile not initialized"}},
)
async def get_tier_info(current_user: AuthenticatedUser, catalog: Catalog) -> TierInfoResponse:
    """Get the caller's tier, its limits and current usage."""
    info = await catalog.get_user_tier_info(current_user.user_id)
    return TierInfoResponse.from_info(info)


@router.get("/tiers", response_model=list[TierResponse])
async def list_tiers() -> list[TierResponse]:
    """List the tier catalog. Does not require authentication."""
    return [TierResponse.from_profile(tier) for tier in TIER_PROFILES.values()]
