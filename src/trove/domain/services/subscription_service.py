"""Subscription service for user profiles and tier changes.

Checkout and billing happen with the payment provider; this service only
records the resulting tier on the profile and keeps an audit trail of tier
changes in ``subscriptionEvents``.
"""

from typing import Any, Mapping

from trove.core.logging import get_logger
from trove.domain.entities.tier import TIER_PROFILES, TIER_RANK, TierProfile, get_tier_profile
from trove.domain.entities.timestamps import isoformat, utcnow
from trove.domain.entities.usage import UsageCounters
from trove.domain.entities.user import UserProfile
from trove.domain.exceptions import FieldViolation, NotFoundError, ValidationError
from trove.infrastructure.persistence.document_store import DocumentStore
from trove.infrastructure.persistence.paths import SUBSCRIPTION_EVENTS, USERS

logger = get_logger(__name__)


class SubscriptionService:
    """Service for subscription business logic."""

    def __init__(
        self,
        store: DocumentStore,
        tiers: Mapping[str, TierProfile] = TIER_PROFILES,
        default_tier: str = "free",
    ) -> None:
        self.store = store
        self.tiers = tiers
        self.default_tier = default_tier

    async def get_profile(self, user_id: str) -> UserProfile:
        """Get a user's profile.

        Raises:
            NotFoundError: If the profile was never initialized.
        """
        doc = await self.store.get(USERS, user_id)
        if doc is None:
            raise NotFoundError(f"Profile for user '{user_id}' not found")
        return UserProfile.from_document(doc)

    async def ensure_profile(
        self, user_id: str, email: str | None = None, display_name: str | None = None
    ) -> tuple[UserProfile, bool]:
        """Create a profile on the default tier with zeroed usage, unless one exists.

        Returns:
            Tuple of (profile, created).
        """
        doc = await self.store.get(USERS, user_id)
        if doc is not None:
            return UserProfile.from_document(doc), False

        profile = UserProfile(
            id=user_id,
            tier=self.default_tier,
            usage=UsageCounters(),
            email=email,
            display_name=display_name or (email.split("@")[0] if email else "Collector"),
            created_at=utcnow(),
        )
        await self.store.put(USERS, profile.to_document(), user_id)

        logger.info("User profile initialized", user_id=user_id, tier=profile.tier)
        return profile, True

    async def change_tier(
        self, user_id: str, tier: str, subscription_id: str | None = None
    ) -> UserProfile:
        """Move a user to another tier and log the change.

        Raises:
            ValidationError: If the tier name is unknown.
            NotFoundError: If the user has no profile.
        """
        new_tier = get_tier_profile(tier, self.tiers)
        if new_tier is None:
            raise ValidationError(
                [
                    FieldViolation(
                        field="tier",
                        message=f"Unknown tier '{tier}'. Valid tiers: {', '.join(self.tiers)}",
                        code="invalid_tier",
                    )
                ]
            )

        profile = await self.get_profile(user_id)
        old_tier = profile.tier
        if old_tier == new_tier.name and subscription_id in (None, profile.subscription_id):
            return profile

        profile.tier = new_tier.name
        if subscription_id is not None:
            profile.subscription_id = subscription_id
        now = utcnow()
        await self.store.update(
            USERS,
            user_id,
            {
                "tier": profile.tier,
                "subscriptionId": profile.subscription_id,
                "updatedAt": isoformat(now),
            },
        )

        if old_tier != new_tier.name:
            upgrade = TIER_RANK.get(new_tier.name, 0) > TIER_RANK.get(old_tier, -1)
            await self.store.put(
                SUBSCRIPTION_EVENTS,
                {
                    "userId": user_id,
                    "type": "tier_upgrade" if upgrade else "tier_downgrade",
                    "fromTier": old_tier,
                    "toTier": new_tier.name,
                    "subscriptionId": profile.subscription_id,
                    "timestamp": isoformat(now),
                },
            )
            logger.info(
                "Tier changed",
                user_id=user_id,
                from_tier=old_tier,
                to_tier=new_tier.name,
                upgrade=upgrade,
            )

        return profile

    async def list_events(self, user_id: str) -> list[dict[str, Any]]:
        """Tier change events of a user, oldest first."""
        return await self.store.query(SUBSCRIPTION_EVENTS, filters={"userId": user_id})
