"""Subscription tiers and their limits.

Tier profiles are immutable, process-wide configuration. A numeric limit of
``UNLIMITED`` means the dimension is not capped.
"""

from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Mapping

UNLIMITED = -1


def is_unlimited(limit: int | float) -> bool:
    return limit == UNLIMITED


@dataclass(frozen=True)
class TierProfile:
    """Limits and capabilities of one subscription tier.

    Attributes:
        name: Machine name stored on user profiles.
        display_name: Human-readable name.
        max_collections: Top-level collections a user may own.
        max_items_per_collection: Items directly inside one collection or sub-collection.
        max_total_items: Items across all of a user's containers.
        max_photos_per_item: Photos per item (informational).
        max_storage_mb: Total photo storage in megabytes.
        can_create_templates: Whether the user may author custom templates.
        can_use_custom_templates: Whether the user may create items with custom templates.
        monthly_price: Price in USD.
    """

    name: str
    display_name: str
    max_collections: int
    max_items_per_collection: int
    max_total_items: int
    max_photos_per_item: int
    max_storage_mb: float
    can_create_templates: bool
    can_use_custom_templates: bool
    monthly_price: float = 0.0

    def limits(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("name")
        data.pop("display_name")
        data.pop("monthly_price")
        return data


FREE = TierProfile(
    name="free",
    display_name="Free",
    max_collections=3,
    max_items_per_collection=50,
    max_total_items=150,
    max_photos_per_item=5,
    max_storage_mb=100,
    can_create_templates=False,
    can_use_custom_templates=False,
    monthly_price=0.0,
)

PRO = TierProfile(
    name="pro",
    display_name="Pro",
    max_collections=25,
    max_items_per_collection=1000,
    max_total_items=25000,
    max_photos_per_item=20,
    max_storage_mb=2048,
    can_create_templates=True,
    can_use_custom_templates=True,
    monthly_price=9.99,
)

ENTERPRISE = TierProfile(
    name="enterprise",
    display_name="Enterprise",
    max_collections=UNLIMITED,
    max_items_per_collection=UNLIMITED,
    max_total_items=UNLIMITED,
    max_photos_per_item=UNLIMITED,
    max_storage_mb=51200,
    can_create_templates=True,
    can_use_custom_templates=True,
    monthly_price=29.99,
)

TIER_PROFILES: Mapping[str, TierProfile] = MappingProxyType(
    {tier.name: tier for tier in (FREE, PRO, ENTERPRISE)}
)

# Older profiles were written with the "patron" tier name
TIER_ALIASES: Mapping[str, str] = MappingProxyType({"patron": "enterprise"})

# Tier order used to tell upgrades from downgrades
TIER_RANK: Mapping[str, int] = MappingProxyType({"free": 0, "pro": 1, "enterprise": 2})


def get_tier_profile(
    name: str | None, tiers: Mapping[str, TierProfile] = TIER_PROFILES
) -> TierProfile | None:
    """Look up a tier by name, honoring aliases. Returns None if unknown."""
    if not name:
        return None
    key = name.strip().lower()
    key = TIER_ALIASES.get(key, key)
    return tiers.get(key)
