"""Domain entities for Trove.

Entities are plain dataclasses describing the catalog's core concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from trove.domain.entities.collection import Collection
from trove.domain.entities.field_spec import FieldSpec, FieldType, parse_field_type
from trove.domain.entities.item import Item, Photo
from trove.domain.entities.template import Template, TemplateState
from trove.domain.entities.tier import (
    TIER_PROFILES,
    UNLIMITED,
    TierProfile,
    get_tier_profile,
    is_unlimited,
)
from trove.domain.entities.usage import AdmissionDecision, QuotaOperation, UsageCounters
from trove.domain.entities.user import UserProfile

__all__ = [
    "AdmissionDecision",
    "Collection",
    "FieldSpec",
    "FieldType",
    "Item",
    "Photo",
    "QuotaOperation",
    "TIER_PROFILES",
    "Template",
    "TemplateState",
    "TierProfile",
    "UNLIMITED",
    "UsageCounters",
    "UserProfile",
    "get_tier_profile",
    "is_unlimited",
    "parse_field_type",
]
