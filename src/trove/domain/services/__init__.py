"""Domain services for Trove.

Services contain the catalog's business logic: template validation and
resolution, record coercion, quota accounting and the orchestration around
the document store.
"""

from trove.domain.services.builtin_templates import (
    BUILTIN_TEMPLATES,
    DEFAULT_TEMPLATE_ID,
    is_builtin,
)
from trove.domain.services.catalog_service import (
    CatalogService,
    CollectionStats,
    TierInfo,
)
from trove.domain.services.quota_ledger import QuotaLedger
from trove.domain.services.record_validator import RecordValidator
from trove.domain.services.schema_registry import SchemaRegistry, TemplateAnalytics
from trove.domain.services.subscription_service import SubscriptionService
from trove.domain.services.template_validator import TemplateValidator

__all__ = [
    "BUILTIN_TEMPLATES",
    "CatalogService",
    "CollectionStats",
    "DEFAULT_TEMPLATE_ID",
    "QuotaLedger",
    "RecordValidator",
    "SchemaRegistry",
    "SubscriptionService",
    "TemplateAnalytics",
    "TemplateValidator",
    "TierInfo",
    "is_builtin",
]
