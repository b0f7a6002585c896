"""Usage counters and admission decisions."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class QuotaOperation(str, Enum):
    """Resource-creating operations subject to admission control."""

    CREATE_COLLECTION = "create_collection"
    ADD_ITEM = "add_item"
    UPLOAD_PHOTO = "upload_photo"
    CREATE_TEMPLATE = "create_template"


@dataclass
class UsageCounters:
    """Live resource counts of one user.

    Only the quota ledger writes these.
    """

    collections: int = 0
    total_items: int = 0
    storage_used_mb: float = 0.0

    def to_document(self) -> dict[str, Any]:
        return {
            "collections": self.collections,
            "totalItems": self.total_items,
            "storageUsedMB": self.storage_used_mb,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> "UsageCounters":
        data = data or {}
        return cls(
            collections=int(data.get("collections") or 0),
            total_items=int(data.get("totalItems") or 0),
            # Profiles created by the web client used "storageUsed"
            storage_used_mb=float(data.get("storageUsedMB", data.get("storageUsed")) or 0),
        )


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of an admission check.

    Attributes:
        admitted: Whether the operation may proceed.
        operation: The operation that was checked.
        limit_name: The tier limit that decided a denial.
        limit: Value of that limit.
        current: Usage the limit was compared against.
        reason: Short explanation of a denial.
    """

    admitted: bool
    operation: QuotaOperation
    limit_name: str | None = None
    limit: Any = None
    current: Any = None
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.admitted
