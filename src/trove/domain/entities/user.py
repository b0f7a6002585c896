"""User profile entity.

Identity lives with the external auth provider; Trove only keeps the profile
document that records the user's tier and usage counters.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from trove.domain.entities.timestamps import isoformat, parse_datetime
from trove.domain.entities.usage import UsageCounters


@dataclass
class UserProfile:
    """Profile of an authenticated user.

    Attributes:
        id: User id issued by the auth provider.
        tier: Subscription tier name.
        usage: Live resource counters.
        email: Contact email, if known.
        display_name: Name shown in the UI.
        subscription_id: Payment-provider subscription reference.
        created_at: When the profile was initialized.
    """

    id: str
    tier: str
    usage: UsageCounters = field(default_factory=UsageCounters)
    email: str | None = None
    display_name: str = "Collector"
    subscription_id: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("User ID is required")

    def to_document(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "displayName": self.display_name,
            "tier": self.tier,
            "subscriptionId": self.subscription_id,
            "usage": self.usage.to_document(),
            "createdAt": isoformat(self.created_at),
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "UserProfile":
        return cls(
            id=doc["id"],
            tier=doc.get("tier") or "",
            usage=UsageCounters.from_document(doc.get("usage")),
            email=doc.get("email"),
            display_name=doc.get("displayName") or "Collector",
            subscription_id=doc.get("subscriptionId"),
            created_at=parse_datetime(doc.get("createdAt")),
        )
