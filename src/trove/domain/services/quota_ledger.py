"""Quota ledger: admission control and usage accounting.

The ledger is the only writer of a user's usage counters and of the item
aggregates kept on collections. Admission is checked before a write and the
counters are reserved after the write succeeded; the two steps are not atomic,
so concurrent requests may overshoot a limit by a small amount.
"""

from typing import Any, Iterable, Mapping

from trove.core.logging import get_logger
from trove.domain.entities.collection import Collection
from trove.domain.entities.item import Item
from trove.domain.entities.tier import TIER_PROFILES, TierProfile, get_tier_profile, is_unlimited
from trove.domain.entities.timestamps import isoformat, utcnow
from trove.domain.entities.usage import AdmissionDecision, QuotaOperation, UsageCounters
from trove.domain.entities.user import UserProfile
from trove.domain.exceptions import QuotaExceededError
from trove.infrastructure.persistence.document_store import DocumentStore, Increment
from trove.infrastructure.persistence.paths import (
    QUOTA_RESERVATIONS,
    USERS,
    collections_path,
    container_path,
    items_path,
    reservation_id,
    sub_collections_path,
)

logger = get_logger(__name__)

# Usage counter touched by each operation; template creation is a capability only
USAGE_KEYS: dict[QuotaOperation, str | None] = {
    QuotaOperation.CREATE_COLLECTION: "usage.collections",
    QuotaOperation.ADD_ITEM: "usage.totalItems",
    QuotaOperation.UPLOAD_PHOTO: "usage.storageUsedMB",
    QuotaOperation.CREATE_TEMPLATE: None,
}


class QuotaLedger:
    """Per-user usage accounting against tier limits."""

    def __init__(self, store: DocumentStore, tiers: Mapping[str, TierProfile] = TIER_PROFILES) -> None:
        """Initialize the ledger.

        Args:
            store: Document store holding user profiles and collections.
            tiers: Tier catalog to evaluate limits against.
        """
        self.store = store
        self.tiers = tiers

    async def _load_profile(self, user_id: str) -> UserProfile | None:
        doc = await self.store.get(USERS, user_id)
        return UserProfile.from_document(doc) if doc is not None else None

    async def evaluate(
        self,
        user_id: str,
        operation: QuotaOperation,
        *,
        collection_id: str | None = None,
        sub_collection_id: str | None = None,
        file_size_mb: float = 0,
    ) -> AdmissionDecision:
        """Decide whether an operation may proceed.

        Args:
            user_id: The acting user.
            operation: The resource-creating operation.
            collection_id: Target collection (ADD_ITEM).
            sub_collection_id: Target sub-collection inside ``collection_id`` (ADD_ITEM).
            file_size_mb: Size of the photo to store (UPLOAD_PHOTO).

        Returns:
            The decision, carrying the deciding limit and usage on denial.
        """
        profile = await self._load_profile(user_id)
        if profile is None:
            return AdmissionDecision(False, operation, reason="User profile not found")

        tier = get_tier_profile(profile.tier, self.tiers)
        if tier is None:
            return AdmissionDecision(
                False, operation, limit_name="tier", current=profile.tier, reason="Unknown tier"
            )

        usage = profile.usage

        if operation is QuotaOperation.CREATE_COLLECTION:
            return self._compare(
                operation, "max_collections", tier.max_collections, usage.collections
            )

        if operation is QuotaOperation.ADD_ITEM:
            decision = self._compare(
                operation, "max_total_items", tier.max_total_items, usage.total_items
            )
            if not decision:
                return decision
            if not collection_id:
                return AdmissionDecision(False, operation, reason="No target collection given")
            path, doc_id = container_path(user_id, collection_id, sub_collection_id)
            container = await self.store.get(path, doc_id)
            if container is None:
                return AdmissionDecision(False, operation, reason="Target collection not found")
            return self._compare(
                operation,
                "max_items_per_collection",
                tier.max_items_per_collection,
                int(container.get("itemCount") or 0),
            )

        if operation is QuotaOperation.UPLOAD_PHOTO:
            limit = tier.max_storage_mb
            if is_unlimited(limit) or usage.storage_used_mb + file_size_mb <= limit:
                return AdmissionDecision(True, operation)
            return AdmissionDecision(
                False,
                operation,
                limit_name="max_storage_mb",
                limit=limit,
                current=usage.storage_used_mb,
                reason=f"Storing {file_size_mb} MB would exceed the storage limit",
            )

        if operation is QuotaOperation.CREATE_TEMPLATE:
            if tier.can_create_templates:
                return AdmissionDecision(True, operation)
            return AdmissionDecision(
                False,
                operation,
                limit_name="can_create_templates",
                limit=False,
                current=tier.name,
                reason=f"The {tier.display_name} tier cannot create templates",
            )

        raise ValueError(f"Unsupported operation: {operation}")

    @staticmethod
    def _compare(operation: QuotaOperation, limit_name: str, limit: int, current: int) -> AdmissionDecision:
        if is_unlimited(limit) or current < limit:
            return AdmissionDecision(True, operation)
        return AdmissionDecision(
            False,
            operation,
            limit_name=limit_name,
            limit=limit,
            current=current,
            reason=f"{limit_name} reached",
        )

    async def check_admission(self, user_id: str, operation: QuotaOperation, **context: Any) -> bool:
        """Whether an operation may proceed; see ``evaluate`` for the context keywords."""
        return bool(await self.evaluate(user_id, operation, **context))

    async def require_admission(self, user_id: str, operation: QuotaOperation, **context: Any) -> None:
        """Raise QuotaExceededError unless the operation is admitted."""
        decision = await self.evaluate(user_id, operation, **context)
        if not decision:
            logger.info(
                "Admission denied",
                user_id=user_id,
                operation=operation.value,
                limit_name=decision.limit_name,
                limit=decision.limit,
                current=decision.current,
            )
            raise QuotaExceededError(
                operation=operation.value,
                limit_name=decision.limit_name or "profile",
                limit=decision.limit,
                current=decision.current,
                message=decision.reason,
            )

    async def reserve(
        self,
        user_id: str,
        operation: QuotaOperation,
        delta: int | float = 1,
        *,
        token: str | None = None,
        collection_id: str | None = None,
        sub_collection_id: str | None = None,
        estimated_value: float = 0,
    ) -> bool:
        """Account for a resource whose write already succeeded.

        Args:
            user_id: Owner of the resource.
            operation: The operation that created it.
            delta: Amount to add (items, collections or megabytes).
            token: Write-success token; a token already applied is skipped.
            collection_id: Container whose item aggregates to bump (ADD_ITEM).
            sub_collection_id: Sub-collection container (ADD_ITEM).
            estimated_value: Value to add to the container aggregate (ADD_ITEM).

        Returns:
            False if the token had already been applied, True otherwise.
        """
        if delta < 0:
            raise ValueError("delta must not be negative")

        if token is not None:
            existing = await self.store.get(QUOTA_RESERVATIONS, reservation_id(user_id, token))
            if existing is not None:
                logger.debug("Reservation already applied", user_id=user_id, token=token)
                return False

        await self._apply(
            user_id,
            operation,
            delta,
            floor=None,
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
            estimated_value=estimated_value,
        )

        if token is not None:
            await self.store.put(
                QUOTA_RESERVATIONS,
                {
                    "userId": user_id,
                    "token": token,
                    "operation": operation.value,
                    "delta": delta,
                    "createdAt": isoformat(utcnow()),
                },
                reservation_id(user_id, token),
            )

        logger.debug("Usage reserved", user_id=user_id, operation=operation.value, delta=delta)
        return True

    async def release(
        self,
        user_id: str,
        operation: QuotaOperation,
        delta: int | float = 1,
        *,
        collection_id: str | None = None,
        sub_collection_id: str | None = None,
        estimated_value: float = 0,
        tokens: Iterable[str] = (),
    ) -> None:
        """Give back usage after a deletion. Counters never drop below zero.

        ``tokens`` are the write-success tokens of the removed resources; their
        reservation records are deleted along with the usage.
        """
        if delta < 0:
            raise ValueError("delta must not be negative")

        await self._apply(
            user_id,
            operation,
            -delta,
            floor=0,
            collection_id=collection_id,
            sub_collection_id=sub_collection_id,
            estimated_value=-estimated_value,
        )
        await self.store.batch_delete(
            QUOTA_RESERVATIONS, [reservation_id(user_id, token) for token in tokens]
        )
        logger.debug("Usage released", user_id=user_id, operation=operation.value, delta=delta)

    async def _apply(
        self,
        user_id: str,
        operation: QuotaOperation,
        delta: int | float,
        *,
        floor: int | None,
        collection_id: str | None,
        sub_collection_id: str | None,
        estimated_value: float,
    ) -> None:
        key = USAGE_KEYS[operation]
        if key is not None and delta:
            await self.store.update(USERS, user_id, {key: Increment(delta, floor=floor)})

        if operation is QuotaOperation.ADD_ITEM and collection_id:
            path, doc_id = container_path(user_id, collection_id, sub_collection_id)
            await self.store.update(
                path,
                doc_id,
                {
                    "itemCount": Increment(delta, floor=floor),
                    "estimatedValue": Increment(estimated_value, floor=floor),
                },
            )

    async def reconcile(self, user_id: str) -> UsageCounters:
        """Recompute a user's counters and container aggregates from stored data.

        Repairs drift left by failed reservations or interrupted deletions, and
        drops reservation records whose resource no longer exists.
        """
        collections = [
            Collection.from_document(doc)
            for doc in await self.store.query(collections_path(user_id))
        ]

        total_items = 0
        storage_used_mb = 0.0
        live_tokens: set[str] = set()
        for collection in collections:
            live_tokens.add(f"collection:{collection.id}")
            containers: list[tuple[str, str, str | None]] = [
                (collections_path(user_id), collection.id, None)
            ]
            for sub_doc in await self.store.query(sub_collections_path(user_id, collection.id)):
                containers.append(
                    (sub_collections_path(user_id, collection.id), sub_doc["id"], sub_doc["id"])
                )

            for path, doc_id, sub_collection_id in containers:
                items = [
                    Item.from_document(doc)
                    for doc in await self.store.query(
                        items_path(user_id, collection.id, sub_collection_id)
                    )
                ]
                total_items += len(items)
                storage_used_mb += sum(item.storage_used_mb for item in items)
                for item in items:
                    live_tokens.add(f"item:{item.id}")
                    live_tokens.update(f"photo:{photo.id}" for photo in item.photos)
                await self.store.update(
                    path,
                    doc_id,
                    {
                        "itemCount": len(items),
                        "estimatedValue": sum(item.estimated_value for item in items),
                    },
                )

        usage = UsageCounters(
            collections=len(collections),
            total_items=total_items,
            storage_used_mb=round(storage_used_mb, 6),
        )
        await self.store.update(USERS, user_id, {"usage": usage.to_document()})

        reservations = await self.store.query(QUOTA_RESERVATIONS, filters={"userId": user_id})
        stale = [doc["id"] for doc in reservations if _token_of(doc) not in live_tokens]
        await self.store.batch_delete(QUOTA_RESERVATIONS, stale)

        logger.info(
            "Usage reconciled",
            user_id=user_id,
            collections=usage.collections,
            total_items=usage.total_items,
            storage_used_mb=usage.storage_used_mb,
            reservations_dropped=len(stale),
        )
        return usage


def _token_of(reservation: dict[str, Any]) -> str:
    # Records written before the token was stored only carry it in their id
    return reservation.get("token") or reservation["id"].partition(":")[2]
