"""Collection paths of the document layout.

    users/{uid}
    users/{uid}/collections/{cid}
    users/{uid}/collections/{cid}/subCollections/{sid}
    <container>/items/{iid}
    customTemplates/{tid}
    quotaReservations/{uid}:{token}
    subscriptionEvents/{eid}
"""

USERS = "users"
CUSTOM_TEMPLATES = "customTemplates"
QUOTA_RESERVATIONS = "quotaReservations"
SUBSCRIPTION_EVENTS = "subscriptionEvents"


def collections_path(user_id: str) -> str:
    return f"{USERS}/{user_id}/collections"


def sub_collections_path(user_id: str, collection_id: str) -> str:
    return f"{collections_path(user_id)}/{collection_id}/subCollections"


def container_path(user_id: str, collection_id: str, sub_collection_id: str | None = None) -> tuple[str, str]:
    """Return (path, id) of the document that directly holds items."""
    if sub_collection_id:
        return sub_collections_path(user_id, collection_id), sub_collection_id
    return collections_path(user_id), collection_id


def items_path(user_id: str, collection_id: str, sub_collection_id: str | None = None) -> str:
    path, doc_id = container_path(user_id, collection_id, sub_collection_id)
    return f"{path}/{doc_id}/items"


def reservation_id(user_id: str, token: str) -> str:
    return f"{user_id}:{token}"
