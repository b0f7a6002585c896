"""Collections API routes.

Provides endpoints for the caller's collections, their sub-collections and
the items they hold.
"""

from fastapi import APIRouter, status

from trove.core.logging import get_logger
from trove.infrastructure.api.dependencies import AuthenticatedUser, Catalog, DBSession
from trove.infrastructure.api.schemas import (
    AddPhotoRequest,
    CollectionListResponse,
    CollectionResponse,
    CollectionStatsResponse,
    CreateCollectionRequest,
    CreateItemRequest,
    CreateSubCollectionRequest,
    ItemListResponse,
    ItemResponse,
    UpdateCollectionRequest,
)

logger = get_logger(__name__)

router = APIRouter()

QUOTA_RESPONSES = {403: {"description": "Tier limit reached"}}


@router.get("", response_model=CollectionListResponse)
async def list_collections(current_user: AuthenticatedUser, catalog: Catalog) -> CollectionListResponse:
    collections = await catalog.list_collections(current_user.user_id)
    return CollectionListResponse(
        items=[CollectionResponse.from_entity(c) for c in collections],
        total=len(collections),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CollectionResponse,
    responses=QUOTA_RESPONSES,
)
async def create_collection(
    request: CreateCollectionRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> CollectionResponse:
    collection = await catalog.create_collection(
        current_user.user_id,
        name=request.name,
        description=request.description,
        category=request.category,
        tags=request.tags,
        template_id=request.template_id,
    )
    await session.commit()
    return CollectionResponse.from_entity(collection)


@router.get(
    "/{collection_id}",
    response_model=CollectionResponse,
    responses={404: {"description": "Collection not found"}},
)
async def get_collection(
    collection_id: str, current_user: AuthenticatedUser, catalog: Catalog
) -> CollectionResponse:
    collection = await catalog.get_collection(current_user.user_id, collection_id)
    return CollectionResponse.from_entity(collection)


@router.patch(
    "/{collection_id}",
    response_model=CollectionResponse,
    responses={404: {"description": "Collection not found"}},
)
async def update_collection(
    collection_id: str,
    request: UpdateCollectionRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> CollectionResponse:
    collection = await catalog.update_collection(
        current_user.user_id,
        collection_id,
        name=request.name,
        description=request.description,
        category=request.category,
        tags=request.tags,
    )
    await session.commit()
    return CollectionResponse.from_entity(collection)


@router.delete(
    "/{collection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Collection not found"}},
)
async def delete_collection(
    collection_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> None:
    """Delete a collection together with its sub-collections and items."""
    await catalog.delete_collection(current_user.user_id, collection_id)
    await session.commit()


@router.get("/{collection_id}/stats", response_model=CollectionStatsResponse)
async def get_collection_stats(
    collection_id: str, current_user: AuthenticatedUser, catalog: Catalog
) -> CollectionStatsResponse:
    stats = await catalog.get_collection_stats(current_user.user_id, collection_id)
    return CollectionStatsResponse.from_stats(stats)


# Sub-collections


@router.get("/{collection_id}/subcollections", response_model=CollectionListResponse)
async def list_sub_collections(
    collection_id: str, current_user: AuthenticatedUser, catalog: Catalog
) -> CollectionListResponse:
    subs = await catalog.list_sub_collections(current_user.user_id, collection_id)
    return CollectionListResponse(
        items=[CollectionResponse.from_entity(s) for s in subs],
        total=len(subs),
    )


@router.post(
    "/{collection_id}/subcollections",
    status_code=status.HTTP_201_CREATED,
    response_model=CollectionResponse,
)
async def create_sub_collection(
    collection_id: str,
    request: CreateSubCollectionRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> CollectionResponse:
    sub = await catalog.create_sub_collection(
        current_user.user_id, collection_id, request.name, request.description
    )
    await session.commit()
    return CollectionResponse.from_entity(sub)


@router.delete(
    "/{collection_id}/subcollections/{sub_collection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_sub_collection(
    collection_id: str,
    sub_collection_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> None:
    await catalog.delete_sub_collection(current_user.user_id, collection_id, sub_collection_id)
    await session.commit()


# Items


@router.get("/{collection_id}/items", response_model=ItemListResponse)
async def list_items(
    collection_id: str, current_user: AuthenticatedUser, catalog: Catalog
) -> ItemListResponse:
    items = await catalog.list_items(current_user.user_id, collection_id)
    return ItemListResponse(items=[ItemResponse.from_entity(i) for i in items], total=len(items))


@router.post(
    "/{collection_id}/items",
    status_code=status.HTTP_201_CREATED,
    response_model=ItemResponse,
    responses={
        400: {"description": "Attributes do not match the template"},
        **QUOTA_RESPONSES,
    },
)
async def create_item(
    collection_id: str,
    request: CreateItemRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> ItemResponse:
    item = await catalog.create_item(
        current_user.user_id,
        collection_id,
        request.template_id,
        request.attributes,
        estimated_value=request.estimated_value,
    )
    await session.commit()
    return ItemResponse.from_entity(item)


@router.delete("/{collection_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    collection_id: str,
    item_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> None:
    await catalog.delete_item(current_user.user_id, collection_id, item_id)
    await session.commit()


@router.post(
    "/{collection_id}/items/{item_id}/photos",
    status_code=status.HTTP_201_CREATED,
    response_model=ItemResponse,
    responses=QUOTA_RESPONSES,
)
async def add_photo(
    collection_id: str,
    item_id: str,
    request: AddPhotoRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> ItemResponse:
    """Register a photo already uploaded to the blob store."""
    item = await catalog.add_photo(
        current_user.user_id,
        collection_id,
        item_id,
        file_name=request.file_name,
        url=request.url,
        size_mb=request.size_mb,
    )
    await session.commit()
    return ItemResponse.from_entity(item)


@router.get(
    "/{collection_id}/subcollections/{sub_collection_id}/items",
    response_model=ItemListResponse,
)
async def list_sub_collection_items(
    collection_id: str,
    sub_collection_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
) -> ItemListResponse:
    items = await catalog.list_items(current_user.user_id, collection_id, sub_collection_id)
    return ItemListResponse(items=[ItemResponse.from_entity(i) for i in items], total=len(items))


@router.post(
    "/{collection_id}/subcollections/{sub_collection_id}/items",
    status_code=status.HTTP_201_CREATED,
    response_model=ItemResponse,
    responses={
        400: {"description": "Attributes do not match the template"},
        **QUOTA_RESPONSES,
    },
)
async def create_sub_collection_item(
    collection_id: str,
    sub_collection_id: str,
    request: CreateItemRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> ItemResponse:
    item = await catalog.create_item(
        current_user.user_id,
        collection_id,
        request.template_id,
        request.attributes,
        sub_collection_id=sub_collection_id,
        estimated_value=request.estimated_value,
    )
    await session.commit()
    return ItemResponse.from_entity(item)


@router.delete(
    "/{collection_id}/subcollections/{sub_collection_id}/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_sub_collection_item(
    collection_id: str,
    sub_collection_id: str,
    item_id: str,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> None:
    await catalog.delete_item(
        current_user.user_id, collection_id, item_id, sub_collection_id=sub_collection_id
    )
    await session.commit()


@router.post(
    "/{collection_id}/subcollections/{sub_collection_id}/items/{item_id}/photos",
    status_code=status.HTTP_201_CREATED,
    response_model=ItemResponse,
    responses=QUOTA_RESPONSES,
)
async def add_sub_collection_photo(
    collection_id: str,
    sub_collection_id: str,
    item_id: str,
    request: AddPhotoRequest,
    current_user: AuthenticatedUser,
    catalog: Catalog,
    session: DBSession,
) -> ItemResponse:
    item = await catalog.add_photo(
        current_user.user_id,
        collection_id,
        item_id,
        file_name=request.file_name,
        url=request.url,
        size_mb=request.size_mb,
        sub_collection_id=sub_collection_id,
    )
    await session.commit()
    return ItemResponse.from_entity(item)
