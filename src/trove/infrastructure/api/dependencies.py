"""FastAPI dependencies for authentication and services.

Provides dependencies for extracting the caller from a bearer token and for
building request-scoped services over the request's database session.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from trove.core.config import get_settings
from trove.core.logging import bind_user_id, get_logger
from trove.domain.services import CatalogService, SubscriptionService
from trove.infrastructure.auth import InvalidTokenError, TokenExpiredError, jwt_service
from trove.infrastructure.persistence.database import get_db_session
from trove.infrastructure.persistence.document_store import DocumentStore, SQLAlchemyDocumentStore

logger = get_logger(__name__)


@dataclass
class CurrentUser:
    """Represents the current authenticated user context.

    Extracted from a valid JWT access token.
    """

    user_id: str
    email: str | None = None


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (e.g., "Bearer <token>").

    Returns:
        CurrentUser: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if authorization is None:
        logger.info("Authentication failed: missing Authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.info("Authentication failed: invalid Authorization header format")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = jwt_service.validate_access_token(parts[1])
    except TokenExpiredError:
        logger.info("Authentication failed: token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidTokenError as e:
        logger.info("Authentication failed: invalid token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id") or payload["sub"]
    bind_user_id(user_id)
    return CurrentUser(user_id=user_id, email=payload.get("email"))


# Type alias for dependency injection
AuthenticatedUser = Annotated[CurrentUser, Depends(get_current_user)]

DBSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_document_store(session: DBSession) -> DocumentStore:
    return SQLAlchemyDocumentStore(session)


Store = Annotated[DocumentStore, Depends(get_document_store)]


def get_catalog_service(store: Store) -> CatalogService:
    return CatalogService(store, max_photo_size_mb=get_settings().max_photo_size_mb)


def get_subscription_service(store: Store) -> SubscriptionService:
    return SubscriptionService(store, default_tier=get_settings().default_tier)


Catalog = Annotated[CatalogService, Depends(get_catalog_service)]
Subscriptions = Annotated[SubscriptionService, Depends(get_subscription_service)]
