"""Persistence layer: database session management and the document store."""

from trove.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    close_database,
    get_db_manager,
    get_db_session,
    init_database,
)
from trove.infrastructure.persistence.document_store import (
    Append,
    DocumentNotFoundError,
    DocumentStore,
    Increment,
    SQLAlchemyDocumentStore,
)

__all__ = [
    "Append",
    "Base",
    "DatabaseManager",
    "DocumentNotFoundError",
    "DocumentStore",
    "Increment",
    "SQLAlchemyDocumentStore",
    "close_database",
    "get_db_manager",
    "get_db_session",
    "init_database",
]
