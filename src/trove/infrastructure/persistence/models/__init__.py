"""SQLAlchemy ORM models."""

from trove.infrastructure.persistence.models.document import DocumentModel

__all__ = ["DocumentModel"]
