"""SQLAlchemy model for the documents table.

Every document of the store lives in this one table, addressed by its
collection path (e.g. ``users/u1/collections``) and its id within that path.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from trove.infrastructure.persistence.database import Base


class DocumentModel(Base):
    """SQLAlchemy model for the documents table.

    Attributes:
        seq: Insertion sequence; default ordering of queries.
        path: Collection path the document belongs to.
        doc_id: Document id, unique within its path.
        data: Document body.
        created_at: Timestamp when the document was written first.
        updated_at: Timestamp when the document was last written.
    """

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("path", "doc_id", name="uq_documents_path_doc_id"),)

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        index=True,
        comment="Collection path, e.g. users/{uid}/collections",
    )
    doc_id: Mapped[str] = mapped_column(String(128), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Document(path={self.path}, id={self.doc_id})>"
