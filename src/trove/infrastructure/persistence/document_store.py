"""Document store abstraction and its SQLAlchemy implementation.

Services only talk to ``DocumentStore``. Documents are JSON maps addressed by
a collection path and an id; ``update`` understands dotted keys for nested
maps, ``Increment`` values for atomic numeric changes and ``Append`` values
for atomic list growth.
"""

import copy
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from trove.core.logging import get_logger
from trove.domain.exceptions import NotFoundError, StoreUnavailableError
from trove.infrastructure.persistence.models import DocumentModel

logger = get_logger(__name__)


class DocumentNotFoundError(NotFoundError):
    """An update targeted a document that does not exist."""

    def __init__(self, path: str, doc_id: str) -> None:
        self.path = path
        self.doc_id = doc_id
        super().__init__(f"Document '{path}/{doc_id}' not found")


@dataclass(frozen=True)
class Increment:
    """Atomic numeric change applied by ``DocumentStore.update``.

    Attributes:
        delta: Amount to add (negative to subtract).
        floor: Lower bound of the result, if any.
    """

    delta: int | float
    floor: int | float | None = None

    def apply(self, current: Any) -> int | float:
        value = (current or 0) + self.delta
        if self.floor is not None and value < self.floor:
            value = self.floor
        if isinstance(value, float):
            # Keep megabyte sums from accumulating binary noise
            value = round(value, 6)
        return value


@dataclass(frozen=True)
class Append:
    """Atomic list append applied by ``DocumentStore.update``.

    The list is read under the same row lock as the write, so concurrent
    appends to one document do not overwrite each other.
    """

    value: Any

    def apply(self, current: Any) -> list[Any]:
        items = list(current) if isinstance(current, list) else []
        items.append(copy.deepcopy(self.value))
        return items


def get_path(data: dict[str, Any], dotted_key: str, default: Any = None) -> Any:
    """Read a nested value addressed by a dotted key."""
    current: Any = data
    for part in dotted_key.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def set_path(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    """Write a nested value addressed by a dotted key, creating maps on the way."""
    parts = dotted_key.split(".")
    current = data
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def apply_update(data: dict[str, Any], partial: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with a partial update applied."""
    updated = copy.deepcopy(data)
    for key, value in partial.items():
        if isinstance(value, (Increment, Append)):
            value = value.apply(get_path(updated, key))
        set_path(updated, key, value)
    return updated


def _sort_key(field: str):
    def key(doc: dict[str, Any]) -> tuple[bool, Any]:
        value = get_path(doc, field)
        return (value is not None, value)

    return key


class DocumentStore(ABC):
    """Contract of the persistence collaborator."""

    @abstractmethod
    async def get(self, path: str, doc_id: str) -> dict[str, Any] | None:
        """Return the document with its ``id`` key set, or None."""

    @abstractmethod
    async def put(self, path: str, document: dict[str, Any], doc_id: str | None = None) -> str:
        """Write a whole document, generating an id when omitted. Returns the id."""

    @abstractmethod
    async def update(self, path: str, doc_id: str, partial: dict[str, Any]) -> None:
        """Apply a partial update.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """

    @abstractmethod
    async def query(
        self,
        path: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching documents.

        ``filters`` are equality matches on (dotted) keys; ``order_by`` names a
        key, prefixed with ``-`` for descending. Without it, and among ties,
        documents come back in insertion order.
        """

    @abstractmethod
    async def batch_delete(self, path: str, doc_ids: Iterable[str]) -> None:
        """Delete documents by id; unknown ids are ignored."""


class SQLAlchemyDocumentStore(DocumentStore):
    """Document store on the ``documents`` table.

    Writes are flushed, not committed; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the store with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    @asynccontextmanager
    async def _guard(self, operation: str, path: str) -> AsyncGenerator[None, None]:
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            logger.error("Document store unavailable", operation=operation, path=path, error=str(e))
            raise StoreUnavailableError(f"Document store unavailable during {operation}") from e

    async def _get_model(self, path: str, doc_id: str, for_update: bool = False) -> DocumentModel | None:
        stmt = select(DocumentModel).where(
            DocumentModel.path == path, DocumentModel.doc_id == doc_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_document(model: DocumentModel) -> dict[str, Any]:
        document = copy.deepcopy(model.data)
        document["id"] = model.doc_id
        return document

    async def get(self, path: str, doc_id: str) -> dict[str, Any] | None:
        async with self._guard("get", path):
            model = await self._get_model(path, doc_id)
        return self._to_document(model) if model is not None else None

    async def put(self, path: str, document: dict[str, Any], doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        data = {key: value for key, value in document.items() if key != "id"}
        async with self._guard("put", path):
            model = await self._get_model(path, doc_id, for_update=True)
            if model is None:
                self.session.add(DocumentModel(path=path, doc_id=doc_id, data=data))
            else:
                model.data = data
            await self.session.flush()
        return doc_id

    async def update(self, path: str, doc_id: str, partial: dict[str, Any]) -> None:
        async with self._guard("update", path):
            # Row lock where the backend supports it, so increments do not race
            model = await self._get_model(path, doc_id, for_update=True)
            if model is None:
                raise DocumentNotFoundError(path, doc_id)
            model.data = apply_update(model.data, partial)
            await self.session.flush()

    async def query(
        self,
        path: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        async with self._guard("query", path):
            result = await self.session.execute(
                select(DocumentModel)
                .where(DocumentModel.path == path)
                .order_by(DocumentModel.seq)
            )
            models = result.scalars().all()

        documents = [self._to_document(model) for model in models]
        if filters:
            documents = [
                doc
                for doc in documents
                if all(get_path(doc, key) == value for key, value in filters.items())
            ]
        if order_by:
            descending = order_by.startswith("-")
            field = order_by.lstrip("-")
            documents.sort(key=_sort_key(field), reverse=descending)
        if limit is not None:
            documents = documents[:limit]
        return documents

    async def batch_delete(self, path: str, doc_ids: Iterable[str]) -> None:
        doc_ids = list(doc_ids)
        if not doc_ids:
            return
        async with self._guard("batch_delete", path):
            await self.session.execute(
                delete(DocumentModel).where(
                    DocumentModel.path == path, DocumentModel.doc_id.in_(doc_ids)
                )
            )
            await self.session.flush()
