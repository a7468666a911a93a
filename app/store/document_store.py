"""
Document store client backed by a single SQLAlchemy table.

Capability set used by the promotion engine: get / list / count by collection,
single-document set / update / delete, and batched atomic writes capped at
max_batch_size operations per batch.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.enums import WriteKind
from app.core.exceptions import BatchLimitExceeded, DocumentStoreError
from app.core.models import Document
from app.db.session import AsyncSessionLocal
from app.store.paths import split_path

log = logging.getLogger(__name__)


class BatchOperation(BaseModel):
    """One queued write. payload is None for deletes."""

    kind: WriteKind
    path: str
    payload: Optional[Dict[str, Any]] = None
    merge: bool = Field(False, description="For set: merge payload into an existing document instead of replacing it")


class DocumentSnapshot(BaseModel):
    id: str
    path: str
    data: Dict[str, Any]


class WriteBatch:
    """Ordered group of writes committed as one transaction."""

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self._operations: List[BatchOperation] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._operations)

    @property
    def operations(self) -> List[BatchOperation]:
        return list(self._operations)

    def add(self, op: BatchOperation) -> "WriteBatch":
        if self._committed:
            raise DocumentStoreError("Write batch has already been committed")
        if len(self._operations) >= self._store.max_batch_size:
            raise BatchLimitExceeded(self._store.max_batch_size)
        self._operations.append(op)
        return self

    def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        return self.add(BatchOperation(kind=WriteKind.SET, path=path, payload=data, merge=merge))

    def update(self, path: str, data: Dict[str, Any]) -> "WriteBatch":
        return self.add(BatchOperation(kind=WriteKind.UPDATE, path=path, payload=data))

    def delete(self, path: str) -> "WriteBatch":
        return self.add(BatchOperation(kind=WriteKind.DELETE, path=path))

    async def commit(self) -> None:
        if self._committed:
            raise DocumentStoreError("Write batch has already been committed")
        await self._store._commit(self._operations)
        self._committed = True


class DocumentStore:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_batch_size: Optional[int] = None,
    ) -> None:
        self._session_factory = session_factory
        self.max_batch_size = max_batch_size or settings.max_ops_per_batch

    # ----- Reads -----
    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                obj = await session.get(Document, path)
                return dict(obj.data) if obj else None
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Failed to read {path}: {e}") from e

    async def list(self, collection: str) -> List[DocumentSnapshot]:
        """All documents directly under a collection, ordered by document id."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Document)
                    .where(Document.collection == collection)
                    .order_by(Document.doc_id)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Failed to query {collection}: {e}") from e
        return [DocumentSnapshot(id=r.doc_id, path=r.path, data=dict(r.data or {})) for r in rows]

    async def count(self, collection: str) -> int:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count()).select_from(Document).where(Document.collection == collection)
                )
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Failed to count {collection}: {e}") from e

    # ----- Single-document writes (one-operation batches) -----
    async def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self.batch().set(path, data, merge=merge).commit()

    async def update(self, path: str, data: Dict[str, Any]) -> None:
        await self.batch().update(path, data).commit()

    async def delete(self, path: str) -> None:
        await self.batch().delete(path).commit()

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    # ----- Batch application -----
    async def _commit(self, operations: List[BatchOperation]) -> None:
        """Apply all operations in one transaction. Any failure rolls the whole batch back."""
        if len(operations) > self.max_batch_size:
            raise BatchLimitExceeded(self.max_batch_size)
        if not operations:
            return
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for op in operations:
                        await self._apply(session, op)
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Batch commit failed: {e}") from e
        log.debug("Committed batch of %d operation(s)", len(operations))

    async def _apply(self, session: AsyncSession, op: BatchOperation) -> None:
        collection, doc_id = split_path(op.path)
        existing = await session.get(Document, op.path)
        now = datetime.now(timezone.utc)

        if op.kind == WriteKind.DELETE:
            if existing is not None:
                await session.delete(existing)
        elif op.kind == WriteKind.UPDATE:
            if existing is None:
                raise DocumentStoreError(f"No document to update at {op.path}")
            existing.data = {**(existing.data or {}), **jsonable_encoder(op.payload or {})}
            existing.updated_at = now
        else:
            payload = jsonable_encoder(op.payload or {})
            if existing is None:
                session.add(
                    Document(
                        path=op.path,
                        collection=collection,
                        doc_id=doc_id,
                        data=payload,
                        created_at=now,
                        updated_at=now,
                    )
                )
            else:
                existing.data = {**(existing.data or {}), **payload} if op.merge else payload
                existing.updated_at = now
        # Flush per operation so a delete followed by a set on the same path stays ordered.
        await session.flush()


def get_document_store() -> DocumentStore:
    """FastAPI dependency: store bound to the application's session factory."""
    return DocumentStore(AsyncSessionLocal, settings.max_ops_per_batch)
