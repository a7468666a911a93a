"""Deletes every attendance history record of the school (not scoped to one class)."""

import logging
from typing import List, Optional

from app.core.enums import WriteKind
from app.store import paths
from app.store.document_store import BatchOperation, DocumentStore

from .batching import commit_chunked
from .schemas import CommitReport, SchoolContext

log = logging.getLogger(__name__)


async def build_purge_ops(store: DocumentStore, ctx: SchoolContext) -> List[BatchOperation]:
    """One delete per attendance history document. Raises DocumentStoreError if the listing fails."""
    snaps = await store.list(paths.attendance_history_collection(ctx.school_id))
    return [BatchOperation(kind=WriteKind.DELETE, path=s.path) for s in snaps]


async def purge_attendance_history(
    store: DocumentStore,
    ctx: SchoolContext,
    chunk_size: Optional[int] = None,
) -> CommitReport:
    ops = await build_purge_ops(store, ctx)
    log.info("Purging %d attendance history record(s) for school %s", len(ops), ctx.school_id)
    return await commit_chunked(store, ops, chunk_size)
