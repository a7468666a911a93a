"""
Chunked commit of an arbitrary-length operation list.

Operations are split into consecutive chunks of at most chunk_size and each chunk is
committed as one atomic batch, strictly in order, each awaited before the next is
built. The first failing chunk stops the run. Nothing already committed is rolled
back; the returned report lists which chunks landed and which are still pending.
"""

import logging
import math
from typing import List, Optional, Sequence

from app.core.exceptions import BatchLimitExceeded, DocumentStoreError
from app.store.document_store import BatchOperation, DocumentStore

from .schemas import ChunkResult, CommitReport

log = logging.getLogger(__name__)


def chunk_operations(ops: Sequence[BatchOperation], chunk_size: int) -> List[List[BatchOperation]]:
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    return [list(ops[i:i + chunk_size]) for i in range(0, len(ops), chunk_size)]


def chunk_count(total: int, chunk_size: int) -> int:
    return math.ceil(total / chunk_size) if total else 0


async def commit_chunked(
    store: DocumentStore,
    ops: Sequence[BatchOperation],
    chunk_size: Optional[int] = None,
) -> CommitReport:
    chunk_size = chunk_size or store.max_batch_size
    if chunk_size > store.max_batch_size:
        raise BatchLimitExceeded(store.max_batch_size)

    chunks = chunk_operations(ops, chunk_size)
    report = CommitReport(
        total_operations=len(ops),
        chunk_size=chunk_size,
        chunks=[ChunkResult(index=i, size=len(c), committed=False) for i, c in enumerate(chunks)],
    )

    for index, chunk in enumerate(chunks):
        batch = store.batch()
        for op in chunk:
            batch.add(op)
        try:
            await batch.commit()
        except DocumentStoreError as e:
            report.failed_chunk = index
            report.error = e.message
            log.error(
                "Chunk %d/%d failed (%d committed, %d pending): %s",
                index + 1,
                len(chunks),
                len(report.committed_chunks),
                len(report.pending_chunks),
                e.message,
            )
            return report
        report.chunks[index].committed = True
        log.debug("Committed chunk %d/%d (%d ops)", index + 1, len(chunks), len(chunk))

    return report
