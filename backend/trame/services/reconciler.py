"""
Trame Backend — Block Reconciler
=================================

What:  Replaces a document's persisted block set after its text changed,
       carrying identity and timestamps over for content that did not change.
How:   The new text is re-scanned from scratch and every block is hashed. A new
       block whose hash matches a previous record inherits that record's id,
       created_at and updated_at, whatever its new position. All other blocks
       get a fresh id and the reconciliation time. The old set is then deleted
       and the new one inserted.
Who:   NoteService.update_note, inside the note-update transaction.

Matching:
    Previous records are indexed by hash as a multimap (hash → queue of
    records in their old order). Each new block consumes at most one match,
    first come first served in scan order, so two identical list blocks in
    the old text pair with the first two identical blocks in the new text and
    a third identical block counts as new content. A record therefore never
    lends its id to two new blocks.

Concurrency:
    fetch → reconcile → delete → insert must not interleave with another
    update of the same document. Callers hold `DocumentLocks.hold(document_id)`
    for the whole sequence, through commit. Locks are per document; updates
    to different documents never wait on each other.
"""

import asyncio
import logging
import uuid
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Deque, Dict, List, Optional, Protocol, Sequence

from trame.schemas.block import BlockRecord
from trame.services.content_hash import hash_blocks

logger = logging.getLogger(__name__)


class BlockStore(Protocol):
    """Persistence operations the reconciler needs. See SqlBlockStore."""

    async def fetch_blocks(self, document_id: uuid.UUID) -> List[BlockRecord]:
        ...

    async def delete_blocks(self, document_id: uuid.UUID) -> None:
        ...

    async def insert_block(self, record: BlockRecord) -> None:
        ...


def reconcile(
    document_id: uuid.UUID,
    previous_records: Sequence[BlockRecord],
    new_text: str,
    now: Optional[datetime] = None,
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
) -> List[BlockRecord]:
    """
    Builds the block records for `new_text`.

    Pure: no I/O, `previous_records` is not modified.

    Args:
        document_id: Owner of both the previous and the new records.
        previous_records: Currently persisted records, any order.
        new_text: The document's new full text.
        now: Timestamp for new or edited content (defaults to UTC now).
        id_factory: Source of ids for new content.

    Returns:
        Records in scan order with sequence 0..n-1.
    """
    now = now or datetime.now(timezone.utc)

    candidates: Dict[str, Deque[BlockRecord]] = defaultdict(deque)
    for record in sorted(previous_records, key=lambda r: r.sequence):
        candidates[record.content_hash].append(record)

    records: List[BlockRecord] = []
    for sequence, hashed in enumerate(hash_blocks(new_text)):
        block = hashed.block
        queue = candidates.get(hashed.content_hash)
        match = queue.popleft() if queue else None

        records.append(
            BlockRecord(
                id=match.id if match else id_factory(),
                document_id=document_id,
                sequence=sequence,
                type=block.type,
                heading_level=block.heading_level,
                text=block.text,
                start_offset=block.start_offset,
                end_offset=block.end_offset,
                content_hash=hashed.content_hash,
                created_at=match.created_at if match else now,
                updated_at=match.updated_at if match else now,
            )
        )
    return records


class DocumentLocks:
    """
    Per-document asyncio locks.

    A lock exists only while someone holds or waits for it, so the registry
    does not grow with the number of documents ever updated.
    """

    def __init__(self) -> None:
        self._locks: Dict[uuid.UUID, asyncio.Lock] = {}
        self._users: Dict[uuid.UUID, int] = {}

    @asynccontextmanager
    async def hold(self, document_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = self._locks[document_id] = asyncio.Lock()
        self._users[document_id] = self._users.get(document_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[document_id] -= 1
            if self._users[document_id] == 0:
                del self._users[document_id]
                del self._locks[document_id]

    def is_locked(self, document_id: uuid.UUID) -> bool:
        lock = self._locks.get(document_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


class BlockReconciler:
    """
    Runs reconciliation against a BlockStore.

    Storage errors from the store propagate unchanged and are not retried;
    the caller's transaction rollback restores the previous block set.
    """

    def __init__(self, locks: Optional[DocumentLocks] = None):
        self.locks = locks or DocumentLocks()

    async def apply(
        self,
        store: BlockStore,
        document_id: uuid.UUID,
        new_text: str,
        now: Optional[datetime] = None,
    ) -> List[BlockRecord]:
        """
        fetch → reconcile → delete → insert for one document.

        The caller must hold `self.locks.hold(document_id)` and run this inside
        one transaction.
        """
        previous = await store.fetch_blocks(document_id)
        records = reconcile(document_id, previous, new_text, now=now)

        await store.delete_blocks(document_id)
        for record in records:
            await store.insert_block(record)

        previous_ids = {r.id for r in previous}
        kept = sum(1 for r in records if r.id in previous_ids)
        logger.debug(
            "Reconciled document %s: %d blocks (%d kept, %d new, %d removed)",
            document_id,
            len(records),
            kept,
            len(records) - kept,
            len(previous) - kept,
        )
        return records


# ── Singleton Instance ────────────────────────────────────────────────────
# One lock registry per process
block_reconciler = BlockReconciler()
