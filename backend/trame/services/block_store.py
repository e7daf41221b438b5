"""
Trame Backend — SQL Block Store (Persistence Adapter)
======================================================

What:  The persistence operations behind note updates: document lookup and
       creation, text replacement, and the block set fetch/delete/insert used
       by the reconciler.
How:   Wraps one AsyncSession. Every call runs inside that session's
       transaction, so a whole note update commits or rolls back as a unit.
Who:   NoteService (one store per request/session).

Block rows are read and written through the Core table rather than ORM
instances. Block ids are carried over across reconciliations, and a deleted
row and its re-inserted successor share a primary key within one
transaction; Core statements keep them out of the session identity map.

Errors: SQLAlchemy exceptions propagate unchanged. Translation into
StorageError happens in the service layer, after rollback.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Mapping

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trame.models.document import Block, Document
from trame.schemas.block import BlockRecord, BlockType

logger = logging.getLogger(__name__)

blocks_table = Block.__table__


def as_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes for timezone-aware columns; they are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: Mapping[str, Any]) -> BlockRecord:
    return BlockRecord(
        id=row["id"],
        document_id=row["document_id"],
        sequence=row["sequence"],
        type=BlockType(row["block_type"]),
        heading_level=row["heading_level"],
        text=row["content"],
        start_offset=row["start_offset"],
        end_offset=row["end_offset"],
        content_hash=row["content_hash"],
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
    )


class SqlBlockStore:
    """Persistence adapter bound to a single session (and transaction)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Documents ─────────────────────────────────────────────────────────

    async def find_document(self, owner_id: uuid.UUID, for_update: bool = False) -> Document | None:
        query = select(Document).where(Document.owner_id == owner_id)
        if for_update:
            # Row lock on PostgreSQL; SQLite ignores FOR UPDATE and relies on
            # its database-level write lock.
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create_document(self, owner_id: uuid.UUID) -> Document:
        """
        Returns the owner's document, creating an empty one on first access.

        Two first accesses racing each other both try to insert; the loser's
        savepoint is rolled back on the unique(owner_id) violation and it
        reads the winner's row.
        """
        document = await self.find_document(owner_id)
        if document is not None:
            return document

        document = Document(owner_id=owner_id, content="")
        try:
            async with self.session.begin_nested():
                self.session.add(document)
                await self.session.flush()
        except IntegrityError:
            existing = await self.find_document(owner_id)
            if existing is None:
                raise
            return existing

        logger.info("Created document %s for owner %s", document.id, owner_id)
        return document

    async def replace_document_text(self, owner_id: uuid.UUID, text: str) -> Document:
        """Sets the owner's document content, locking the row for the transaction."""
        document = await self.find_document(owner_id, for_update=True)
        if document is None:
            document = await self.get_or_create_document(owner_id)

        document.content = text
        document.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return document

    # ── Blocks ────────────────────────────────────────────────────────────

    async def fetch_blocks(self, document_id: uuid.UUID) -> List[BlockRecord]:
        result = await self.session.execute(
            select(blocks_table)
            .where(blocks_table.c.document_id == document_id)
            .order_by(blocks_table.c.sequence)
        )
        return [_to_record(row) for row in result.mappings()]

    async def delete_blocks(self, document_id: uuid.UUID) -> None:
        await self.session.execute(
            delete(blocks_table).where(blocks_table.c.document_id == document_id)
        )

    async def insert_block(self, record: BlockRecord) -> None:
        await self.session.execute(
            insert(blocks_table).values(
                id=record.id,
                document_id=record.document_id,
                sequence=record.sequence,
                block_type=record.type.value,
                heading_level=record.heading_level,
                content=record.text,
                start_offset=record.start_offset,
                end_offset=record.end_offset,
                content_hash=record.content_hash,
                created_at=record.created_at,
                updated_at=record.updated_at,
            )
        )
