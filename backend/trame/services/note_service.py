"""
Trame Backend — Note Service (Business Logic Orchestrator)
===========================================================

What:  Reads and replaces the caller's note, keeping its block set in sync.
How:   Composes SqlBlockStore (persistence) and BlockReconciler (scan, hash,
       carry-over) on the request's database session.
Who:   Called by the /api/note route handlers.

Update Flow (PUT /api/note):
    ┌──────────┐   ┌───────────────┐   ┌───────────────┐   ┌──────────────┐   ┌────────┐
    │  lookup  │──▶│ lock document │──▶│ replace text  │──▶│  reconcile   │──▶│ commit │
    │ document │   │  (in-process) │   │ (FOR UPDATE)  │   │ delete+insert│   │        │
    └──────────┘   └───────────────┘   └───────────────┘   └──────────────┘   └────────┘

    Text and blocks are written in one transaction and committed before the
    per-document lock is released. On any storage failure the transaction is
    rolled back, leaving both the text and the blocks as they were, and a
    StorageError propagates to the error handler (no retry).
"""

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trame.exceptions import StorageError
from trame.models.document import Document
from trame.schemas.block import BlockListResponse, BlockResponse
from trame.schemas.note import NoteResponse
from trame.services.block_store import SqlBlockStore, as_utc
from trame.services.reconciler import BlockReconciler, block_reconciler

logger = logging.getLogger(__name__)


def _note_response(document: Document) -> NoteResponse:
    return NoteResponse(
        id=document.id,
        content=document.content,
        created_at=as_utc(document.created_at),
        updated_at=as_utc(document.updated_at),
    )


class NoteService:
    """
    Business logic layer for the single per-user note.

    Responsibilities:
        - get_note(): current text, creating an empty note on first access
        - update_note(): atomic text replacement + block reconciliation
        - list_blocks(): persisted blocks in document order

    Error Handling Strategy:
        SQLAlchemy errors are rolled back and wrapped in StorageError with the
        operation and owner in the (log-only) context.
    """

    def __init__(self, reconciler: BlockReconciler = block_reconciler):
        self.reconciler = reconciler

    async def get_note(self, db: AsyncSession, owner_id: uuid.UUID) -> NoteResponse:
        try:
            document = await SqlBlockStore(db).get_or_create_document(owner_id)
            return _note_response(document)
        except SQLAlchemyError as e:
            raise await self._storage_error(db, "get_note", owner_id, e) from e

    async def update_note(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        content: str,
    ) -> NoteResponse:
        """
        Replaces the note text and its block set as one unit.

        Args:
            db: Request session; committed here, while the document lock is held.
            owner_id: Authenticated user.
            content: New full text.

        Raises:
            StorageError: Any database failure (state rolled back).
        """
        store = SqlBlockStore(db)
        try:
            document = await store.get_or_create_document(owner_id)
            async with self.reconciler.locks.hold(document.id):
                document = await store.replace_document_text(owner_id, content)
                records = await self.reconciler.apply(store, document.id, content)
                await db.commit()
        except SQLAlchemyError as e:
            raise await self._storage_error(db, "update_note", owner_id, e) from e

        logger.info(
            "Note %s updated: %d chars, %d blocks",
            document.id,
            len(content),
            len(records),
        )
        return _note_response(document)

    async def list_blocks(self, db: AsyncSession, owner_id: uuid.UUID) -> BlockListResponse:
        store = SqlBlockStore(db)
        try:
            document = await store.get_or_create_document(owner_id)
            records = await store.fetch_blocks(document.id)
        except SQLAlchemyError as e:
            raise await self._storage_error(db, "list_blocks", owner_id, e) from e

        return BlockListResponse(
            document_id=document.id,
            blocks=[BlockResponse.model_validate(record.model_dump()) for record in records],
        )

    @staticmethod
    async def _storage_error(
        db: AsyncSession,
        operation: str,
        owner_id: uuid.UUID,
        error: SQLAlchemyError,
    ) -> StorageError:
        await db.rollback()
        logger.error(
            "Storage failure during %s for owner %s: %s",
            operation,
            owner_id,
            str(error),
            exc_info=True,
        )
        return StorageError(
            context={
                "operation": operation,
                "owner_id": str(owner_id),
                "error_type": type(error).__name__,
            },
        )


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
