"""
Trame Backend — Document & Block SQLAlchemy Models
===================================================

What:  ORM models for the `documents` and `blocks` tables.
Who:   SqlBlockStore (all reads and writes); Alembic.

Table Design:
    - documents.owner_id is unique: one note per user
    - blocks are the scanned structure of documents.content, fully replaced on
      every content update; (document_id, sequence) is unique and the stored
      sequences for a document are always 0..n-1
    - blocks.content_hash is indexed for carry-over lookups and diagnostics

Query Patterns:
    - Current note:   SELECT ... FROM documents WHERE owner_id = :uid
    - Block list:     SELECT ... FROM blocks WHERE document_id = :id ORDER BY sequence
    - Replace blocks: DELETE FROM blocks WHERE document_id = :id; INSERT ... (xN)
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CHAR,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from trame.database import Base
from trame.models.user import utcnow


class Document(Base):
    """The single note owned by a user."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Full note text as last saved",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, owner_id={self.owner_id}, chars={len(self.content or '')})>"


class Block(Base):
    """One persisted block of a document."""

    __tablename__ = "blocks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    # heading, paragraph, code_block, list, hr
    block_type: Mapped[str] = mapped_column(String(20), nullable=False)

    heading_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    start_offset: Mapped[int] = mapped_column(Integer, nullable=False)
    end_offset: Mapped[int] = mapped_column(Integer, nullable=False)

    content_hash: Mapped[str] = mapped_column(
        CHAR(32),
        nullable=False,
        comment="First 16 bytes of SHA-256 over the trimmed content, hex",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("document_id", "sequence", name="uq_blocks_document_sequence"),
        Index("idx_blocks_document", "document_id"),
        Index("idx_blocks_content_hash", "content_hash"),
    )

    def __repr__(self) -> str:
        return (
            f"<Block(document_id={self.document_id}, sequence={self.sequence}, "
            f"type='{self.block_type}', hash='{self.content_hash}')>"
        )
