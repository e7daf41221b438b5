"""
Trame Backend — Block Schemas
==============================

What:  Pydantic models for parsed blocks and their persisted records.
How:   `Block` is what the scanner emits, `HashedBlock` pairs it with its
       content hash, `BlockRecord` is one persisted row. The response models
       are the API contract for GET /api/note/blocks.

Offsets are code-point offsets into the document text the block was scanned
from (Python `str` indices), half-open: text[start_offset:end_offset].
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BlockType(str, Enum):
    """Closed set of block kinds. Values are the stored/wire names."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE_BLOCK = "code_block"
    LIST = "list"
    HORIZONTAL_RULE = "hr"


class Block(BaseModel):
    """One semantic unit of a scanned document."""

    model_config = ConfigDict(frozen=True)

    type: BlockType
    heading_level: Optional[int] = Field(default=None, ge=1, le=6)
    text: str
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)


class HashedBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    block: Block
    content_hash: str


class BlockRecord(BaseModel):
    """
    A persisted block.

    `sequence` is the zero-based position within the document; for a given
    document the stored sequences are always exactly 0..n-1.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID
    sequence: int = Field(ge=0)
    type: BlockType
    heading_level: Optional[int] = None
    text: str
    start_offset: int
    end_offset: int
    content_hash: str = Field(min_length=32, max_length=32)
    created_at: datetime
    updated_at: datetime


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class BlockResponse(BaseModel):
    """
    What:  One block of the caller's note, as returned to clients.
    Who:   Items of GET /api/note/blocks.

    `created_at` / `updated_at` survive edits elsewhere in the note, so a
    client can show "unchanged since X" per block.
    """
    id: uuid.UUID = Field(description="Block identifier, stable while its content is unchanged")
    sequence: int = Field(description="Zero-based position in the note")
    type: BlockType = Field(description="heading, paragraph, code_block, list or hr")
    heading_level: Optional[int] = Field(default=None, description="1-6 for headings, null otherwise")
    text: str = Field(description="Block text as stored")
    start_offset: int = Field(description="Start code-point offset in the note text")
    end_offset: int = Field(description="End code-point offset (exclusive)")
    content_hash: str = Field(description="32-hex-char digest of the trimmed block text")
    created_at: datetime = Field(description="When this content first appeared (UTC)")
    updated_at: datetime = Field(description="When this content last changed (UTC)")

    model_config = {"from_attributes": True}


class BlockListResponse(BaseModel):
    document_id: uuid.UUID = Field(description="Identifier of the caller's note")
    blocks: List[BlockResponse] = Field(description="Blocks in document order")
