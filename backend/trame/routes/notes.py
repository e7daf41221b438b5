"""
Trame Backend — Note Route Handlers
====================================

What:  GET /api/note, PUT /api/note and GET /api/note/blocks.
How:   Authenticates the bearer token, then delegates to NoteService.
Who:   Called by the editor frontend.

Every user has exactly one note; it is created empty on first access.

Caching:
    All responses are per-user and change on every save, so they are sent
    with `Cache-Control: no-store`.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from trame.database import get_db_session
from trame.routes.auth import current_user_id
from trame.schemas.block import BlockListResponse
from trame.schemas.note import ErrorResponse, NoteResponse, UpdateNoteRequest
from trame.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Note"])

UNAUTHORIZED = {"description": "Missing, invalid or expired token", "model": ErrorResponse}
SERVER_ERROR = {"description": "Storage error", "model": ErrorResponse}


@router.get(
    "/note",
    response_model=NoteResponse,
    responses={401: UNAUTHORIZED, 500: SERVER_ERROR},
    summary="Get the caller's note",
)
async def get_note(
    response: Response,
    user_id: uuid.UUID = Depends(current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    response.headers["Cache-Control"] = "no-store"
    return await note_service.get_note(db, user_id)


@router.put(
    "/note",
    response_model=NoteResponse,
    responses={401: UNAUTHORIZED, 500: SERVER_ERROR},
    summary="Replace the caller's note text",
    description=(
        "Replaces the full note text. The note is re-parsed into blocks in the same "
        "transaction; blocks whose content is unchanged keep their id and timestamps."
    ),
)
async def update_note(
    body: UpdateNoteRequest,
    response: Response,
    user_id: uuid.UUID = Depends(current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    response.headers["Cache-Control"] = "no-store"
    return await note_service.update_note(db, user_id, body.content)


@router.get(
    "/note/blocks",
    response_model=BlockListResponse,
    responses={401: UNAUTHORIZED, 500: SERVER_ERROR},
    summary="List the blocks of the caller's note",
    description="Headings, paragraphs, code blocks, lists and rules in document order.",
)
async def list_blocks(
    response: Response,
    user_id: uuid.UUID = Depends(current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> BlockListResponse:
    response.headers["Cache-Control"] = "no-store"
    return await note_service.list_blocks(db, user_id)
