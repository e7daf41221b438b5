"""
Trame Backend — Note Request/Response Schemas
==============================================

What:  Pydantic models defining the note API contract and the shared
       error/health payloads.
How:   FastAPI validates request bodies and serializes responses with these
       models, and builds the OpenAPI docs from them.

The note is the single document a user owns; its structure is exposed
separately through the block schemas (trame.schemas.block).
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class UpdateNoteRequest(BaseModel):
    """
    What:  Body of PUT /api/note.
    How:   The content replaces the whole note text; blocks are re-derived.
    """
    content: str = Field(description="Full new note text (may be empty)")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """
    What:  The caller's note.
    Who:   Returned by GET /api/note and PUT /api/note.
    """
    id: uuid.UUID = Field(description="Note identifier (UUID)")
    content: str = Field(description="Full note text")
    created_at: datetime = Field(description="When the note was first created (UTC)")
    updated_at: datetime = Field(description="When the text was last replaced (UTC)")

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "unauthorized")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and database status.
    Who:   Returned by GET /health for container and load balancer probes.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
