"""
Trame Backend — Authentication Route Handlers
==============================================

What:  POST /api/signup, POST /api/login, POST /api/logout, plus the
       `current_user_id` dependency used by every protected route.
How:   Thin handlers delegating to AuthService; tokens travel in the
       `Authorization: Bearer <token>` header.

Signup and login are rate limited per client IP by RateLimitMiddleware.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from trame.database import get_db_session
from trame.schemas.auth import AuthResponse, LoginRequest, SignupRequest
from trame.schemas.note import ErrorResponse
from trame.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])

# auto_error=False: a missing header becomes our 401 body, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def current_user_id(
    token: Optional[str] = Depends(bearer_token),
    db: AsyncSession = Depends(get_db_session),
) -> uuid.UUID:
    """Dependency: the authenticated user's id, or 401 via AuthenticationError."""
    return await auth_service.authenticate(db, token)


@router.post(
    "/signup",
    status_code=201,
    response_model=AuthResponse,
    responses={
        201: {"description": "Account created and session issued", "model": AuthResponse},
        400: {"description": "Invalid email or password too short", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.signup(db, body.email, body.password)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        200: {"description": "Session issued", "model": AuthResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.login(db, body.email, body.password)


@router.post(
    "/logout",
    status_code=204,
    summary="Revoke the current bearer token",
    description="Deletes the session behind the bearer token. Unknown or missing tokens are ignored.",
)
async def logout(
    token: Optional[str] = Depends(bearer_token),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    if token:
        await auth_service.logout(db, token)
    return Response(status_code=204)
