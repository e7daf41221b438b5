"""
Trame Backend — Authentication Service
=======================================

What:  Account signup, login, logout and bearer-token resolution.
How:   Passwords are hashed with Argon2id (argon2-cffi) and stored as PHC
       strings. Hashing runs in the threadpool so the event loop keeps
       serving other requests. A successful signup or login issues a random
       URL-safe session token stored in `sessions` with an expiry
       `session_ttl_days` ahead.
Who:   Called by the /api/signup, /api/login, /api/logout handlers and by the
       `current_user_id` route dependency.

Token Lifecycle:
    signup/login ──▶ token issued (expires_at = now + TTL)
    request      ──▶ token looked up ──▶ expired? delete row, 401 : user id
    logout       ──▶ token row deleted (unknown tokens are ignored)
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from trame.config import settings
from trame.exceptions import (
    AuthenticationError,
    ConflictError,
    StorageError,
    ValidationError,
)
from trame.models.user import User, UserSession
from trame.schemas.auth import AuthResponse
from trame.services.block_store import as_utc

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32

# Library defaults: Argon2id, 64 MiB, 3 passes
_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Returns an `$argon2id$...` PHC string for `password` with a fresh salt."""
    return _hasher.hash(password)


def verify_password(password: str, stored: str) -> bool:
    """Checks `password` against a hash_password() string."""
    try:
        return _hasher.verify(stored, password)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError):
        logger.warning("Unreadable password hash encountered")
        return False


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


class AuthService:
    """
    Stateless authentication logic; every call receives the request session.

    Credential failures are deliberately uniform: an unknown email and a wrong
    password both raise AuthenticationError("Invalid credentials").
    """

    async def signup(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Creates an account and its first session.

        Raises:
            ValidationError: email without '@' or password too short (→ 400)
            ConflictError: email already registered (→ 409)
            StorageError: database failure (→ 500)
        """
        email = email.strip()
        self._validate_credentials(email, password)

        try:
            existing = await db.execute(select(User.id).where(User.email == email))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(message="Email already registered", context={"email": email})

            password_hash = await run_in_threadpool(hash_password, password)
            user = User(email=email, password_hash=password_hash)
            db.add(user)
            await db.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent signup for the same email
            await db.rollback()
            raise ConflictError(message="Email already registered", context={"email": email}) from e
        except SQLAlchemyError as e:
            raise self._storage_error("signup", e) from e

        logger.info("User %s signed up", user.id)
        return await self._issue_session(db, user.id)

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        try:
            result = await db.execute(select(User).where(User.email == email.strip()))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._storage_error("login", e) from e

        if user is None or not await run_in_threadpool(
            verify_password, password, user.password_hash
        ):
            raise AuthenticationError(message="Invalid credentials")

        logger.info("User %s logged in", user.id)
        return await self._issue_session(db, user.id)

    async def logout(self, db: AsyncSession, token: str) -> None:
        try:
            await db.execute(delete(UserSession).where(UserSession.token == token))
        except SQLAlchemyError as e:
            raise self._storage_error("logout", e) from e

    async def authenticate(self, db: AsyncSession, token: Optional[str]) -> uuid.UUID:
        """
        Resolves a bearer token to its user id.

        Raises:
            AuthenticationError: missing, unknown or expired token. Expired
                sessions are deleted as a side effect.
        """
        if not token:
            raise AuthenticationError(message="Missing authorization")

        try:
            result = await db.execute(select(UserSession).where(UserSession.token == token))
            session = result.scalar_one_or_none()
            if session is None:
                raise AuthenticationError(message="Invalid token")

            if as_utc(session.expires_at) < datetime.now(timezone.utc):
                await db.execute(delete(UserSession).where(UserSession.token == token))
                # Commit the cleanup; the request ends in an error response
                await db.commit()
                raise AuthenticationError(message="Token expired")
        except SQLAlchemyError as e:
            raise self._storage_error("authenticate", e) from e

        return session.user_id

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _issue_session(self, db: AsyncSession, user_id: uuid.UUID) -> AuthResponse:
        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.session_ttl_days)
        session = UserSession(token=generate_token(), user_id=user_id, expires_at=expires_at)
        try:
            db.add(session)
            await db.flush()
        except SQLAlchemyError as e:
            raise self._storage_error("issue_session", e) from e
        return AuthResponse(token=session.token, expires_at=expires_at)

    @staticmethod
    def _validate_credentials(email: str, password: str) -> None:
        if not email or "@" not in email:
            raise ValidationError(message="Invalid email", field="email")
        if len(password) < settings.min_password_length:
            raise ValidationError(
                message=f"Password must be at least {settings.min_password_length} characters",
                field="password",
            )

    @staticmethod
    def _storage_error(operation: str, error: SQLAlchemyError) -> StorageError:
        logger.error("Storage failure during %s: %s", operation, str(error), exc_info=True)
        return StorageError(context={"operation": operation, "error_type": type(error).__name__})


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
