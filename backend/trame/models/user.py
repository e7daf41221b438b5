"""
Trame Backend — User & Session SQLAlchemy Models
=================================================

What:  ORM models for the `users` and `sessions` tables.
Who:   AuthService (signup, login, logout, token lookup); Alembic.

Table Design:
    - users.email is unique; the password is stored only as an Argon2 hash
    - sessions.token is the bearer token itself (URL-safe random, 43 chars)
    - sessions.expires_at is checked on every authenticated request; expired
      rows are deleted when they are presented
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from trame.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered account. Owns at most one document."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        comment="Login email, unique across users",
    )

    # Argon2id PHC string: $argon2id$v=19$m=...,t=...,p=...$<salt>$<hash>
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class UserSession(Base):
    """A bearer token issued at signup or login."""

    __tablename__ = "sessions"

    token: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Token is rejected (and deleted) once this instant has passed",
    )

    __table_args__ = (
        Index("idx_sessions_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<UserSession(user_id={self.user_id}, expires_at='{self.expires_at}')>"
