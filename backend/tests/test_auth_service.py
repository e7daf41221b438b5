"""
Trame Backend — Authentication Service Tests
=============================================

What:  Tests for password hashing, signup/login, and bearer-token resolution.
How:   Hashing is tested directly; account flows run against SQLite.

What we test:
    ✅ Argon2id hash format, salting, and verification
    ✅ Hashing runs off the event loop during signup and login
    ✅ Signup validation (email, password length) and duplicate emails
    ✅ Login with wrong password / unknown email gives the same error
    ✅ Missing, unknown and expired tokens; expired sessions are deleted
    ✅ Logout revokes the token
"""

import asyncio
import time
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from trame.exceptions import AuthenticationError, ConflictError, ValidationError
from trame.models.user import User, UserSession
from trame.services.auth_service import (
    AuthService,
    generate_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:

    def test_format(self):
        stored = hash_password("hunter22")
        assert stored.startswith("$argon2id$v=19$")
        assert "hunter22" not in stored

    def test_verify_round_trip(self):
        stored = hash_password("hunter22")
        assert verify_password("hunter22", stored)
        assert not verify_password("hunter23", stored)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    @pytest.mark.parametrize(
        "stored",
        ["", "plain", "md5$1$1$1$00$00", "scrypt$16384$8$1$00$00", "$argon2id$v=19$garbage"],
    )
    def test_unreadable_hash_rejects(self, stored):
        assert not verify_password("anything", stored)

    def test_token_is_url_safe(self):
        token = generate_token()
        assert len(token) >= 43
        assert all(c.isalnum() or c in "-_" for c in token)
        assert generate_token() != token


class TestSignupLogin:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_signup_creates_user_and_session(self, db_session):
        auth = await self.service.signup(db_session, " ada@example.com ", "long enough")
        await db_session.commit()

        user = (await db_session.execute(select(User))).scalar_one()
        assert user.email == "ada@example.com"
        assert user.password_hash.startswith("$argon2id$")

        session = (await db_session.execute(select(UserSession))).scalar_one()
        assert session.token == auth.token
        assert session.user_id == user.id
        assert auth.expires_at > datetime.now(timezone.utc) + timedelta(days=29)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["", "no-at-sign", "   "])
    async def test_signup_rejects_bad_email(self, db_session, email):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.signup(db_session, email, "long enough")
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_signup_rejects_short_password(self, db_session):
        with pytest.raises(ValidationError, match="at least 8"):
            await self.service.signup(db_session, "ada@example.com", "short")

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session):
        await self.service.signup(db_session, "ada@example.com", "long enough")
        await db_session.commit()

        with pytest.raises(ConflictError):
            await self.service.signup(db_session, "ada@example.com", "another one")

    @pytest.mark.asyncio
    async def test_login_issues_new_token(self, db_session):
        first = await self.service.signup(db_session, "ada@example.com", "long enough")
        await db_session.commit()

        second = await self.service.login(db_session, "ada@example.com", "long enough")
        assert second.token != first.token

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_alike(self, db_session):
        await self.service.signup(db_session, "ada@example.com", "long enough")
        await db_session.commit()

        with pytest.raises(AuthenticationError) as wrong_password:
            await self.service.login(db_session, "ada@example.com", "not the one")
        with pytest.raises(AuthenticationError) as unknown_email:
            await self.service.login(db_session, "bob@example.com", "long enough")

        assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"


async def worst_loop_gap(coro):
    """Awaits `coro` while a 1 ms ticker runs; returns the longest tick gap."""
    gaps = []
    done = asyncio.Event()

    async def ticker():
        last = time.perf_counter()
        while not done.is_set():
            await asyncio.sleep(0.001)
            now = time.perf_counter()
            gaps.append(now - last)
            last = now

    task = asyncio.create_task(ticker())
    await asyncio.sleep(0.01)
    try:
        await coro
    finally:
        done.set()
        await task
    return max(gaps)


class TestLoopResponsiveness:
    """A password hash takes tens of milliseconds; other requests must not wait on it."""

    @pytest.mark.asyncio
    async def test_signup_hashes_off_the_loop(self, mock_db_session):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = result

        gap = await worst_loop_gap(
            AuthService().signup(mock_db_session, "ada@example.com", "long enough")
        )

        assert gap < 0.05
        user = mock_db_session.add.call_args_list[0].args[0]
        assert verify_password("long enough", user.password_hash)

    @pytest.mark.asyncio
    async def test_login_verifies_off_the_loop(self, mock_db_session):
        user = MagicMock(id=uuid.uuid4(), password_hash=hash_password("long enough"))
        result = MagicMock()
        result.scalar_one_or_none.return_value = user
        mock_db_session.execute.return_value = result

        gap = await worst_loop_gap(
            AuthService().login(mock_db_session, "ada@example.com", "long enough")
        )

        assert gap < 0.05


class TestAuthenticate:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_valid_token(self, db_session):
        auth = await self.service.signup(db_session, "ada@example.com", "long enough")
        await db_session.commit()

        user_id = await self.service.authenticate(db_session, auth.token)
        user = (await db_session.execute(select(User))).scalar_one()
        assert user_id == user.id

    @pytest.mark.asyncio
    async def test_missing_token(self, mock_db_session):
        with pytest.raises(AuthenticationError, match="Missing authorization"):
            await self.service.authenticate(mock_db_session, None)
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_token(self, db_session):
        with pytest.raises(AuthenticationError, match="Invalid token"):
            await self.service.authenticate(db_session, "not-a-real-token")

    @pytest.mark.asyncio
    async def test_expired_token_is_deleted(self, db_session, user_id):
        db_session.add(
            UserSession(
                token="expired-token",
                user_id=user_id,
                expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
            )
        )
        await db_session.commit()

        with pytest.raises(AuthenticationError, match="Token expired"):
            await self.service.authenticate(db_session, "expired-token")

        remaining = await db_session.execute(
            select(UserSession).where(UserSession.token == "expired-token")
        )
        assert remaining.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_logout_revokes(self, db_session):
        auth = await self.service.signup(db_session, "ada@example.com", "long enough")
        await db_session.commit()

        await self.service.logout(db_session, auth.token)
        await db_session.commit()

        with pytest.raises(AuthenticationError, match="Invalid token"):
            await self.service.authenticate(db_session, auth.token)

    @pytest.mark.asyncio
    async def test_logout_unknown_token_is_noop(self, db_session):
        await self.service.logout(db_session, "never-issued")
