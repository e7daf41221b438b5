"""
Trame Backend — Authentication Schemas
=======================================

What:  Request/response bodies of the signup, login and logout endpoints.

Email format and password length are business rules checked in AuthService
(→ 400 validation_error), not here, so a short password is reported the same
way whether it came through signup or a future password-change endpoint.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: str = Field(description="Account email; must contain '@'")
    password: str = Field(description="Plain-text password (hashed server-side)")


class LoginRequest(BaseModel):
    email: str = Field(description="Account email")
    password: str = Field(description="Plain-text password")


class AuthResponse(BaseModel):
    """
    What:  A freshly issued bearer session.
    How:   Send as `Authorization: Bearer <token>` until `expires_at`.
    """
    token: str = Field(description="Opaque bearer token")
    expires_at: datetime = Field(description="Expiry instant of the token (UTC)")
