"""
Trame Backend — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the error scenarios of the service.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) turn them into
       structured JSON error responses with the right HTTP status code.
Who:   Raised by services and route dependencies; caught by global handlers.

Exception Hierarchy:
    TrameError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── StorageError             → 500 Internal Server Error

The block scanner and content hasher never raise: every input produces a
block sequence. The only failure of a note update is a StorageError.
"""

from typing import Any, Dict, Optional


class TrameError(Exception):
    """
    Base exception for all Trame application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TrameError):
    """
    Raised when client input fails a business rule.

    When:    Malformed email, password too short.
    HTTP:    400 Bad Request (schema-level failures stay FastAPI's 422)
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(TrameError):
    """
    Raised when a request cannot be tied to a valid user session.

    When:    Missing bearer token, unknown token, expired token, bad credentials.
    HTTP:    401 Unauthorized with `WWW-Authenticate: Bearer`
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConflictError(TrameError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    Signup with an email that is already registered.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(TrameError):
    """
    Raised when a persistence operation fails.

    What:    A fetch, delete, insert or update against the database failed.
    HTTP:    500 Internal Server Error

    The failing transaction has been rolled back when this is raised, so the
    document text and its blocks are left in their previous state. The error
    is never retried locally. The client receives a generic message; the
    context (operation, document id, original exception type) is logged only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(TrameError):
    """
    Raised when a client exceeds the per-IP limit on credential endpoints.

    HTTP:    429 Too Many Requests with a Retry-After header
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
