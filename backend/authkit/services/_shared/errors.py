"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are the typed failures surfaced by the token signer, the refresh
token store, the rotation engine and the rate limiter.

The translation to HTTP responses (RFC 7807) is handled by
``authkit/core/errors.py``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    :param exc: The exception raised by SQLAlchemy during flush/commit.
    :param constraint_name: Constraint to match (e.g. ``"uq_users_username"``).
    :returns: True if the error message mentions the constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them to ``APIError`` instances.
    """

    pass


class AuthError(ServiceError):
    """
    Base class for authentication failures.

    :cvar code: Stable machine-readable identifier exposed to clients.
    :cvar default_message: Client-safe message used when none is given.
    """

    code = "unauthorized"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


# --------------------------------------------------------------------------- #
# Credentials
# --------------------------------------------------------------------------- #


class InvalidCredentialsError(AuthError):
    """Raised when the credential verifier rejects a username/password pair."""

    code = "invalid_credentials"
    default_message = "Invalid credentials"


# --------------------------------------------------------------------------- #
# Access tokens
# --------------------------------------------------------------------------- #


class InvalidSignatureError(AuthError):
    """Raised when an access token's signature does not match the signing key."""

    code = "invalid_signature"
    default_message = "Access token signature is invalid"


class MalformedTokenError(AuthError):
    """Raised when an access token cannot be parsed or lacks required claims."""

    code = "malformed_token"
    default_message = "Access token is malformed"


class AccessTokenExpiredError(AuthError):
    """Raised when the clock is past the access token's ``exp`` claim."""

    code = "token_expired"
    default_message = "Access token has expired"


# --------------------------------------------------------------------------- #
# Refresh tokens
# --------------------------------------------------------------------------- #


class InvalidTokenError(AuthError):
    """Raised when a refresh secret matches no stored record."""

    code = "invalid_token"
    default_message = "Refresh token is not valid. Please sign in."


class RefreshTokenRevokedError(AuthError):
    """
    Raised when a revoked refresh secret is presented.

    Repeated occurrences signal a replayed (possibly stolen) secret.
    """

    code = "token_revoked"
    default_message = "Refresh token has been revoked. Please sign in."


class RefreshTokenExpiredError(AuthError):
    """Raised when a refresh secret is past its expiry instant."""

    code = "refresh_token_expired"
    default_message = "Refresh token has expired. Please sign in."


# --------------------------------------------------------------------------- #
# Admission control
# --------------------------------------------------------------------------- #


class RateLimitedError(AuthError):
    """
    Raised when a client exhausted its admissions for the current window.

    :param retry_after: Seconds until the window resets (rounded up).
    """

    code = "too_many_requests"
    default_message = "Too many requests. Try again later."

    def __init__(self, message: str | None = None, *, retry_after: int = 0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


# --------------------------------------------------------------------------- #
# Persistence-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "RefreshToken").
    :type entity: str
    :param key: Identifier or search key. Never a raw secret.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"
