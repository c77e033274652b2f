"""Convenience exports for request/response schemas."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    LogoutSchema,
    PrincipalSchema,
    RefreshSchema,
    RegisterSchema,
    TokenResponseSchema,
    UserSchema,
)

__all__ = [
    "LoginSchema",
    "LogoutSchema",
    "PrincipalSchema",
    "RefreshSchema",
    "RegisterSchema",
    "TokenResponseSchema",
    "UserSchema",
]
