"""
DTOs for the identity services.

They keep the HTTP layer and the rotation engine away from ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UserRegisterIn:
    """
    Input DTO for user registration.

    :param username: Login name (unique, becomes the token subject).
    :type username: str
    :param email: Contact email (normalized to lowercase).
    :type email: str
    :param password: Raw password to be hashed by the model.
    :type password: str
    """

    username: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Public-safe user payload.

    :param id: User identifier.
    :param username: Login name.
    :param email: Normalized email.
    :param roles: Sorted role names.
    """

    id: int
    username: str
    email: str
    roles: tuple[str, ...]
