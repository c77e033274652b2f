from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import Protocol

from authkit.services._shared.errors import InvalidCredentialsError


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated identity handed back by a credential verifier.

    :ivar user_id: Owner id stored on refresh tokens and in the ``uid`` claim.
    :ivar username: Subject identity placed in the ``sub`` claim.
    :ivar capabilities: Role/capability names attached at the transport boundary.
    """

    user_id: int
    username: str
    capabilities: frozenset[str] = field(default_factory=frozenset)


class CredentialVerifier(Protocol):
    """Port for checking passwords and resolving refresh token owners."""

    def verify(self, username: str, password: str) -> Principal:
        """
        Check a username/password pair.

        :raises InvalidCredentialsError: On any rejection (unknown user or bad password).
        """

    def get_principal(self, user_id: int) -> Principal | None:
        """Resolve a user id back into a principal; ``None`` if the user is gone."""


class InMemoryCredentialVerifier(CredentialVerifier):
    """Dictionary-backed verifier used in unit tests and local experiments."""

    def __init__(self) -> None:
        self._passwords: dict[str, str] = {}
        self._principals: dict[int, Principal] = {}

    def add_user(
        self,
        user_id: int,
        username: str,
        password: str,
        capabilities: frozenset[str] = frozenset({"ROLE_USER"}),
    ) -> Principal:
        principal = Principal(user_id=user_id, username=username, capabilities=capabilities)
        self._passwords[username] = password
        self._principals[user_id] = principal
        return principal

    def remove_user(self, user_id: int) -> None:
        principal = self._principals.pop(user_id, None)
        if principal is not None:
            self._passwords.pop(principal.username, None)

    def verify(self, username: str, password: str) -> Principal:
        expected = self._passwords.get(username, "")
        # compare even for unknown users so both paths do the same work
        matches = hmac.compare_digest(expected.encode(), password.encode())
        if username not in self._passwords or not matches:
            raise InvalidCredentialsError()
        return next(p for p in self._principals.values() if p.username == username)

    def get_principal(self, user_id: int) -> Principal | None:
        return self._principals.get(user_id)
