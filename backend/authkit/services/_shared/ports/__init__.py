"""
authkit.services._shared.ports
==============================

Collection of *ports* (hexagonal interfaces) that define the contracts
for token signing, refresh token persistence and credential verification.

These ports decouple the service layer from concrete implementations.

Modules
-------
- :mod:`token_signer`:
    Defines :class:`~.TokenSigner` and :class:`~.VerifiedToken`.

- :mod:`refresh_token_repository`:
    Defines :class:`~.RefreshTokenRepository`, :class:`~.RefreshTokenRecord`
    and :class:`~.InMemoryRefreshTokenRepository`.

- :mod:`credential_verifier`:
    Defines :class:`~.CredentialVerifier`, :class:`~.Principal` and
    :class:`~.InMemoryCredentialVerifier`.

Design Notes
------------
Concrete adapters (PyJWT signer, SQLAlchemy and Redis repositories, the
user-table verifier) live under ``authkit.infra``, ``authkit.repositories``
and ``authkit.services.identity``.
"""

from __future__ import annotations

from .credential_verifier import CredentialVerifier, InMemoryCredentialVerifier, Principal
from .refresh_token_repository import (
    InMemoryRefreshTokenRepository,
    RefreshTokenRecord,
    RefreshTokenRepository,
)
from .token_signer import TokenSigner, VerifiedToken

__all__ = [
    "CredentialVerifier",
    "InMemoryCredentialVerifier",
    "Principal",
    "RefreshTokenRepository",
    "RefreshTokenRecord",
    "InMemoryRefreshTokenRepository",
    "TokenSigner",
    "VerifiedToken",
]
