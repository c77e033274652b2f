"""
Refresh token store.

Generates high-entropy refresh secrets, keeps only their SHA-256 digest in a
:class:`RefreshTokenRepository`, and exposes lookup, revocation and atomic
rotation over that repository.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime
from uuid import uuid4

from authkit.core.config import AuthSettings
from authkit.services._shared.clock import Clock, utcnow
from authkit.services._shared.errors import NotFoundError, RefreshTokenRevokedError
from authkit.services._shared.ports import RefreshTokenRecord, RefreshTokenRepository

log = logging.getLogger(__name__)

# Bytes of randomness per half; two halves give 512 bits in total.
SECRET_HALF_BYTES = 32


def hash_secret(raw_secret: str) -> str:
    """Return the hex SHA-256 digest used as the lookup key for a raw secret."""
    return hashlib.sha256(raw_secret.encode("utf-8")).hexdigest()


def new_secret() -> str:
    """Generate an opaque URL-safe refresh secret from two random halves."""
    return f"{secrets.token_urlsafe(SECRET_HALF_BYTES)}.{secrets.token_urlsafe(SECRET_HALF_BYTES)}"


class RefreshTokenStore:
    """
    Hashed persistence of refresh tokens.

    :param repository: Persistence port holding :class:`RefreshTokenRecord` rows.
    :param settings: Provides the refresh token lifetime.
    :param clock: Wall-clock source (UTC).
    """

    def __init__(
        self,
        *,
        repository: RefreshTokenRepository,
        settings: AuthSettings,
        clock: Clock = utcnow,
    ) -> None:
        self.repository = repository
        self.settings = settings
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def _new_record(self, user_id: int, family_id: str) -> tuple[str, RefreshTokenRecord]:
        raw = new_secret()
        now = self.clock()
        record = RefreshTokenRecord(
            token_hash=hash_secret(raw),
            user_id=int(user_id),
            family_id=family_id,
            issued_at=now,
            expires_at=now + self.settings.refresh_token_ttl,
            revoked=False,
        )
        return raw, record

    def generate_and_store(self, user_id: int, *, family_id: str | None = None) -> str:
        """
        Create and persist a refresh token for ``user_id``.

        :param user_id: Owner of the new token.
        :param family_id: Rotation chain to join; a new chain starts when omitted.
        :returns: The raw secret. It is not kept anywhere server side.
        """
        raw, record = self._new_record(user_id, family_id or uuid4().hex)
        self.repository.add(record)
        return raw

    # ------------------------------------------------------------------ #
    # Lookup / state changes
    # ------------------------------------------------------------------ #

    def lookup_by_raw(self, raw_secret: str) -> RefreshTokenRecord:
        """
        Find the record whose hash equals ``hash(raw_secret)``.

        :raises NotFoundError: When no record matches.
        """
        token_hash = hash_secret(raw_secret)
        record = self.repository.get_by_hash(token_hash)
        if record is None:
            raise NotFoundError("RefreshToken", token_hash[:12])
        return record

    def revoke(self, record: RefreshTokenRecord) -> None:
        """Mark a record revoked. Revoking twice is a no-op."""
        self.repository.mark_revoked(record.token_hash)

    def delete(self, record: RefreshTokenRecord) -> bool:
        return self.repository.delete(record.token_hash)

    def rotate(self, record: RefreshTokenRecord) -> str:
        """
        Revoke ``record`` and store its replacement in the same family, atomically.

        :returns: Raw secret of the replacement.
        :raises RefreshTokenRevokedError: If another caller rotated or revoked
            ``record`` first.
        """
        raw, child = self._new_record(record.user_id, record.family_id)
        if not self.repository.rotate(record.token_hash, child):
            raise RefreshTokenRevokedError()
        return raw

    def revoke_family(self, family_id: str) -> int:
        return self.repository.revoke_family(family_id)

    def revoke_all_for_user(self, user_id: int) -> int:
        return self.repository.revoke_all_for_user(int(user_id))

    def purge(self, now: datetime | None = None) -> int:
        """Delete expired and revoked records; returns how many were removed."""
        removed = self.repository.purge(now or self.clock())
        log.info("refresh.purge", extra={"removed": removed})
        return removed
