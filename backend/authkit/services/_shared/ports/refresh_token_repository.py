from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Persisted view of a refresh token. The raw secret is never part of it.

    :ivar token_hash: Hex SHA-256 digest of the raw secret (lookup key).
    :ivar user_id: Owner user id.
    :ivar family_id: Rotation chain identifier shared by parent and children.
    :ivar issued_at: Creation instant (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    :ivar revoked: Whether the record was rotated or logged out.
    """

    token_hash: str
    user_id: int
    family_id: str
    issued_at: datetime
    expires_at: datetime
    revoked: bool = False

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and not self.is_expired(now)


class RefreshTokenRepository(Protocol):
    """
    Persistence port for refresh token records, keyed by hash.

    ``mark_revoked`` MUST be idempotent and ``rotate`` MUST be atomic: the
    parent's revocation and the child's insertion succeed or fail together.
    """

    def add(self, record: RefreshTokenRecord) -> None:
        """Persist a brand-new record."""

    def get_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        """Fetch a record by full-hash equality."""

    def mark_revoked(self, token_hash: str) -> bool:
        """Flip ``revoked`` to true. :returns: True if the record exists."""

    def rotate(self, old_hash: str, child: RefreshTokenRecord) -> bool:
        """
        Revoke ``old_hash`` only if it is still unrevoked, and insert ``child``.

        :returns: ``False`` when the parent is missing or already revoked
            (nothing is written in that case).
        """

    def delete(self, token_hash: str) -> bool:
        """Remove a record. :returns: True if it existed."""

    def revoke_family(self, family_id: str) -> int:
        """Revoke every record of a rotation chain. :returns: records affected."""

    def revoke_all_for_user(self, user_id: int) -> int:
        """Revoke every record of a user. :returns: records affected."""

    def list_for_user(self, user_id: int) -> Iterable[RefreshTokenRecord]:
        """List all records (any state) owned by a user."""

    def purge(self, now: datetime) -> int:
        """Delete expired and revoked records. :returns: records removed."""


class InMemoryRefreshTokenRepository(RefreshTokenRepository):
    """
    In-memory refresh token repository with atomic rotation.

    .. note::
       A single lock guards the maps; it makes ``rotate`` a compare-and-set.
    """

    def __init__(self) -> None:
        self._by_hash: dict[str, RefreshTokenRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: RefreshTokenRecord) -> None:
        with self._lock:
            self._by_hash[record.token_hash] = record

    def get_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        with self._lock:
            return self._by_hash.get(token_hash)

    def mark_revoked(self, token_hash: str) -> bool:
        with self._lock:
            rec = self._by_hash.get(token_hash)
            if rec is None:
                return False
            if not rec.revoked:
                self._by_hash[token_hash] = replace(rec, revoked=True)
            return True

    def rotate(self, old_hash: str, child: RefreshTokenRecord) -> bool:
        with self._lock:
            parent = self._by_hash.get(old_hash)
            if parent is None or parent.revoked:
                return False
            self._by_hash[old_hash] = replace(parent, revoked=True)
            self._by_hash[child.token_hash] = child
            return True

    def delete(self, token_hash: str) -> bool:
        with self._lock:
            return self._by_hash.pop(token_hash, None) is not None

    def revoke_family(self, family_id: str) -> int:
        return self._revoke_where(lambda rec: rec.family_id == family_id)

    def revoke_all_for_user(self, user_id: int) -> int:
        return self._revoke_where(lambda rec: rec.user_id == user_id)

    def _revoke_where(self, predicate) -> int:
        with self._lock:
            hits = [h for h, rec in self._by_hash.items() if predicate(rec) and not rec.revoked]
            for h in hits:
                self._by_hash[h] = replace(self._by_hash[h], revoked=True)
            return len(hits)

    def list_for_user(self, user_id: int) -> list[RefreshTokenRecord]:
        with self._lock:
            return sorted(
                (rec for rec in self._by_hash.values() if rec.user_id == user_id),
                key=lambda rec: rec.issued_at,
            )

    def purge(self, now: datetime) -> int:
        with self._lock:
            stale = [h for h, rec in self._by_hash.items() if rec.revoked or rec.is_expired(now)]
            for h in stale:
                del self._by_hash[h]
            return len(stale)
