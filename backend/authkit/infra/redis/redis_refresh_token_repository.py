# comments in English; reST docstrings
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import redis  # type: ignore[import-untyped]

from authkit.services._shared.clock import Clock, as_utc, utcnow
from authkit.services._shared.ports import RefreshTokenRecord, RefreshTokenRepository


def _s(value: Any, default: str = "") -> str:
    """Decode a Redis reply (bytes or str) into ``str``."""
    if value is None:
        return default
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)


@dataclass(slots=True)
class RedisRefreshTokenRepository(RefreshTokenRepository):
    """
    Redis-backed refresh token repository with atomic rotation.

    Layout
    ------
    - ``rt:tok:{hash}``: hash with ``user_id``, ``family_id``, ``issued_at``,
      ``expires_at`` (ISO-8601 UTC) and ``revoked`` (``"0"``/``"1"``).
    - ``rt:user:{user_id}`` / ``rt:fam:{family_id}``: sets of token hashes.

    Records expire in Redis ``retention`` after their own expiry, so a late
    refresh still sees an expired record rather than an unknown one.

    :param r: A Redis client (already connected).
    :param retention: Extra time an expired record is kept.
    :param clock: Wall-clock source used for key TTLs.
    """

    r: redis.Redis
    retention: timedelta = timedelta(days=1)
    clock: Clock = utcnow

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token_hash: str) -> str:
        return f"rt:tok:{token_hash}"

    @staticmethod
    def _ku(user_id: int | str) -> str:
        return f"rt:user:{user_id}"

    @staticmethod
    def _kf(family_id: str) -> str:
        return f"rt:fam:{family_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(as_utc(dt).timestamp())

    def _ttl(self, record: RefreshTokenRecord) -> int:
        expire_at = self._to_ts(record.expires_at + self.retention)
        return max(1, expire_at - self._to_ts(self.clock()))

    def _write(self, pipe: Any, record: RefreshTokenRecord) -> None:
        key = self._k(record.token_hash)
        pipe.hset(
            key,
            mapping={
                "user_id": str(record.user_id),
                "family_id": record.family_id,
                "issued_at": as_utc(record.issued_at).isoformat(),
                "expires_at": as_utc(record.expires_at).isoformat(),
                "revoked": "1" if record.revoked else "0",
            },
        )
        pipe.expire(key, self._ttl(record))
        pipe.sadd(self._ku(record.user_id), record.token_hash)
        pipe.sadd(self._kf(record.family_id), record.token_hash)

    def _to_record(self, token_hash: str, h: dict[Any, Any]) -> RefreshTokenRecord:
        def field(name: str, default: str = "") -> str:
            return _s(h.get(name.encode(), h.get(name)), default)

        return RefreshTokenRecord(
            token_hash=token_hash,
            user_id=int(field("user_id", "0")),
            family_id=field("family_id"),
            issued_at=datetime.fromisoformat(field("issued_at")),
            expires_at=datetime.fromisoformat(field("expires_at")),
            revoked=field("revoked", "0") == "1",
        )

    def _members(self, key: str) -> list[str]:
        return sorted(_s(m) for m in self.r.smembers(key))

    # -------------------- API ------------------------

    def add(self, record: RefreshTokenRecord) -> None:
        """Insert the record and its index entries in one MULTI/EXEC block."""
        pipe = self.r.pipeline(transaction=True)
        self._write(pipe, record)
        pipe.execute()

    def get_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        h = self.r.hgetall(self._k(token_hash))
        if not h:
            return None
        return self._to_record(token_hash, h)

    def mark_revoked(self, token_hash: str) -> bool:
        """
        Flag the record revoked; ``False`` when it does not exist.

        The existence check and the ``HSET`` run under WATCH, so a key that
        expires in between aborts the transaction instead of being re-created
        without a TTL.
        """
        key = self._k(token_hash)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    if not p.exists(key):
                        p.unwatch()
                        return False
                    p.multi()
                    # hset on an existing key keeps its TTL
                    p.hset(key, "revoked", "1")
                    p.execute()
                return True
            except redis.WatchError:
                continue

    def rotate(self, old_hash: str, child: RefreshTokenRecord) -> bool:
        """
        Atomically revoke ``old_hash`` and create ``child``.

        Uses WATCH/MULTI/EXEC (optimistic locking): if another client touches
        the parent between the read and EXEC, the transaction aborts and the
        check is replayed, so of two concurrent rotations exactly one wins.
        """
        k_old = self._k(old_hash)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(k_old)
                    # immediate-mode read while watching
                    h = p.hgetall(k_old)
                    if not h or _s(h.get(b"revoked", h.get("revoked")), "0") == "1":
                        p.unwatch()
                        return False
                    p.multi()
                    p.hset(k_old, "revoked", "1")
                    self._write(p, child)
                    p.execute()
                return True
            except redis.WatchError:
                # Concurrent modification detected; retry loop
                continue

    def delete(self, token_hash: str) -> bool:
        key = self._k(token_hash)
        h = self.r.hgetall(key)
        if not h:
            return False
        record = self._to_record(token_hash, h)
        with self.r.pipeline(transaction=True) as p:
            p.delete(key)
            p.srem(self._ku(record.user_id), token_hash)
            p.srem(self._kf(record.family_id), token_hash)
            p.execute()
        return True

    def _revoke_members(self, index_key: str) -> int:
        """
        Revoke every record listed in ``index_key`` in one transaction.

        The index set and all member keys are WATCHed: a rotation adding a
        child to the set, or a member expiring, aborts EXEC and the whole pass
        is replayed against the new membership.
        """
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(index_key)
                    members = sorted(_s(m) for m in p.smembers(index_key))
                    if not members:
                        p.unwatch()
                        return 0
                    keys = [self._k(token_hash) for token_hash in members]
                    p.watch(*keys)
                    states = [p.hget(key, "revoked") for key in keys]

                    p.multi()
                    revoked = 0
                    for token_hash, key, state in zip(members, keys, states):
                        if state is None:
                            # record expired out of Redis; drop the stale index entry
                            p.srem(index_key, token_hash)
                        elif _s(state) != "1":
                            p.hset(key, "revoked", "1")
                            revoked += 1
                    p.execute()
                return revoked
            except redis.WatchError:
                continue

    def revoke_family(self, family_id: str) -> int:
        return self._revoke_members(self._kf(family_id))

    def revoke_all_for_user(self, user_id: int) -> int:
        return self._revoke_members(self._ku(user_id))

    def list_for_user(self, user_id: int) -> Iterable[RefreshTokenRecord]:
        key_u = self._ku(user_id)
        records: list[RefreshTokenRecord] = []
        stale: list[str] = []
        for token_hash in self._members(key_u):
            record = self.get_by_hash(token_hash)
            if record is None:
                stale.append(token_hash)
            else:
                records.append(record)
        if stale:
            self.r.srem(key_u, *stale)
        return sorted(records, key=lambda rec: rec.issued_at)

    def purge(self, now: datetime) -> int:
        removed = 0
        for raw_key in self.r.scan_iter(match="rt:tok:*"):
            key = _s(raw_key)
            token_hash = key.removeprefix("rt:tok:")
            h = self.r.hgetall(key)
            if not h:
                continue
            record = self._to_record(token_hash, h)
            if record.revoked or record.expires_at < as_utc(now):
                if self.delete(token_hash):
                    removed += 1
        return removed
