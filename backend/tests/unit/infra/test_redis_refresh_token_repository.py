# tests/unit/infra/test_redis_refresh_token_repository.py
"""
Unit tests for RedisRefreshTokenRepository using fakeredis.

They run entirely in-memory and cover:
- add + get_by_hash
- rotate (success, already revoked, unknown parent)
- revoke_family / revoke_all_for_user
- list_for_user stale index cleanup
- purge
- WATCH conflicts: a competing write between WATCH and EXEC forces a replay
"""

from __future__ import annotations

from datetime import timedelta

import fakeredis
import pytest
from authkit.infra.redis.redis_refresh_token_repository import RedisRefreshTokenRepository
from authkit.services._shared.ports import RefreshTokenRecord


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def repo(fake_redis, clock):
    return RedisRefreshTokenRepository(r=fake_redis, clock=clock)


@pytest.fixture
def before_multi(monkeypatch, fake_redis):
    """Queue a callback that runs once, right before the next MULTI.

    Whatever the callback writes lands between the WATCH and the EXEC of the
    transaction under test, as a competing client would.
    """
    pipeline_cls = type(fake_redis.pipeline())
    original_multi = pipeline_cls.multi
    pending: list = []

    def multi(self):
        if pending:
            pending.pop()()
        return original_multi(self)

    monkeypatch.setattr(pipeline_cls, "multi", multi)
    return pending.append


def _record(clock, token_hash: str, *, user_id: int = 1, family_id: str = "fam-1", ttl: int = 300):
    now = clock().replace(microsecond=0)
    return RefreshTokenRecord(
        token_hash=token_hash,
        user_id=user_id,
        family_id=family_id,
        issued_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )


def test_add_and_get(repo, clock):
    rec = _record(clock, "h1")
    repo.add(rec)

    assert repo.get_by_hash("h1") == rec
    assert repo.get_by_hash("missing") is None


def test_key_ttl_covers_expiry_plus_retention(repo, fake_redis, clock):
    repo.add(_record(clock, "h1", ttl=300))

    ttl = fake_redis.ttl("rt:tok:h1")
    assert 300 < ttl <= 300 + int(timedelta(days=1).total_seconds())


def test_rotate_success(repo, clock):
    repo.add(_record(clock, "parent"))

    assert repo.rotate("parent", _record(clock, "child")) is True

    assert repo.get_by_hash("parent").revoked is True
    child = repo.get_by_hash("child")
    assert child.revoked is False
    assert child.family_id == "fam-1"


def test_rotate_is_single_use(repo, clock):
    repo.add(_record(clock, "parent"))
    assert repo.rotate("parent", _record(clock, "child-a")) is True

    assert repo.rotate("parent", _record(clock, "child-b")) is False
    assert repo.get_by_hash("child-b") is None


def test_rotate_unknown_parent(repo, clock):
    assert repo.rotate("ghost", _record(clock, "child")) is False
    assert repo.get_by_hash("child") is None


def test_mark_revoked(repo, clock):
    repo.add(_record(clock, "h1"))

    assert repo.mark_revoked("h1") is True
    assert repo.mark_revoked("h1") is True
    assert repo.mark_revoked("ghost") is False
    assert repo.get_by_hash("h1").revoked is True


def test_revoke_family_and_user(repo, clock):
    repo.add(_record(clock, "a1", family_id="fa"))
    repo.add(_record(clock, "a2", family_id="fa"))
    repo.add(_record(clock, "b1", family_id="fb"))
    repo.add(_record(clock, "c1", user_id=2, family_id="fc"))

    assert repo.revoke_family("fa") == 2
    assert repo.revoke_family("fa") == 0
    assert repo.get_by_hash("b1").revoked is False

    assert repo.revoke_all_for_user(1) == 1  # only b1 was still active
    assert repo.get_by_hash("c1").revoked is False


def test_delete_removes_record_and_indexes(repo, fake_redis, clock):
    repo.add(_record(clock, "h1"))

    assert repo.delete("h1") is True
    assert repo.delete("h1") is False
    assert fake_redis.smembers("rt:user:1") == set()
    assert fake_redis.smembers("rt:fam:fam-1") == set()


def test_list_for_user_drops_stale_index_entries(repo, fake_redis, clock):
    repo.add(_record(clock, "h1"))
    repo.add(_record(clock, "h2"))
    fake_redis.delete("rt:tok:h1")  # simulate key expiry

    records = list(repo.list_for_user(1))

    assert [r.token_hash for r in records] == ["h2"]
    assert fake_redis.smembers("rt:user:1") == {b"h2"}


def test_purge_removes_revoked_and_expired(repo, clock):
    repo.add(_record(clock, "expired", ttl=10))
    repo.add(_record(clock, "revoked"))
    repo.add(_record(clock, "active"))
    repo.mark_revoked("revoked")

    clock.advance(seconds=11)

    assert repo.purge(clock()) == 2
    assert repo.get_by_hash("active") is not None
    assert repo.get_by_hash("expired") is None


def test_sub_second_timestamps_survive_storage(repo, clock):
    clock.advance(microseconds=250_000)
    rec = RefreshTokenRecord(
        token_hash="h1",
        user_id=1,
        family_id="fam-1",
        issued_at=clock(),
        expires_at=clock() + timedelta(seconds=300),
    )
    repo.add(rec)

    assert repo.get_by_hash("h1").expires_at == rec.expires_at


def test_concurrent_rotation_has_exactly_one_winner(repo, fake_redis, clock, before_multi):
    repo.add(_record(clock, "parent"))
    outcomes = []
    before_multi(lambda: outcomes.append(repo.rotate("parent", _record(clock, "child-b"))))

    outcomes.append(repo.rotate("parent", _record(clock, "child-a")))

    assert outcomes == [True, False]
    assert repo.get_by_hash("parent").revoked is True
    assert repo.get_by_hash("child-a") is None
    assert repo.get_by_hash("child-b").revoked is False
    assert fake_redis.smembers("rt:fam:fam-1") == {b"parent", b"child-b"}


def test_revoke_family_catches_child_rotated_in_mid_flight(repo, clock, before_multi):
    repo.add(_record(clock, "parent"))
    before_multi(lambda: repo.rotate("parent", _record(clock, "child")))

    assert repo.revoke_family("fam-1") == 1

    assert repo.get_by_hash("parent").revoked is True
    assert repo.get_by_hash("child").revoked is True


def test_revoke_all_for_user_catches_child_rotated_in_mid_flight(repo, clock, before_multi):
    repo.add(_record(clock, "parent", family_id="fa"))
    repo.add(_record(clock, "other", family_id="fb"))
    before_multi(lambda: repo.rotate("parent", _record(clock, "child", family_id="fa")))

    assert repo.revoke_all_for_user(1) == 2

    assert [r.revoked for r in repo.list_for_user(1)] == [True, True, True]


def test_mark_revoked_never_recreates_an_expired_key(repo, fake_redis, clock, before_multi):
    repo.add(_record(clock, "h1"))
    before_multi(lambda: fake_redis.delete("rt:tok:h1"))

    assert repo.mark_revoked("h1") is False
    assert fake_redis.exists("rt:tok:h1") == 0


def test_family_revocation_drops_member_expiring_mid_flight(repo, fake_redis, clock, before_multi):
    repo.add(_record(clock, "a1"))
    repo.add(_record(clock, "a2"))
    before_multi(lambda: fake_redis.delete("rt:tok:a1"))

    assert repo.revoke_family("fam-1") == 1

    assert fake_redis.exists("rt:tok:a1") == 0
    assert fake_redis.smembers("rt:fam:fam-1") == {b"a2"}
    assert repo.get_by_hash("a2").revoked is True
