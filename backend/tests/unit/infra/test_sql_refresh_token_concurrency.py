# tests/unit/infra/test_sql_refresh_token_concurrency.py
"""
Concurrent rotation against a file-backed SQLite database.

Each worker thread runs in its own application context, hence its own
scoped session and connection. Transactions start with ``BEGIN IMMEDIATE``
so SQLite serializes the writers instead of failing the upgrade from a read
lock; the conditional ``UPDATE ... WHERE revoked = false`` then decides the
winner.
"""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest
from authkit.core.config import TestingConfig
from authkit.core.extensions import db
from authkit.infra.sqlalchemy.sql_refresh_token_repository import (
    SQLAlchemyRefreshTokenRepository,
)
from authkit.services._shared.ports import RefreshTokenRecord
from sqlalchemy import event

from tests.factories.user import UserFactory

WORKERS = 4


@pytest.fixture()
def app_config(tmp_path):
    class FileDatabaseConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'rotation.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {"timeout": 30, "check_same_thread": False},
        }

    return FileDatabaseConfig


@pytest.fixture()
def immediate_transactions(app):
    engine = db.engine

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    db.session.remove()
    engine.dispose()
    yield
    event.remove(engine, "connect", _disable_pysqlite_begin)
    event.remove(engine, "begin", _begin_immediate)


def _record(clock, token_hash: str, user_id: int) -> RefreshTokenRecord:
    now = clock()
    return RefreshTokenRecord(
        token_hash=token_hash,
        user_id=user_id,
        family_id="fam-1",
        issued_at=now,
        expires_at=now + timedelta(minutes=5),
    )


def test_concurrent_rotation_has_exactly_one_winner(app, clock, immediate_transactions):
    repo = SQLAlchemyRefreshTokenRepository()
    user_id = UserFactory().id
    repo.add(_record(clock, "parent", user_id))
    # release the main thread's connection before the workers start
    db.session.remove()

    barrier = threading.Barrier(WORKERS)
    outcomes: list[bool] = []
    errors: list[Exception] = []
    lock = threading.Lock()

    def worker(n: int) -> None:
        with app.app_context():
            try:
                barrier.wait()
                won = repo.rotate("parent", _record(clock, f"child-{n}", user_id))
                with lock:
                    outcomes.append(won)
            except Exception as exc:  # surfaced by the assertion below
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(WORKERS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    assert sorted(outcomes) == [False] * (WORKERS - 1) + [True]

    children = [r for r in repo.list_for_user(user_id) if r.token_hash.startswith("child-")]
    assert len(children) == 1
    assert children[0].revoked is False
    assert repo.get_by_hash("parent").revoked is True
