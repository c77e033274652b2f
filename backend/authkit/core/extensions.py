"""Database, migration and Redis bindings shared by the auth service."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

REDIS_EXTENSION_KEY = "redis_client"

# Constraint names stay stable across SQLite batch migrations and Postgres
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_name)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)


def _connect_redis(url: str) -> redis.Redis:
    client = redis.Redis.from_url(url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Bind SQLAlchemy and Flask-Migrate, and connect Redis when configured.

    Parameters
    ----------
    app: flask.Flask
        Application receiving the bindings. :mod:`authkit.models` is imported
        here so ``users`` and ``refresh_tokens`` are registered on the metadata
        before Alembic inspects it.

    Raises
    ------
    RuntimeError
        If ``REDIS_URL`` is set but the server does not answer ``PING``.
    """
    db.init_app(app)

    from authkit import models as _models  # noqa: F401

    migrate.init_app(app, db)

    redis_url = app.config.get("REDIS_URL")
    if redis_url:
        app.extensions[REDIS_EXTENSION_KEY] = _connect_redis(redis_url)
        log.info("redis.connected")
    else:
        app.extensions.pop(REDIS_EXTENSION_KEY, None)


def redis_for(app: Flask | None = None) -> redis.Redis | None:
    """Return the app's Redis client, or ``None`` when ``REDIS_URL`` is unset."""
    target = app if app is not None else current_app
    return target.extensions.get(REDIS_EXTENSION_KEY)


def get_redis(app: Flask | None = None) -> redis.Redis:
    """Return the app's Redis client, failing loudly when it is missing."""
    client = redis_for(app)
    if client is None:
        raise RuntimeError("Redis client is not initialized. Set REDIS_URL.")
    return client
