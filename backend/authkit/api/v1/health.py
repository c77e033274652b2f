"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authkit.api.deps import json_response, timing
from authkit.core.extensions import db, redis_for

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and (if configured) Redis health."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    payload = {"status": "ok", "db": db_status}

    client = redis_for()
    if client is not None:
        try:
            client.ping()
            payload["redis"] = "ok"
        except RedisError:  # pragma: no cover - depends on Redis availability
            current_app.logger.exception("healthcheck.redis_error")
            payload["redis"] = "fail"

    payload["version"] = current_app.config.get("APP_VERSION", "dev")
    return json_response(payload)
