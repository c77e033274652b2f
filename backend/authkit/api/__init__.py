"""HTTP surface: versioned blueprints for auth, dashboard and health routes."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from flask import Blueprint, Flask

log = logging.getLogger(__name__)


def _join(*segments: str) -> str:
    return "/" + "/".join(s.strip("/") for s in segments if s.strip("/"))


def register_blueprint_group(
    app: Flask,
    *,
    base_prefix: str,
    entries: Iterable[tuple[Blueprint, str]],
) -> dict[str, str]:
    """
    Mount ``(blueprint, relative_prefix)`` pairs under ``base_prefix``.

    :param app: Application receiving the blueprints.
    :param base_prefix: Version root such as ``"/api/v1"``.
    :param entries: Pairs whose empty relative prefix means the version root.
    :returns: Blueprint name mapped to the prefix it was mounted at.
    """
    mounted: dict[str, str] = {}
    for bp, rel_prefix in entries:
        prefix = _join(base_prefix, rel_prefix)
        app.register_blueprint(bp, url_prefix=prefix)
        mounted[bp.name] = prefix
    return mounted


def init_app(app: Flask) -> None:
    """Mount API v1 and check the refresh cookie is scoped to the auth routes."""
    from authkit.api.v1 import API_VERSION as V1
    from authkit.api.v1 import REGISTRY as V1_REGISTRY

    api_base = app.config.get("API_BASE_PREFIX", "/api")
    mounted = register_blueprint_group(app, base_prefix=_join(api_base, V1), entries=V1_REGISTRY)

    auth_prefix = mounted.get("auth")
    cookie_path = app.config.get("REFRESH_COOKIE_PATH", "/")
    if auth_prefix and not auth_prefix.startswith(cookie_path.rstrip("/") or "/"):
        # Browsers would never send the cookie to /refresh or /logout
        log.warning("api.cookie_path_mismatch cookie_path=%s auth=%s", cookie_path, auth_prefix)


__all__ = ["init_app", "register_blueprint_group"]
