"""Reverse proxy awareness."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`ProxyFix` when ``USE_PROXYFIX`` is set.

    Off by default. When the service sits behind exactly one trusted proxy,
    enabling it makes ``request.remote_addr`` the real client address. The
    rate limiter still prefers the first ``X-Forwarded-For`` entry, so the
    proxy must overwrite that header rather than append to it.
    """
    if app.config.get("USE_PROXYFIX", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)
