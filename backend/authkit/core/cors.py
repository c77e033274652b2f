"""CORS policy for the API blueprints."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS


def init_app(app: Flask) -> None:
    """Configure CORS for ``/api/*`` from ``CORS_ORIGINS``.

    Parameters
    ----------
    app: flask.Flask
        Application to configure. ``CORS_ORIGINS`` is a comma-separated list.

    Notes
    -----
    The refresh secret travels in a cookie, so credentials are only allowed
    for an explicit origin list. A blank value or ``"*"`` allows any origin
    without credentials, which leaves cookie-based refresh unavailable to
    cross-origin browsers.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = not origins or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        expose_headers=["X-Request-Id", "Retry-After"],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
