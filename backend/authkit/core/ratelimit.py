"""Request hook applying the admission limiter to sensitive endpoints."""

from __future__ import annotations

import re

from flask import Flask, request

from authkit.core.auth import get_components
from authkit.core.config import DEFAULT_RATE_LIMITED_PATHS
from authkit.services.ratelimit.identity import client_identity


def init_app(app: Flask) -> None:
    """
    Register a ``before_request`` hook that counts attempts on the paths
    matching ``RATE_LIMITED_PATHS`` (a regular expression).

    Only ``POST`` requests are counted; CORS preflights and reads pass through.
    A denial raises :class:`~authkit.services._shared.errors.RateLimitedError`,
    which the error layer turns into ``429`` with ``Retry-After``.
    """
    pattern = re.compile(app.config.get("RATE_LIMITED_PATHS") or DEFAULT_RATE_LIMITED_PATHS)

    @app.before_request
    def _admit() -> None:
        if request.method != "POST" or not pattern.match(request.path):
            return
        identity = client_identity(request.headers, request.remote_addr)
        get_components().limiter.check(identity, request.path)
