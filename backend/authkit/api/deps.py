"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authkit.core.auth import get_components
from authkit.core.errors import Forbidden, Unauthorized
from authkit.services._shared.errors import InvalidTokenError
from authkit.services._shared.ports import Principal

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "Bearer "


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def bearer_token() -> str:
    """Extract the bearer token from ``Authorization``.

    :raises Unauthorized: If the header is missing or not a bearer token.
    """
    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX) or not header[len(BEARER_PREFIX) :].strip():
        raise Unauthorized("Missing bearer access token")
    return header[len(BEARER_PREFIX) :].strip()


def current_principal() -> Principal:
    """Return the principal set by :func:`require_auth`."""
    principal = g.get("principal")
    if principal is None:
        raise Unauthorized()
    return principal


def _authenticate() -> Principal:
    components = get_components()
    verified = components.signer.verify(bearer_token())
    # roles are resolved per request so a disabled account loses access at once
    principal = components.verifier.get_principal(verified.user_id)
    if principal is None or principal.username != verified.subject:
        raise InvalidTokenError("Access token owner no longer exists")
    g.principal = principal
    return principal


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token; sets ``g.principal``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        _authenticate()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_capability(required: str) -> Callable[[F], F]:
    """Ensure the authenticated principal holds ``required`` (e.g. ``ROLE_ADMIN``)."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            principal = _authenticate()
            if required not in principal.capabilities:
                raise Forbidden("Insufficient capability")
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
